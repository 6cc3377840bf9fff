# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Retrieval node: embeds a query and returns the closest stored documents.

The document source is pluggable (``DocumentStore``). ``InMemoryDocumentStore``
ranks pre-embedded documents by cosine similarity and can be loaded from a
YAML or JSON file.
"""

import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import openai
import yaml
from openai import AsyncOpenAI

from flowgate.core.config import Config, get_config
from flowgate.core.errors import ConfigurationError, ServiceUnavailableError, ValidationError

from .base import BaseHandler, config_value, create_openai_client


DEFAULT_TOP_K = 5


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class DocumentStore:
    """Source of documents for retrieval nodes"""

    method = "unknown"

    async def search(
        self,
        embedding: Sequence[float],
        top_k: int,
        collections: Optional[List[str]] = None,
        ticker: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Return up to ``top_k`` hits, best first.

        Each hit carries ``title``, ``date``, ``excerpt``, ``score`` and
        ``collection`` (plus ``ticker`` / ``source_url`` when known).
        """
        raise NotImplementedError


class InMemoryDocumentStore(DocumentStore):
    """Pre-embedded documents kept in memory"""

    method = "cosine_similarity"

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None):
        self.documents: List[Dict[str, Any]] = []
        for document in documents or []:
            self.add(document)

    def add(self, document: Dict[str, Any]) -> None:
        if not document.get("embedding"):
            raise ValidationError(
                f"Document '{document.get('title', '?')}' has no embedding", field="embedding"
            )
        self.documents.append(document)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "InMemoryDocumentStore":
        """
        Load documents from YAML or JSON: either a list of documents or a
        mapping with a ``documents`` list.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Document file not found: {path}", config_key="documents")

        with open(path) as f:
            data = yaml.safe_load(f) or []

        if isinstance(data, dict):
            data = data.get("documents", [])
        return cls(data)

    async def search(
        self,
        embedding: Sequence[float],
        top_k: int,
        collections: Optional[List[str]] = None,
        ticker: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        hits = []
        for document in self.documents:
            if collections and document.get("collection") not in collections:
                continue
            if ticker and document.get("ticker") and str(document["ticker"]).upper() != ticker.upper():
                continue

            hits.append({
                "title": document.get("title", ""),
                "date": document.get("date", ""),
                "excerpt": document.get("excerpt") or str(document.get("content", ""))[:500],
                "score": cosine_similarity(embedding, document["embedding"]),
                "collection": document.get("collection") or "documents",
                "ticker": document.get("ticker"),
                "source_url": document.get("source_url"),
            })

        hits.sort(key=lambda h: h["score"], reverse=True)
        return hits[:top_k]


class RetrievalHandler(BaseHandler):
    """Handler for ``retrieval`` nodes"""

    service = "retrieval"

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        config: Optional[Config] = None,
        openai_client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(config or get_config())
        self.store = store
        self._openai = openai_client

    @property
    def openai(self) -> AsyncOpenAI:
        if self._openai is None:
            self._openai = create_openai_client(purpose="retrieval embeddings")
        return self._openai

    async def embed(self, text: str) -> List[float]:
        try:
            response = await self.openai.embeddings.create(model=self.config.embedding_model, input=text)
        except openai.OpenAIError as e:
            raise ServiceUnavailableError(f"OpenAI embeddings request failed: {e}", service="openai")
        return list(response.data[0].embedding)

    async def __call__(
        self,
        config: Dict[str, Any],
        inputs: Dict[str, Any],
        trigger_data: Dict[str, Any],
        business_context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if self.store is None:
            raise ConfigurationError("No document store configured for retrieval nodes", config_key="documents")

        ticker = self.render(config.get("ticker"), trigger_data, inputs) or None
        query = self.render(config.get("query"), trigger_data, inputs)
        if not query:
            if not ticker:
                raise ValidationError("Retrieval nodes need a 'query' or a 'ticker'", field="query")
            query = f"{ticker} financial performance analysis"

        top_k = int(config_value(config, "top_k", "topK", default=DEFAULT_TOP_K))
        collections = config.get("collections")

        self.logger.info(f"Retrieving top {top_k} for \"{query}\"")
        embedding = await self.embed(query)
        results = await self.store.search(embedding, top_k, collections=collections, ticker=ticker)

        return {
            "results": results,
            "query": query,
            "total_results": len(results),
            "method": self.store.method,
        }
