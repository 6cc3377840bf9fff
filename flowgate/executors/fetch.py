# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
External fetch node (Firecrawl): scrape a page, search the web, or map a site.

Without a configured URL, scrape and map fall back to URLs found in upstream
output (search results or a scraped page).
"""

from typing import Any, Dict, List, Mapping, Optional

from flowgate.core.config import get_firecrawl_api_key
from flowgate.core.errors import ServiceUnavailableError, ValidationError

from .base import BaseHandler, require_secret


FIRECRAWL_API_URL = "https://api.firecrawl.dev/v1"
MODES = ("scrape", "search", "map")


def discover_urls(inputs: Mapping[str, Any]) -> List[str]:
    """URLs from upstream search results or scraped pages, in input order"""
    urls: List[str] = []
    for data in inputs.values():
        if not isinstance(data, Mapping):
            continue
        results = data.get("results")
        if isinstance(results, list):
            urls.extend(r["url"] for r in results if isinstance(r, Mapping) and r.get("url"))
        elif data.get("url"):
            urls.append(data["url"])
    return urls


class FetchHandler(BaseHandler):
    """Handler for ``external-fetch`` nodes"""

    service = "firecrawl"

    def __init__(self, *args: Any, base_url: str = FIRECRAWL_API_URL, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.base_url = base_url.rstrip("/")

    async def __call__(
        self,
        config: Dict[str, Any],
        inputs: Dict[str, Any],
        trigger_data: Dict[str, Any],
        business_context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        mode = config.get("mode") or "scrape"
        if mode not in MODES:
            raise ValidationError(f"Unknown mode: {mode}", field="mode")

        api_key = require_secret(get_firecrawl_api_key(), "FIRECRAWL_API_KEY", "external-fetch nodes")
        headers = {"Authorization": f"Bearer {api_key}"}
        limit = int(config.get("limit") or 5)

        if mode == "search":
            query = self.render(config.get("query"), trigger_data, inputs)
            if not query:
                raise ValidationError("Query is required for search mode", field="query")
            return await self._search(query, limit, headers)

        url = self.render(config.get("url"), trigger_data, inputs)
        if not url:
            discovered = discover_urls(inputs)
            if not discovered:
                raise ValidationError(f"URL is required for {mode} mode", field="url")
            url = discovered[0]
            self.logger.info(f"Using URL discovered upstream: {url}")

        if mode == "map":
            return await self._map(url, limit, headers)
        return await self._scrape(url, config.get("formats") or ["markdown"], headers)

    async def _scrape(self, url: str, formats: List[str], headers: Dict[str, str]) -> Dict[str, Any]:
        self.logger.info(f"Scraping: {url}")
        body = await self._post("/scrape", {"url": url, "formats": formats}, headers)
        page = body.get("data") or {}
        return {
            "url": url,
            "content": page.get("markdown") or page.get("html"),
            "metadata": page.get("metadata"),
            "links": page.get("links"),
        }

    async def _search(self, query: str, limit: int, headers: Dict[str, str]) -> Dict[str, Any]:
        self.logger.info(f"Searching: \"{query}\" (limit: {limit})")
        body = await self._post("/search", {"query": query, "limit": limit}, headers)
        items = body.get("data") or []
        results = [
            {
                "url": item.get("url"),
                "title": item.get("title"),
                "description": item.get("description"),
                "content": item.get("markdown"),
            }
            for item in items
        ]
        return {"query": query, "results": results, "total_results": len(results)}

    async def _map(self, url: str, limit: int, headers: Dict[str, str]) -> Dict[str, Any]:
        self.logger.info(f"Mapping: {url} (limit: {limit})")
        body = await self._post("/map", {"url": url, "limit": limit}, headers)
        links = body.get("links") or []
        return {"url": url, "links": links, "total_links": len(links)}

    async def _post(self, path: str, payload: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        body = await self.request_json("POST", f"{self.base_url}{path}", json=payload, headers=headers)
        if not body.get("success", True):
            raise ServiceUnavailableError(
                f"Firecrawl {path.lstrip('/')} failed: {body.get('error', 'unknown error')}",
                service=self.service,
            )
        return body
