# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Findings digest.

Condenses upstream node outputs into the human-readable summary shown to
approvers and mailed out in reports.
"""

import html
import json
from typing import Any, Dict, List, Mapping


AI_ANALYSIS = "AI Analysis"
EXTRACTED_DATA = "Extracted Data"
CURRENT_NEWS = "Current News"
PARSED_DOCUMENT = "Parsed Document"
DOCUMENT_PAGES = "Document Pages"
HISTORICAL_SOURCES = "Historical Sources Used"
WHY = "Why These Recommendations"


def extract_findings(inputs: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Build the findings digest from a node's gathered inputs.

    Recognized shapes (by key, whatever node produced them):
    - ``response``: AI analysis text
    - ``results`` with ``method``: retrieval hits (historical context)
    - ``results`` without ``method``: search results (current news)
    - ``extracted``: structured extraction
    - ``text`` / ``pages``: parsed document
    - ``findings``: a digest already assembled upstream (e.g. by an approval)
    """
    findings: Dict[str, Any] = {}
    historical: List[Dict[str, Any]] = []
    ai_used_retrieval = False

    for data in inputs.values():
        if not isinstance(data, Mapping):
            continue

        upstream = data.get("findings")
        if isinstance(upstream, Mapping):
            findings.update(upstream)

        if data.get("response"):
            findings[AI_ANALYSIS] = data["response"]
            meta = data.get("meta")
            if isinstance(meta, Mapping) and meta.get("used_retrieval"):
                ai_used_retrieval = True

        results = data.get("results")
        if isinstance(results, list):
            if data.get("method"):
                historical.extend(r for r in results if isinstance(r, Mapping))
            else:
                findings[CURRENT_NEWS] = [
                    {
                        "title": r.get("title"),
                        "url": r.get("url"),
                        "description": r.get("description"),
                    }
                    for r in results[:5] if isinstance(r, Mapping)
                ]

        if data.get("extracted"):
            findings[EXTRACTED_DATA] = data["extracted"]

        text = data.get("text")
        if isinstance(text, str) and text:
            findings[PARSED_DOCUMENT] = text[:500] + "..." if len(text) > 500 else text
        if data.get("pages"):
            findings[DOCUMENT_PAGES] = data["pages"]

    if historical:
        sources = _dedupe_by_title(historical)
        findings[HISTORICAL_SOURCES] = [
            {
                "title": str(item.get("title") or ""),
                "date": str(item.get("date") or ""),
                "excerpt": _truncate(item.get("excerpt"), 200),
                "relevance_score": f"{round(_score(item) * 100)}%",
                "collection": item.get("collection") or "documents",
            }
            for item in sources
        ]

        if ai_used_retrieval:
            lines = "\n".join(
                f"- {str(item.get('title') or '')[:60]} ({round(_score(item) * 100)}% match)"
                for item in sources
            )
            plural = "s" if len(sources) > 1 else ""
            findings[WHY] = (
                f"This analysis is grounded in {len(sources)} historical document{plural}:\n\n"
                f"{lines}\n\n"
                "The model compared current events against this historical context "
                "to judge their significance."
            )

    return findings


def _dedupe_by_title(items: List[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Keep the highest-scoring hit per normalized title, best first"""
    best: Dict[str, Mapping[str, Any]] = {}
    for item in items:
        key = str(item.get("title") or "")[:50].lower()
        existing = best.get(key)
        if existing is None or _score(item) > _score(existing):
            best[key] = item
    return sorted(best.values(), key=_score, reverse=True)


def _score(item: Mapping[str, Any]) -> float:
    """Relevance score of a hit; missing or non-numeric scores count as 0"""
    try:
        return float(item.get("score") or 0)
    except (TypeError, ValueError):
        return 0.0


def _truncate(text: Any, limit: int) -> str:
    text = str(text or "")
    return text[:limit] + "..." if len(text) > limit else text


def render_findings_html(findings: Mapping[str, Any], title: str = "Workflow Report") -> str:
    """Render a findings digest as a simple HTML email body"""
    sections = []
    for heading, value in findings.items():
        sections.append(
            f"<h2 style=\"font-size:16px;margin:24px 0 8px\">{html.escape(str(heading))}</h2>"
            f"{_render_value(value)}"
        )

    body = "".join(sections) or "<p>No findings were produced by upstream nodes.</p>"
    return (
        "<!DOCTYPE html><html><body style=\"font-family:sans-serif;max-width:640px;margin:0 auto\">"
        f"<h1 style=\"font-size:20px\">{html.escape(title)}</h1>{body}</body></html>"
    )


def render_findings_text(findings: Mapping[str, Any]) -> str:
    parts = []
    for heading, value in findings.items():
        if isinstance(value, str):
            rendered = value
        else:
            rendered = json.dumps(value, indent=2, default=str)
        parts.append(f"{heading}\n{rendered}")
    return "\n\n".join(parts)


def _render_value(value: Any) -> str:
    if isinstance(value, list):
        items = "".join(f"<li>{_render_value(item)}</li>" for item in value)
        return f"<ul>{items}</ul>"
    if isinstance(value, Mapping):
        rows = "".join(
            f"<div><strong>{html.escape(str(k))}:</strong> {_render_value(v)}</div>"
            for k, v in value.items() if v is not None
        )
        return rows
    return f"<span style=\"white-space:pre-wrap\">{html.escape(str(value))}</span>"
