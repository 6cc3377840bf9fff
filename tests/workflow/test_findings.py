# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the findings digest
"""

from flowgate.workflow.findings import (
    AI_ANALYSIS,
    CURRENT_NEWS,
    DOCUMENT_PAGES,
    EXTRACTED_DATA,
    HISTORICAL_SOURCES,
    PARSED_DOCUMENT,
    WHY,
    extract_findings,
    render_findings_html,
    render_findings_text,
)


def retrieval_output(*hits):
    return {"results": list(hits), "query": "ACME", "total_results": len(hits), "method": "cosine_similarity"}


def hit(title, score, excerpt="Quarterly revenue rose."):
    return {"title": title, "date": "2024-05-01", "excerpt": excerpt, "score": score, "collection": "earnings"}


def test_ai_response():
    findings = extract_findings({"ai": {"response": "Raise prices", "meta": {"used_retrieval": False}}})
    assert findings == {AI_ANALYSIS: "Raise prices"}


def test_search_results_become_top_five_news():
    results = [{"title": f"T{i}", "url": f"https://n/{i}", "description": "d", "content": "long"} for i in range(8)]
    findings = extract_findings({"fetch": {"query": "acme", "results": results}})

    news = findings[CURRENT_NEWS]
    assert len(news) == 5
    assert news[0] == {"title": "T0", "url": "https://n/0", "description": "d"}


def test_extracted_and_parsed_document():
    findings = extract_findings({
        "extract": {"extracted": {"revenue": 10}},
        "parse": {"text": "x" * 600, "pages": 12},
    })

    assert findings[EXTRACTED_DATA] == {"revenue": 10}
    assert findings[PARSED_DOCUMENT] == "x" * 500 + "..."
    assert findings[DOCUMENT_PAGES] == 12


def test_short_document_not_truncated():
    assert extract_findings({"parse": {"text": "short"}})[PARSED_DOCUMENT] == "short"


def test_historical_sources_deduplicated_and_sorted():
    findings = extract_findings({
        "rag-a": retrieval_output(hit("Q1 Earnings Call", 0.71), hit("Guidance cut", 0.9)),
        "rag-b": retrieval_output(hit("q1 earnings call", 0.83, excerpt="e" * 250)),
    })

    sources = findings[HISTORICAL_SOURCES]
    assert [s["title"] for s in sources] == ["Guidance cut", "q1 earnings call"]
    assert sources[0]["relevance_score"] == "90%"
    assert sources[1]["relevance_score"] == "83%"
    assert sources[1]["excerpt"] == "e" * 200 + "..."
    assert CURRENT_NEWS not in findings


def test_why_section_only_when_ai_used_retrieval():
    rag = retrieval_output(hit("Guidance cut", 0.9))

    without = extract_findings({"rag": rag, "ai": {"response": "Sell", "meta": {"used_retrieval": False}}})
    assert WHY not in without

    with_reasoning = extract_findings({"rag": rag, "ai": {"response": "Sell", "meta": {"used_retrieval": True}}})
    assert "1 historical document:" in with_reasoning[WHY]
    assert "Guidance cut (90% match)" in with_reasoning[WHY]


def test_upstream_findings_are_merged():
    findings = extract_findings({"approval": {"approved": True, "findings": {AI_ANALYSIS: "From approval"}}})
    assert findings == {AI_ANALYSIS: "From approval"}


def test_failed_and_non_dict_inputs_ignored():
    assert extract_findings({"a": None, "b": "text", "c": 3}) == {}


def test_render_html_escapes_values():
    html = render_findings_html({AI_ANALYSIS: "<script>x</script>", CURRENT_NEWS: [{"title": "A&B"}]}, title="Report")

    assert "<h1 style=\"font-size:20px\">Report</h1>" in html
    assert "&lt;script&gt;" in html
    assert "A&amp;B" in html


def test_render_html_empty():
    assert "No findings were produced" in render_findings_html({})


def test_render_text():
    text = render_findings_text({AI_ANALYSIS: "Hold", EXTRACTED_DATA: {"revenue": 1}})
    assert text.startswith(f"{AI_ANALYSIS}\nHold")
    assert '"revenue": 1' in text


def test_empty_score_and_title_tolerated():
    findings = extract_findings({
        "rag": retrieval_output(
            {"title": None, "date": None, "excerpt": None, "score": None},
            hit("Q3 outlook", "n/a"),
        ),
        "ai": {"response": "Hold", "meta": {"used_retrieval": True}},
    })

    sources = findings[HISTORICAL_SOURCES]
    assert sources[0] == {"title": "", "date": "", "excerpt": "", "relevance_score": "0%", "collection": "documents"}
    assert sources[1]["title"] == "Q3 outlook"
    assert sources[1]["relevance_score"] == "0%"
    assert "(0% match)" in findings[WHY]
