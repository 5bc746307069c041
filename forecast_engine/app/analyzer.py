"""
Core analysis pipeline.

Flow:
1. Receive a free-text query (plus optional filter tags and a document limit)
2. If a document store is configured, fetch matching patents and summarise them for the prompt
3. Single LLM call under the strict analysis JSON schema
4. Parse + validate the response as AnalysisResponse
5. On ANY failure, return a safe empty AnalysisResponse instead of raising
"""

import json
import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

from .config import get_settings
from .llm_client import call_llm
from .patents import document_titles, search_patents, summarize_patents
from .schemas import (
    ANALYSIS_JSON_SCHEMA,
    ANALYSIS_SCHEMA_NAME,
    AnalysisResponse,
    PatentSearchParams,
)
from .utils import utc_now_iso

logger = logging.getLogger(__name__)

# Prompt file paths
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
SYSTEM_PROMPT_PATH = os.path.join(BASE_DIR, "prompts", "analysis_system.txt")
USER_PROMPT_PATH = os.path.join(BASE_DIR, "prompts", "analysis_user.txt")


def _read_prompt(path: str) -> str:
    """Read a prompt text file."""
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def _reject_constant(name: str):
    raise ValueError(f"Non-finite number {name} in LLM response")


def _extract_json(text: str) -> Dict[str, Any]:
    """
    Parse the LLM response as one JSON object.
    Strict-schema output is plain JSON; Gemini may wrap the whole body in a markdown fence.
    NaN / Infinity are rejected like any other invalid JSON.
    """
    text = text.strip()

    match = _FENCE_RE.fullmatch(text)
    if match:
        text = match.group(1)

    parsed = json.loads(text, parse_constant=_reject_constant)
    if not isinstance(parsed, dict):
        raise ValueError("LLM response is not a JSON object")
    return parsed


def fallback_response(query: str) -> AnalysisResponse:
    """Safe empty analysis returned whenever the pipeline fails."""
    return AnalysisResponse.model_validate({
        "generated_text": f'Unable to analyze "{query}".',
        "graphs": {
            "s_curve": {"x": [], "y": [], "description": ""},
            "hype_curve": {"x": [], "series": [], "description": ""},
            "innovation_usage": {"x": [], "y": [], "description": ""},
        },
        "technology_convergence": {
            "technologies": [], "convergence_scores": [], "description": ""
        },
        "summary": "Analysis unavailable.",
        "metadata": {
            "source_documents": [],
            "filters_used": [],
            "timestamp": utc_now_iso(),
        },
    })


def _gather_context(params: PatentSearchParams) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Fetch grounding documents. Store problems degrade to an ungrounded analysis."""
    if not get_settings().db_enabled:
        return [], []
    try:
        return search_patents(params)
    except Exception as e:
        logger.error(f"Patent lookup failed, continuing without document context: {e}")
        return [], []


def build_user_prompt(query: str, filters: List[str], context: str) -> str:
    template = _read_prompt(USER_PROMPT_PATH)
    return template.format(
        query=query,
        filters=", ".join(filters) if filters else "(none)",
        context=context if context else "(no patent documents available)",
    )


def _merge_grounding(result: AnalysisResponse, docs: List[Dict[str, Any]], applied: List[str]) -> AnalysisResponse:
    metadata = result.metadata
    if docs and not metadata.source_documents:
        metadata.source_documents = document_titles(docs)
    for tag in applied:
        if tag not in metadata.filters_used:
            metadata.filters_used.append(tag)
    if not metadata.timestamp:
        metadata.timestamp = utc_now_iso()
    return result


def analyze_query(
    query: str,
    filters: Optional[List[str]] = None,
    limit: Optional[int] = None,
) -> AnalysisResponse:
    """
    Run the full analysis for one query.

    Args:
        query: Free-text user query
        filters: Optional filter tags applied to the patent lookup, e.g. ["year:>=2020"]
        limit: Maximum number of patent documents used as context (1-200, default 50)

    Returns:
        A schema-valid AnalysisResponse; the fallback response on any failure.
    """
    try:
        params = PatentSearchParams(query=query, filters=filters, limit=limit or 50)

        docs, applied = _gather_context(params)
        context = summarize_patents(docs)

        system_prompt = _read_prompt(SYSTEM_PROMPT_PATH)
        user_prompt = build_user_prompt(params.query, applied, context)

        content = call_llm(
            system_prompt,
            user_prompt,
            json_schema=ANALYSIS_JSON_SCHEMA,
            schema_name=ANALYSIS_SCHEMA_NAME,
        )
        logger.debug(f"LLM raw response: {content[:1000]}")

        parsed = _extract_json(content)
        result = AnalysisResponse.model_validate(parsed)
        result = _merge_grounding(result, docs, applied)

        logger.info(f"Analysis complete for query={params.query!r} documents={len(docs)}")
        return result

    except Exception as e:
        logger.error(f"Analysis Error: {type(e).__name__}: {e}")
        return fallback_response(query)
