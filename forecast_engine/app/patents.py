"""
Patent document lookup used to ground the analysis prompt.

Flow:
1. Turn the free-text query into a case-insensitive term match over the text fields.
2. Turn filter tags ("year:>=2020", "region:US") into field conditions.
3. Read up to `limit` documents across the configured patent collections.
4. Summarise the documents with pandas so the prompt gets counts, not raw records.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from pymongo.database import Database

from .config import get_settings
from .db import get_db
from .schemas import PatentSearchParams
from .utils import safe_json

logger = logging.getLogger(__name__)

TEXT_FIELDS = ["title", "abstract", "keywords"]

# Source column -> canonical column, first match wins
COLUMN_MAP = {
    "title": "Title",
    "Title": "Title",
    "Publication Title": "Title",
    "Patent Title": "Title",
    "year": "Year",
    "Year": "Year",
    "publication_year": "Year",
    "Publication Year": "Year",
    "assignee": "Organization",
    "Assignee": "Organization",
    "Applicants": "Organization",
    "organization": "Organization",
    "domain": "Domain",
    "Technology Field": "Domain",
    "region": "Region",
}

_FILTER_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_.]*)\s*:\s*(>=|<=|>|<|=)?\s*(.+?)\s*$")
_OPERATORS = {">=": "$gte", "<=": "$lte", ">": "$gt", "<": "$lt"}


def _coerce(value: str) -> Any:
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


def parse_filter(tag: str) -> Optional[Tuple[str, Any]]:
    """
    Parse one filter tag into (field, mongo condition).
    Returns None for malformed tags and for range operators on non-numeric values.
    """
    match = _FILTER_RE.match(tag or "")
    if not match:
        return None
    field, op, raw = match.groups()
    value = _coerce(raw)

    if op in _OPERATORS:
        if isinstance(value, str):
            return None
        return field, {_OPERATORS[op]: value}
    if isinstance(value, str):
        return field, {"$regex": f"^{re.escape(value)}$", "$options": "i"}
    return field, value


def _query_terms(query: str) -> List[str]:
    return [t for t in re.split(r"\W+", query) if len(t) >= 2]


def build_query(params: PatentSearchParams) -> Tuple[Dict[str, Any], List[str]]:
    """Build the Mongo filter document; also return the filter tags that were applied."""
    conditions: List[Dict[str, Any]] = []

    terms = _query_terms(params.query)
    if terms:
        pattern = "|".join(re.escape(t) for t in terms)
        conditions.append({
            "$or": [{field: {"$regex": pattern, "$options": "i"}} for field in TEXT_FIELDS]
        })

    applied: List[str] = []
    for tag in params.filters or []:
        parsed = parse_filter(tag)
        if parsed is None:
            logger.warning(f"Ignoring malformed filter tag: {tag!r}")
            continue
        field, condition = parsed
        conditions.append({field: condition})
        applied.append(tag.strip())

    if not conditions:
        return {}, applied
    if len(conditions) == 1:
        return conditions[0], applied
    return {"$and": conditions}, applied


def search_patents(
    params: PatentSearchParams,
    db: Optional[Database] = None,
) -> Tuple[List[Dict[str, Any]], List[str]]:
    """
    Fetch matching patent documents from every configured collection.
    Returns (documents, applied filter tags). Documents are JSON-safe and tagged with their collection.
    """
    db = db if db is not None else get_db()
    mongo_query, applied = build_query(params)
    logger.info(f"Patent search query={params.query!r} filters={applied} limit={params.limit}")

    docs: List[Dict[str, Any]] = []
    for name in get_settings().patent_collections:
        remaining = params.limit - len(docs)
        if remaining <= 0:
            break
        for doc in db[name].find(mongo_query).limit(remaining):
            doc = safe_json(doc)
            doc["collection"] = name
            docs.append(doc)

    logger.info(f"Patent search returned {len(docs)} documents")
    return docs, applied


def to_dataframe(docs: List[Dict[str, Any]]) -> pd.DataFrame:
    """Normalise raw documents into Title / Year / Organization / Domain / Region columns."""
    raw = pd.DataFrame(docs)
    df = pd.DataFrame(index=raw.index)
    for source, target in COLUMN_MAP.items():
        if source in raw.columns and target not in df.columns:
            df[target] = raw[source]

    if "Title" not in df.columns:
        df["Title"] = "Unknown Title"
    df["Title"] = df["Title"].fillna("Unknown Title").astype(str)

    if "Year" in df.columns:
        df["Year"] = pd.to_numeric(df["Year"], errors="coerce").round().astype("Int64")
    else:
        df["Year"] = pd.Series([pd.NA] * len(df), dtype="Int64", index=df.index)

    if "Organization" not in df.columns:
        df["Organization"] = "Unknown Org"
    df["Organization"] = df["Organization"].fillna("Unknown Org").astype(str)
    return df


def document_titles(docs: List[Dict[str, Any]]) -> List[str]:
    if not docs:
        return []
    return to_dataframe(docs)["Title"].drop_duplicates().tolist()


def summarize_patents(docs: List[Dict[str, Any]], sample_size: int = 10) -> str:
    """
    Format the fetched documents into a compact context block for the LLM.
    Includes: count, year range, filings per year, top organizations and domains, sample titles.
    """
    if not docs:
        return ""

    df = to_dataframe(docs)
    parts = [f"Matching patent documents: {len(df)}"]

    years = df["Year"].dropna()
    if not years.empty:
        parts.append(f"Year range: {int(years.min())}-{int(years.max())}")
        per_year = years.value_counts().sort_index()
        parts.append(
            "Filings per year: " + ", ".join(f"{int(y)}={int(c)}" for y, c in per_year.items())
        )

    orgs = df.loc[df["Organization"] != "Unknown Org", "Organization"]
    if not orgs.empty:
        top = orgs.value_counts().head(5)
        parts.append("Top organizations: " + ", ".join(f"{o}({int(c)})" for o, c in top.items()))

    if "Domain" in df.columns:
        domains = df["Domain"].dropna()
        if not domains.empty:
            top = domains.astype(str).value_counts().head(5)
            parts.append("Top domains: " + ", ".join(f"{d}({int(c)})" for d, c in top.items()))

    titles = df["Title"].drop_duplicates().head(sample_size).tolist()
    parts.append("Sample titles:\n" + "\n".join(f"  - {t}" for t in titles))
    return "\n".join(parts)
