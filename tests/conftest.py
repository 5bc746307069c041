"""Shared fixtures: clean environment, reset cached handles, a valid analysis payload."""

import copy

import pytest

from forecast_engine.app import db as db_module
from forecast_engine.app.llm_client import _openai_client

ENV_VARS = [
    "LLM_PROVIDER", "OPENAI_API_KEY", "OPENAI_MODEL", "GEMINI_API_KEY", "LLM_API_KEY",
    "GEMINI_MODEL", "LLM_TEMPERATURE", "LLM_MAX_TOKENS", "MONGODB_URI", "MONGODB_DB_NAME",
    "PATENT_COLLECTIONS", "AUTH_USERINFO_URL", "AUTH_SIGN_IN_URL", "AUTH_SIGN_UP_URL",
    "LOG_LEVEL",
]

ANALYSIS_PAYLOAD = {
    "generated_text": "Solid-state battery patents grew steadily.\n\nToyota leads filings.",
    "graphs": {
        "s_curve": {
            "x": [2018, 2019, 2020, 2021, 2022],
            "y": [120, 260, 540, 900, 1100],
            "description": "Cumulative filings follow an S-curve.",
        },
        "hype_curve": {
            "x": [2018, 2019, 2020, 2021, 2022],
            "series": [
                {"name": "Expectations", "data": [20, 80, 95, 50, 60]},
                {"name": "Adoption", "data": [5, 10, 20, 35, 50]},
            ],
            "description": "Expectations peaked in 2020.",
        },
        "innovation_usage": {
            "x": ["Q1-2023", "Q2-2023", "Q3-2023"],
            "y": [100, 200, 300],
            "description": "Quarterly filings.",
        },
    },
    "technology_convergence": {
        "technologies": ["Electric Vehicles", "Solid Electrolytes", "Grid Storage"],
        "convergence_scores": [0.6, 0.9, 0.4],
        "description": "Strongest overlap with electrolyte research.",
    },
    "summary": "Rapid growth phase.",
    "metadata": {
        "source_documents": ["USPTO Patent Database 2024"],
        "filters_used": ["Technology: Batteries"],
        "timestamp": "2024-05-01T12:00:00.000Z",
    },
}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Every test starts with no provider, store or identity configuration."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    db_module._client = None
    _openai_client.cache_clear()
    yield
    db_module._client = None
    _openai_client.cache_clear()


@pytest.fixture
def analysis_payload():
    return copy.deepcopy(ANALYSIS_PAYLOAD)
