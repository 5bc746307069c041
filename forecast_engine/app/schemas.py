"""
Pydantic request/response models.

Rationale:
- Define explicit input/output contracts for the API and for the model output.
- Every analysis object forbids extra keys, mirroring the strict JSON schema sent to the LLM.
"""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, field_validator

# No coercion from "120" or true; ints stay ints
Number = Union[StrictInt, StrictFloat]


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)


class SCurve(_Strict):
    x: List[Number]
    y: List[Number]
    description: str


class HypeCurveSeries(_Strict):
    name: str
    data: List[Number]


class HypeCurve(_Strict):
    x: List[Number]
    series: List[HypeCurveSeries]
    description: str


class InnovationUsage(_Strict):
    x: List[str]
    y: List[Number]
    description: str


class Graphs(_Strict):
    s_curve: SCurve
    hype_curve: HypeCurve
    innovation_usage: InnovationUsage


class TechnologyConvergence(_Strict):
    technologies: List[str]
    convergence_scores: List[Number]
    description: str


class Metadata(_Strict):
    source_documents: List[str]
    filters_used: List[str]
    timestamp: str


class AnalysisResponse(_Strict):
    generated_text: str
    graphs: Graphs
    technology_convergence: TechnologyConvergence
    summary: str
    metadata: Metadata


class AnalyzeRequest(BaseModel):
    query: Optional[str] = None
    filters: Optional[List[str]] = None
    limit: Optional[int] = None


class ApiResponse(BaseModel):
    success: bool
    data: Optional[AnalysisResponse] = None
    error: Optional[str] = None


class PatentSearchParams(BaseModel):
    query: str = Field(..., min_length=1)
    # Free-form tags, e.g. ["year:>=2020", "region:US"]
    filters: Optional[List[str]] = None
    limit: int = Field(50, ge=1, le=200)

    @field_validator("query")
    @classmethod
    def _strip_query(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("query is required")
        return value


class SignUpRequest(BaseModel):
    # Optional so missing fields produce the API's own 400 instead of a 422
    username: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    id: str
    username: str
    email: str
    name: str
    last_login: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# ---------------------------------------------------------------------------
# JSON schema sent to the model (response_format=json_schema, strict)
# ---------------------------------------------------------------------------

def _array(item_type: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
    items = {"type": item_type} if isinstance(item_type, str) else item_type
    return {"type": "array", "items": items}


def _object(properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties.keys()),
        "additionalProperties": False,
    }


ANALYSIS_JSON_SCHEMA: Dict[str, Any] = _object({
    "generated_text": {"type": "string"},
    "graphs": _object({
        "s_curve": _object({
            "x": _array("number"),
            "y": _array("number"),
            "description": {"type": "string"},
        }),
        "hype_curve": _object({
            "x": _array("number"),
            "series": _array(_object({
                "name": {"type": "string"},
                "data": _array("number"),
            })),
            "description": {"type": "string"},
        }),
        "innovation_usage": _object({
            "x": _array("string"),
            "y": _array("number"),
            "description": {"type": "string"},
        }),
    }),
    "technology_convergence": _object({
        "technologies": _array("string"),
        "convergence_scores": _array("number"),
        "description": {"type": "string"},
    }),
    "summary": {"type": "string"},
    "metadata": _object({
        "source_documents": _array("string"),
        "filters_used": _array("string"),
        "timestamp": {"type": "string"},
    }),
})

ANALYSIS_SCHEMA_NAME = "analysis_response"
