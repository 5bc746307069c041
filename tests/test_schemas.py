"""Tests for the analysis response models and the strict JSON schema."""

import pytest
from pydantic import ValidationError

from forecast_engine.app.schemas import (
    ANALYSIS_JSON_SCHEMA,
    AnalysisResponse,
    PatentSearchParams,
)


class TestAnalysisResponse:
    """Validation of model output against AnalysisResponse"""

    def test_valid_payload(self, analysis_payload):
        result = AnalysisResponse.model_validate(analysis_payload)

        assert result.graphs.s_curve.x[0] == 2018
        assert result.graphs.hype_curve.series[1].name == "Adoption"
        assert result.graphs.innovation_usage.x == ["Q1-2023", "Q2-2023", "Q3-2023"]
        assert result.technology_convergence.convergence_scores == [0.6, 0.9, 0.4]
        assert result.metadata.timestamp == "2024-05-01T12:00:00.000Z"

    def test_integers_stay_integers(self, analysis_payload):
        dumped = AnalysisResponse.model_validate(analysis_payload).model_dump()
        assert dumped["graphs"]["s_curve"]["x"] == [2018, 2019, 2020, 2021, 2022]
        assert isinstance(dumped["graphs"]["s_curve"]["x"][0], int)

    def test_extra_key_rejected(self, analysis_payload):
        analysis_payload["graphs"]["s_curve"]["color"] = "red"
        with pytest.raises(ValidationError):
            AnalysisResponse.model_validate(analysis_payload)

    def test_missing_section_rejected(self, analysis_payload):
        del analysis_payload["metadata"]
        with pytest.raises(ValidationError):
            AnalysisResponse.model_validate(analysis_payload)

    def test_non_numeric_series_rejected(self, analysis_payload):
        analysis_payload["graphs"]["s_curve"]["y"] = ["lots", "more"]
        with pytest.raises(ValidationError):
            AnalysisResponse.model_validate(analysis_payload)

    @pytest.mark.parametrize("values", [["120"], ["5e2"], [True], [1, False]])
    def test_numeric_strings_and_booleans_rejected(self, analysis_payload, values):
        analysis_payload["graphs"]["s_curve"]["y"] = values
        with pytest.raises(ValidationError):
            AnalysisResponse.model_validate(analysis_payload)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_scores_rejected(self, analysis_payload, value):
        analysis_payload["technology_convergence"]["convergence_scores"][0] = value
        with pytest.raises(ValidationError):
            AnalysisResponse.model_validate(analysis_payload)

    def test_floats_and_ints_both_accepted(self, analysis_payload):
        analysis_payload["graphs"]["s_curve"]["y"] = [1, 2.5, -3]
        result = AnalysisResponse.model_validate(analysis_payload)
        assert result.graphs.s_curve.y == [1, 2.5, -3]

    def test_numeric_labels_rejected_for_innovation_usage(self, analysis_payload):
        analysis_payload["graphs"]["innovation_usage"]["x"] = [1, 2, 3]
        with pytest.raises(ValidationError):
            AnalysisResponse.model_validate(analysis_payload)


class TestAnalysisJsonSchema:
    """The schema sent to the model must satisfy strict-mode rules everywhere"""

    def _objects(self, node):
        if isinstance(node, dict):
            if node.get("type") == "object":
                yield node
            for value in node.values():
                yield from self._objects(value)
        elif isinstance(node, list):
            for value in node:
                yield from self._objects(value)

    def test_every_object_is_closed_and_fully_required(self):
        objects = list(self._objects(ANALYSIS_JSON_SCHEMA))
        assert len(objects) == 8
        for obj in objects:
            assert obj["additionalProperties"] is False
            assert sorted(obj["required"]) == sorted(obj["properties"].keys())

    def test_top_level_fields(self):
        assert ANALYSIS_JSON_SCHEMA["required"] == [
            "generated_text", "graphs", "technology_convergence", "summary", "metadata"
        ]
        assert ANALYSIS_JSON_SCHEMA["properties"]["graphs"]["required"] == [
            "s_curve", "hype_curve", "innovation_usage"
        ]

    def test_schema_matches_model_fields(self, analysis_payload):
        assert set(ANALYSIS_JSON_SCHEMA["properties"]) == set(AnalysisResponse.model_fields)


class TestPatentSearchParams:

    def test_defaults(self):
        params = PatentSearchParams(query="  lidar  ")
        assert params.query == "lidar"
        assert params.filters is None
        assert params.limit == 50

    def test_blank_query_rejected(self):
        with pytest.raises(ValidationError):
            PatentSearchParams(query="   ")

    @pytest.mark.parametrize("limit", [0, 201])
    def test_limit_bounds(self, limit):
        with pytest.raises(ValidationError):
            PatentSearchParams(query="lidar", limit=limit)
