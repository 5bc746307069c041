"""
Deterministic conversion of an AnalysisResponse into ECharts option objects.

No LLM involved: the results page embeds these dicts as JSON and hands them to echarts.
Derived series:
- innovation_usage gets a "Market Adoption" line at MARKET_ADOPTION_RATIO of filings
- hype_curve with x values but no series gets a synthesized hype-cycle shape
"""

import math
from typing import Any, Dict, List

from .schemas import AnalysisResponse

MARKET_ADOPTION_RATIO = 0.85

_GRID = {"left": "3%", "right": "4%", "bottom": "3%", "containLabel": True}


def _title(text: str) -> Dict[str, Any]:
    return {"text": text, "left": "center", "textStyle": {"fontSize": 18, "fontWeight": "bold"}}


def market_adoption(values: List[float]) -> List[float]:
    return [round(v * MARKET_ADOPTION_RATIO, 2) for v in values]


def synthesize_hype_cycle(x: List[float], peak: float = 100.0) -> List[float]:
    """
    Hype-cycle shaped curve over x: an early expectation peak, a trough,
    then a slope of enlightenment to a plateau at ~60% of the peak.
    """
    n = len(x)
    if n == 0:
        return []
    if n == 1:
        return [peak]
    values = []
    for i in range(n):
        t = i / (n - 1)
        hype = math.exp(-((t - 0.25) ** 2) / 0.01)
        plateau = 0.6 / (1 + math.exp(-12 * (t - 0.7)))
        values.append(round(peak * (hype + plateau), 2))
    return values


def s_curve_options(result: AnalysisResponse) -> Dict[str, Any]:
    s_curve = result.graphs.s_curve
    return {
        "title": _title("S-Curve Analysis"),
        "tooltip": {"trigger": "axis", "axisPointer": {"type": "cross"}},
        "grid": _GRID,
        "xAxis": {
            "type": "category",
            "data": s_curve.x,
            "boundaryGap": False,
            "name": "Year",
            "nameLocation": "middle",
            "nameGap": 30,
        },
        "yAxis": {"type": "value", "name": "Patent Count", "nameLocation": "middle", "nameGap": 50},
        "series": [{
            "name": "S-Curve",
            "type": "line",
            "smooth": True,
            "data": s_curve.y,
            "lineStyle": {"width": 3, "color": "#4F46E5"},
            "areaStyle": {"opacity": 0.15, "color": "#4F46E5"},
            "emphasis": {"focus": "series"},
        }],
    }


def hype_curve_options(result: AnalysisResponse) -> Dict[str, Any]:
    hype = result.graphs.hype_curve
    series = [{"name": s.name, "data": s.data} for s in hype.series]
    if not series and hype.x:
        series = [{"name": "Expectations", "data": synthesize_hype_cycle(hype.x)}]

    return {
        "title": _title("Hype Cycle"),
        "tooltip": {"trigger": "axis"},
        "legend": {"data": [s["name"] for s in series], "bottom": 10},
        "grid": {**_GRID, "bottom": "15%"},
        "xAxis": {"type": "category", "data": hype.x, "name": "Year", "nameLocation": "middle", "nameGap": 30},
        "yAxis": {"type": "value", "name": "Visibility", "nameLocation": "middle", "nameGap": 50},
        "series": [
            {
                "name": s["name"],
                "type": "line",
                "smooth": True,
                "symbol": "circle",
                "symbolSize": 8,
                "data": s["data"],
                "emphasis": {"focus": "series"},
            }
            for s in series
        ],
    }


def innovation_usage_options(result: AnalysisResponse) -> Dict[str, Any]:
    usage = result.graphs.innovation_usage
    return {
        "title": _title("Innovation Usage & Adoption"),
        "tooltip": {"trigger": "axis", "axisPointer": {"type": "cross", "crossStyle": {"color": "#999"}}},
        "legend": {"data": ["Patent Filings", "Market Adoption"], "bottom": 10},
        "grid": {**_GRID, "bottom": "15%"},
        "xAxis": {"type": "category", "data": usage.x, "axisPointer": {"type": "shadow"}, "axisLabel": {"rotate": 45}},
        "yAxis": [
            {"type": "value", "name": "Patent Filings", "nameLocation": "middle", "nameGap": 50},
            {"type": "value", "name": "Adoption Rate", "nameLocation": "middle", "nameGap": 50},
        ],
        "series": [
            {
                "name": "Patent Filings",
                "type": "bar",
                "data": usage.y,
                "itemStyle": {"color": "#8B5CF6", "borderRadius": [4, 4, 0, 0]},
            },
            {
                "name": "Market Adoption",
                "type": "line",
                "yAxisIndex": 1,
                "smooth": True,
                "data": market_adoption(usage.y),
                "lineStyle": {"width": 3, "color": "#F59E0B"},
                "itemStyle": {"color": "#F59E0B"},
            },
        ],
    }


def convergence_options(result: AnalysisResponse) -> Dict[str, Any]:
    conv = result.technology_convergence
    # Pairs beyond the shorter list are dropped; highest score first
    pairs = sorted(zip(conv.technologies, conv.convergence_scores), key=lambda p: p[1], reverse=True)
    return {
        "title": _title("Technology Convergence"),
        "tooltip": {"trigger": "axis", "axisPointer": {"type": "shadow"}},
        "grid": _GRID,
        "xAxis": {"type": "value", "name": "Convergence Score"},
        "yAxis": {"type": "category", "data": [p[0] for p in pairs], "inverse": True},
        "series": [{
            "name": "Convergence",
            "type": "bar",
            "data": [p[1] for p in pairs],
            "itemStyle": {"color": "#10B981"},
        }],
    }


def build_chart_options(result: AnalysisResponse) -> Dict[str, Dict[str, Any]]:
    """All chart options for the results page, keyed by chart id."""
    return {
        "s_curve": s_curve_options(result),
        "hype_curve": hype_curve_options(result),
        "innovation_usage": innovation_usage_options(result),
        "technology_convergence": convergence_options(result),
    }
