"""Pydantic schemas for the /analyze and /compare endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .chart_schema import ChartSeries, MetricRow
from .metrics_schema import BusinessMetrics, ComparisonResult


class SectionedAnalysis(BaseModel):
    """Section-keyed analysis text. Missing sections are empty strings, never null."""

    overview: str = ""
    market_opportunity: str = ""
    competitive_landscape: str = ""
    business_model: str = ""
    team_assessment: str = ""
    risks_and_challenges: str = ""
    investment_potential: str = ""


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    startup_name: Optional[str] = Field(default=None, alias="startupName", max_length=255)
    founder_name: Optional[str] = Field(default=None, alias="founderName", max_length=255)
    user_id: Optional[str] = Field(
        default=None,
        alias="userId",
        max_length=255,
        description="Identity-provider user id; when present the analysis is saved",
    )


class AnalyzeResponse(BaseModel):
    success: bool = True
    analysis: SectionedAnalysis
    citations: List[str] = Field(default_factory=list, description="URLs cited in the analysis")
    metrics: Optional[BusinessMetrics] = None
    charts: List[ChartSeries] = Field(default_factory=list)
    table: List[MetricRow] = Field(default_factory=list)
    persisted: bool = False


class CompareRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    businesses_string: Optional[str] = Field(
        default=None,
        alias="businessesString",
        description='Exactly two comma-separated names, e.g. "Apple, Microsoft"',
    )
    render_figures: bool = Field(
        default=False,
        alias="renderFigures",
        description="Also return plotly figure JSON for each chart",
    )


class CompareResponse(BaseModel):
    success: bool = True
    comparison: str = Field(..., description="Raw oracle markdown, including the metrics block")
    metrics: Optional[ComparisonResult] = None
    metrics_error: Optional[str] = None
    charts: List[ChartSeries] = Field(default_factory=list)
    table: List[MetricRow] = Field(default_factory=list)
    figures: Optional[Dict[str, Any]] = None
