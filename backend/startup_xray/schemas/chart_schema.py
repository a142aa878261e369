"""Chart-ready series and table rows produced by the Presentation Adapter."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ChartType = Literal["bar", "pie", "radar"]


class ChartDataset(BaseModel):
    label: str
    # None marks a gap (unknown), never a zero-height bar.
    data: List[Optional[float]] = Field(default_factory=list)
    background_colors: List[str] = Field(default_factory=list)
    border_colors: List[str] = Field(default_factory=list)


class ChartSeries(BaseModel):
    """One chart slot. ``placeholder`` is set whenever there is nothing real to plot."""

    chart_id: str = Field(..., description="Stable slot id, e.g. 'funding'")
    chart_type: ChartType
    title: str
    axis_label: Optional[str] = None
    labels: List[str] = Field(default_factory=list)
    datasets: List[ChartDataset] = Field(default_factory=list)
    missing: List[str] = Field(
        default_factory=list,
        description="Subjects left out of this chart because their value is unknown",
    )
    placeholder: Optional[str] = Field(
        default=None,
        description="'No data' message to render instead of a chart",
    )

    @property
    def has_data(self) -> bool:
        return self.placeholder is None


class MetricRow(BaseModel):
    """One row of the side-by-side metrics table; unknown values read 'N/A'."""

    metric: str
    values: List[str]
