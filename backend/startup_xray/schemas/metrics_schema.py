"""Typed metrics records produced by the Response Parser.

Every numeric field is Optional: ``None`` means unknown and must never be
coerced to 0 downstream.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Field names on BusinessMetrics that hold numbers (not name / competitors).
NUMERIC_METRIC_FIELDS: tuple[str, ...] = (
    "founding_year",
    "funding_amount_millions",
    "valuation_millions",
    "employee_count",
    "revenue_millions",
    "growth_rate_percent",
    "market_share_percent",
    "market_size_billions",
)


class BusinessMetrics(BaseModel):
    """Per-subject metrics in canonical units (money in millions USD)."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Subject name as entered by the user")
    founding_year: Optional[int] = Field(default=None, description="Year founded")
    funding_amount_millions: Optional[float] = Field(default=None, description="Total funding raised (USD millions)")
    valuation_millions: Optional[float] = Field(default=None, description="Latest valuation (USD millions)")
    employee_count: Optional[int] = Field(default=None, description="Headcount")
    revenue_millions: Optional[float] = Field(default=None, description="Annual revenue (USD millions)")
    growth_rate_percent: Optional[float] = Field(default=None, description="Annual growth rate, 0-100 scale")
    market_share_percent: Optional[float] = Field(default=None, description="Market share, 0-100 scale")
    market_size_billions: Optional[float] = Field(default=None, description="Addressable market size (USD billions)")
    competitors: Optional[List[str]] = Field(
        default=None,
        description="De-duplicated competitor names, excluding the subject itself",
    )

    def known_fields(self) -> list[str]:
        """Names of numeric fields whose value is known."""
        return [f for f in NUMERIC_METRIC_FIELDS if getattr(self, f) is not None]

    @property
    def is_empty(self) -> bool:
        return not self.known_fields() and not self.competitors


class ComparisonResult(BaseModel):
    """Two metrics records positionally paired with the two input names."""

    model_config = ConfigDict(frozen=True)

    subjects: tuple[BusinessMetrics, BusinessMetrics]
    narrative_differences: str = ""
