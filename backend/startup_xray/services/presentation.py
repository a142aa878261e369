"""Presentation Adapter — metrics → chart series and table rows.

Never plots a 0 for an unknown value: a subject with an unknown value is
listed in ``missing`` and left out of (bar/pie) or gapped in (radar) the
series, and a chart with nothing known at all gets a ``placeholder``.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from ..constants import (
    NOT_AVAILABLE,
    RADAR_CEILINGS,
    RADAR_LABELS,
    RADAR_MIN_KNOWN_METRICS,
    REST_OF_MARKET_COLOR,
    SUBJECT_COLORS,
)
from ..schemas.chart_schema import ChartDataset, ChartSeries, MetricRow
from ..schemas.metrics_schema import BusinessMetrics


def _colors(index: int) -> tuple[str, str]:
    return SUBJECT_COLORS[index % len(SUBJECT_COLORS)]


def _bar_series(
    metrics_list: Sequence[BusinessMetrics],
    *,
    chart_id: str,
    field: str,
    title: str,
    axis_label: str,
    placeholder: str,
) -> ChartSeries:
    labels: List[str] = []
    data: List[Optional[float]] = []
    background: List[str] = []
    border: List[str] = []
    missing: List[str] = []

    for index, metrics in enumerate(metrics_list):
        value = getattr(metrics, field)
        if value is None:
            missing.append(metrics.name)
            continue
        fill, edge = _colors(index)
        labels.append(metrics.name)
        data.append(float(value))
        background.append(fill)
        border.append(edge)

    if not labels:
        return ChartSeries(
            chart_id=chart_id,
            chart_type="bar",
            title=title,
            axis_label=axis_label,
            missing=missing,
            placeholder=placeholder,
        )

    return ChartSeries(
        chart_id=chart_id,
        chart_type="bar",
        title=title,
        axis_label=axis_label,
        labels=labels,
        datasets=[ChartDataset(label=title, data=data, background_colors=background, border_colors=border)],
        missing=missing,
    )


def build_funding_series(metrics_list: Sequence[BusinessMetrics]) -> ChartSeries:
    return _bar_series(
        metrics_list,
        chart_id="funding",
        field="funding_amount_millions",
        title="Total Funding",
        axis_label="USD (millions)",
        placeholder="No funding data available",
    )


def build_valuation_series(metrics_list: Sequence[BusinessMetrics]) -> ChartSeries:
    return _bar_series(
        metrics_list,
        chart_id="valuation",
        field="valuation_millions",
        title="Valuation",
        axis_label="USD (millions)",
        placeholder="No valuation data available",
    )


def build_growth_series(metrics_list: Sequence[BusinessMetrics]) -> ChartSeries:
    return _bar_series(
        metrics_list,
        chart_id="growth",
        field="growth_rate_percent",
        title="Annual Growth Rate",
        axis_label="Percent",
        placeholder="No growth data available",
    )


def build_market_share_series(metrics_list: Sequence[BusinessMetrics]) -> ChartSeries:
    """Pie of known market shares plus a "Rest of Market" slice.

    Only constructible when at least one subject knows both its market size
    and its share; the first such subject fixes the reference market.
    """
    reference = next(
        (
            m for m in metrics_list
            if m.market_size_billions is not None and m.market_share_percent is not None
        ),
        None,
    )
    missing = [m.name for m in metrics_list if m.market_share_percent is None]
    if reference is None:
        return ChartSeries(
            chart_id="market_share",
            chart_type="pie",
            title="Market Share",
            missing=[m.name for m in metrics_list],
            placeholder="No market share data available",
        )

    labels: List[str] = []
    data: List[Optional[float]] = []
    background: List[str] = []
    border: List[str] = []
    for index, metrics in enumerate(metrics_list):
        if metrics.market_share_percent is None:
            continue
        fill, edge = _colors(index)
        labels.append(metrics.name)
        data.append(float(metrics.market_share_percent))
        background.append(fill)
        border.append(edge)

    labels.append("Rest of Market")
    data.append(max(0.0, 100.0 - sum(v for v in data if v is not None)))
    background.append(REST_OF_MARKET_COLOR[0])
    border.append(REST_OF_MARKET_COLOR[1])

    return ChartSeries(
        chart_id="market_share",
        chart_type="pie",
        title=f"Market Share (of {format_billions(reference.market_size_billions)} market)",
        axis_label="Percent",
        labels=labels,
        datasets=[ChartDataset(label="Market Share", data=data, background_colors=background, border_colors=border)],
        missing=missing,
    )


def radar_point(field: str, value: Optional[float]) -> Optional[float]:
    """Scale a metric against its reference ceiling onto 0-100. Unknown stays None."""
    if value is None:
        return None
    scaled = float(value) / RADAR_CEILINGS[field] * 100.0
    return max(0.0, min(scaled, 100.0))


def build_radar_series(metrics_list: Sequence[BusinessMetrics]) -> ChartSeries:
    fields = list(RADAR_CEILINGS)
    labels = [RADAR_LABELS[f] for f in fields]

    datasets: List[ChartDataset] = []
    missing: List[str] = []
    for index, metrics in enumerate(metrics_list):
        points = [radar_point(f, getattr(metrics, f)) for f in fields]
        known = sum(1 for p in points if p is not None)
        if known < RADAR_MIN_KNOWN_METRICS:
            missing.append(metrics.name)
        fill, edge = _colors(index)
        datasets.append(
            ChartDataset(label=metrics.name, data=points, background_colors=[fill], border_colors=[edge])
        )

    if len(missing) == len(metrics_list):
        return ChartSeries(
            chart_id="radar",
            chart_type="radar",
            title="Overall Comparison",
            labels=labels,
            missing=missing,
            placeholder="Not enough data for an overall comparison",
        )

    return ChartSeries(
        chart_id="radar",
        chart_type="radar",
        title="Overall Comparison",
        axis_label="Score (0-100)",
        labels=labels,
        datasets=datasets,
        missing=missing,
    )


def build_chart_series(metrics_list: Sequence[BusinessMetrics]) -> List[ChartSeries]:
    """All chart slots, in display order. Always returns every slot."""
    return [
        build_funding_series(metrics_list),
        build_valuation_series(metrics_list),
        build_growth_series(metrics_list),
        build_market_share_series(metrics_list),
        build_radar_series(metrics_list),
    ]


def placeholder_chart_series(message: str) -> List[ChartSeries]:
    """Every chart slot in its "no data" state, e.g. when comparison metrics are unavailable."""
    return [
        ChartSeries(chart_id="funding", chart_type="bar", title="Total Funding", placeholder=message),
        ChartSeries(chart_id="valuation", chart_type="bar", title="Valuation", placeholder=message),
        ChartSeries(chart_id="growth", chart_type="bar", title="Annual Growth Rate", placeholder=message),
        ChartSeries(chart_id="market_share", chart_type="pie", title="Market Share", placeholder=message),
        ChartSeries(chart_id="radar", chart_type="radar", title="Overall Comparison", placeholder=message),
    ]


# ── Table formatting ────────────────────────────────────────────────────


def _trim(number: float) -> str:
    return f"{number:,.1f}".rstrip("0").rstrip(".")


def format_millions(value: Optional[float]) -> str:
    """120 → "$120M", 2500 → "$2.5B". Unknown → "N/A"."""
    if value is None:
        return NOT_AVAILABLE
    if abs(value) >= 1_000:
        return f"${_trim(value / 1_000)}B"
    return f"${_trim(value)}M"


def format_billions(value: Optional[float]) -> str:
    if value is None:
        return NOT_AVAILABLE
    if abs(value) >= 1_000:
        return f"${_trim(value / 1_000)}T"
    return f"${_trim(value)}B"


def format_percent(value: Optional[float]) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"{_trim(value)}%"


def format_count(value: Optional[int]) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"{value:,}"


def format_year(value: Optional[int]) -> str:
    return NOT_AVAILABLE if value is None else str(value)


TABLE_ROWS: List[tuple[str, str, Callable[[object], str]]] = [
    ("Founded", "founding_year", format_year),
    ("Total Funding", "funding_amount_millions", format_millions),
    ("Valuation", "valuation_millions", format_millions),
    ("Employees", "employee_count", format_count),
    ("Annual Revenue", "revenue_millions", format_millions),
    ("Growth Rate", "growth_rate_percent", format_percent),
    ("Market Share", "market_share_percent", format_percent),
    ("Market Size", "market_size_billions", format_billions),
]


def build_metrics_table(metrics_list: Sequence[BusinessMetrics]) -> List[MetricRow]:
    """Side-by-side rows, one column per subject. Competitors joined by commas."""
    rows = [
        MetricRow(metric=label, values=[fmt(getattr(m, field)) for m in metrics_list])
        for label, field, fmt in TABLE_ROWS
    ]
    rows.append(
        MetricRow(
            metric="Competitors",
            values=[", ".join(m.competitors) if m.competitors else NOT_AVAILABLE for m in metrics_list],
        )
    )
    return rows
