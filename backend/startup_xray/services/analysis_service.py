"""Analysis and comparison pipelines.

prompt → oracle → sections / metrics → chart series + table → (optional) save.

Only InvalidSubjectError and oracle errors propagate out of here; missing
data ends up as unknown fields, and persistence failures are logged.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from sqlalchemy.orm import Session

from ..exceptions import MetricsUnavailableError
from ..schemas.analysis_schema import (
    AnalyzeRequest,
    AnalyzeResponse,
    CompareRequest,
    CompareResponse,
    SectionedAnalysis,
)
from ..schemas.metrics_schema import BusinessMetrics
from ..schemas.subject_schema import AnalysisRequestMode, AnalysisSubject, ComparisonPair
from .chart_renderer import ChartBoard
from .metrics_parser import parse_comparison_metrics, parse_single_metrics
from .oracle_client import invoke_oracle
from .persistence import persist_analysis_best_effort
from .presentation import build_chart_series, build_metrics_table, placeholder_chart_series
from .prompt_builder import build_prompt
from .section_parser import cited_urls, parse_sections

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_MESSAGE = "Insufficient data to chart this comparison"


async def run_analysis(payload: AnalyzeRequest, db: Optional[Session] = None) -> AnalyzeResponse:
    """Single-subject analysis. Saves the result when a user id is supplied and a session is available."""
    subject = AnalysisSubject.from_names(payload.startup_name, payload.founder_name)
    bundle = build_prompt(subject, AnalysisRequestMode.SINGLE_ANALYSIS)

    print(f"🚀 [ANALYZE] Starting {subject.kind} analysis for {subject.display_name}")
    started = time.perf_counter()
    raw = await invoke_oracle(bundle)

    sections = parse_sections(raw.text, raw.citations)
    citations = cited_urls(raw.text, raw.citations)
    filled = sum(1 for v in sections.values() if v)
    print(f"📑 [ANALYZE] {filled}/{len(sections)} sections, {len(citations)} citations")

    metrics: Optional[BusinessMetrics] = None
    charts, table = [], []
    if subject.metrics_bearing:
        metrics = parse_single_metrics(raw.text, subject.startup_name, exclude=subject.own_names)
        charts = build_chart_series([metrics])
        table = build_metrics_table([metrics])

    response = AnalyzeResponse(
        analysis=SectionedAnalysis(**sections),
        citations=citations,
        metrics=metrics,
        charts=charts,
        table=table,
    )

    if payload.user_id and db is not None:
        result = persist_analysis_best_effort(
            db,
            name=subject.startup_name or subject.founder_name,
            founder_name=subject.founder_name,
            user_id=payload.user_id,
            analysis_data=response.model_dump(mode="json", exclude={"persisted"}),
        )
        response = response.model_copy(update={"persisted": result.saved})

    print(f"✅ [ANALYZE] Done in {time.perf_counter() - started:.2f}s")
    return response


async def run_comparison(payload: CompareRequest) -> CompareResponse:
    """Two-subject comparison. Missing structured metrics degrade the charts, not the response."""
    pair = ComparisonPair.from_businesses_string(payload.businesses_string)
    bundle = build_prompt(pair, AnalysisRequestMode.COMPARISON)

    print(f"🚀 [COMPARE] Comparing {pair.first} vs {pair.second}")
    raw = await invoke_oracle(bundle)

    try:
        result = parse_comparison_metrics(raw.text, pair.names)
    except MetricsUnavailableError as exc:
        logger.warning("[COMPARE] Metrics unavailable for %s vs %s: %s", pair.first, pair.second, exc)
        response = CompareResponse(
            comparison=raw.text,
            metrics=None,
            metrics_error=str(exc),
            charts=placeholder_chart_series(INSUFFICIENT_DATA_MESSAGE),
            table=build_metrics_table([BusinessMetrics(name=n) for n in pair.names]),
        )
    else:
        known = [len(m.known_fields()) for m in result.subjects]
        print(f"📊 [COMPARE] Known metrics: {pair.first}={known[0]}, {pair.second}={known[1]}")
        response = CompareResponse(
            comparison=raw.text,
            metrics=result,
            charts=build_chart_series(result.subjects),
            table=build_metrics_table(result.subjects),
        )

    if payload.render_figures:
        response = response.model_copy(update={"figures": ChartBoard().render_all(response.charts)})
    return response
