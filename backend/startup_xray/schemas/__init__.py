# Schemas package
from .analysis_schema import (
    AnalyzeRequest,
    AnalyzeResponse,
    CompareRequest,
    CompareResponse,
    SectionedAnalysis,
)
from .chart_schema import ChartDataset, ChartSeries, MetricRow
from .metrics_schema import BusinessMetrics, ComparisonResult
from .startup_schema import (
    AnalysisCreate,
    AnalysisListResponse,
    AnalysisRecord,
    StartupCreate,
    StartupListResponse,
    StartupRecord,
)
from .subject_schema import AnalysisRequestMode, AnalysisSubject, ComparisonPair

__all__ = [
    "AnalyzeRequest",
    "AnalyzeResponse",
    "CompareRequest",
    "CompareResponse",
    "SectionedAnalysis",
    "ChartDataset",
    "ChartSeries",
    "MetricRow",
    "BusinessMetrics",
    "ComparisonResult",
    "AnalysisCreate",
    "AnalysisListResponse",
    "AnalysisRecord",
    "StartupCreate",
    "StartupListResponse",
    "StartupRecord",
    "AnalysisRequestMode",
    "AnalysisSubject",
    "ComparisonPair",
]
