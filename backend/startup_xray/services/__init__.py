from .analysis_service import run_analysis, run_comparison
from .chart_renderer import ChartBoard, ChartHandle
from .metric_normalizer import (
    normalize_employee_count,
    normalize_market_size,
    normalize_money,
    normalize_ratio,
)
from .metrics_parser import parse_metrics
from .oracle_client import RawOracleResponse, invoke, invoke_oracle
from .prompt_builder import PromptBundle, build_prompt
from .section_parser import parse_sections

__all__ = [
    "run_analysis",
    "run_comparison",
    "ChartBoard",
    "ChartHandle",
    "normalize_employee_count",
    "normalize_market_size",
    "normalize_money",
    "normalize_ratio",
    "parse_metrics",
    "RawOracleResponse",
    "invoke",
    "invoke_oracle",
    "PromptBundle",
    "build_prompt",
    "parse_sections",
]
