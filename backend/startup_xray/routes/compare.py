"""Two-business comparison route.

Endpoints:
  POST /compare — side-by-side metrics and a short narrative of differences
"""

from fastapi import APIRouter

from ..schemas.analysis_schema import CompareRequest, CompareResponse
from ..services.analysis_service import run_comparison

router = APIRouter(
    prefix="/compare",
    tags=["Comparison"],
)


@router.post(
    "",
    response_model=CompareResponse,
    summary="Compare Two Businesses",
    response_description="Raw comparison markdown plus extracted metrics, or a degraded chart state",
)
async def compare(payload: CompareRequest) -> CompareResponse:
    """``businessesString`` must hold exactly two comma-separated names, otherwise 400."""
    return await run_comparison(payload)
