"""Single-subject analysis route.

Endpoints:
  POST /analyze — VC-style analysis of a startup, a founder, or both
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.analysis_schema import AnalyzeRequest, AnalyzeResponse
from ..services.analysis_service import run_analysis

router = APIRouter(
    prefix="/analyze",
    tags=["Analysis"],
)


@router.post(
    "",
    response_model=AnalyzeResponse,
    summary="Analyze a Startup or Founder",
    response_description="Sectioned analysis, cited sources, metrics and chart series",
)
async def analyze(
    payload: AnalyzeRequest,
    db: Session = Depends(get_db),
) -> AnalyzeResponse:
    """Run one oracle call and return the parsed analysis.

    When ``userId`` is supplied the result is also saved; a failed save
    only flips ``persisted`` to false.
    """
    return await run_analysis(payload, db)
