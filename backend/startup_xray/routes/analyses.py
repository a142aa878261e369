"""Saved analyses, stored verbatim against a startup.

Endpoints:
  POST /analyses               — Save analysis JSON for a startup
  GET  /analyses?startupId=    — Analyses for one startup, newest first
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.startup_schema import AnalysisCreate, AnalysisListResponse
from ..services.persistence import analysis_to_record, create_analysis, get_startup, list_analyses

router = APIRouter(
    prefix="/analyses",
    tags=["Analyses"],
)


@router.post(
    "",
    response_model=AnalysisListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save an Analysis",
)
def create_analysis_route(
    payload: AnalysisCreate,
    db: Session = Depends(get_db),
) -> AnalysisListResponse:
    try:
        analysis = create_analysis(db, payload.startup_id, payload.analysis_data)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to store analysis: {exc}",
        ) from exc

    return AnalysisListResponse(data=[analysis_to_record(analysis)])


@router.get(
    "",
    response_model=AnalysisListResponse,
    summary="List Analyses for a Startup",
)
def list_analyses_route(
    startup_id: str = Query(..., alias="startupId"),
    db: Session = Depends(get_db),
) -> AnalysisListResponse:
    if get_startup(db, startup_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Startup {startup_id} not found",
        )
    return AnalysisListResponse(data=[analysis_to_record(a) for a in list_analyses(db, startup_id)])
