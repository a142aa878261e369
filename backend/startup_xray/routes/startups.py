"""Startup records — the subjects a user has analysed.

Endpoints:
  POST /startups            — Create a startup record
  GET  /startups?userId=    — List startups, optionally for one user
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.startup_schema import StartupCreate, StartupListResponse
from ..services.persistence import create_startup, list_startups, startup_to_record

router = APIRouter(
    prefix="/startups",
    tags=["Startups"],
)


@router.post(
    "",
    response_model=StartupListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a Startup",
)
def create_startup_route(
    payload: StartupCreate,
    db: Session = Depends(get_db),
) -> StartupListResponse:
    try:
        startup = create_startup(
            db,
            name=payload.name,
            founder_name=payload.founder_name,
            user_id=payload.user_id,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to store startup: {exc}",
        ) from exc

    return StartupListResponse(data=[startup_to_record(startup)])


@router.get(
    "",
    response_model=StartupListResponse,
    summary="List Startups",
)
def list_startups_route(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    db: Session = Depends(get_db),
) -> StartupListResponse:
    """Newest first. ``userId`` narrows the list to one user's dashboard."""
    return StartupListResponse(data=[startup_to_record(s) for s in list_startups(db, user_id)])
