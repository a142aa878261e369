"""Saved startups and analyses.

Endpoints served from here:
  POST/GET /startups    → create_startup / list_startups
  POST/GET /analyses    → create_analysis / list_analyses

The /analyze pipeline saves through `persist_analysis_best_effort()`, which
writes the startup and its analysis in one transaction and reports failure
instead of raising it.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import PersistenceError
from ..models.analysis import Analysis
from ..models.startup import Startup
from ..schemas.startup_schema import AnalysisRecord, StartupRecord

logger = logging.getLogger(__name__)


def _as_uuid(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _finish(db: Session, instance: Any, commit: bool) -> None:
    if commit:
        db.commit()
        db.refresh(instance)
    else:
        db.flush()


def create_startup(
    db: Session,
    name: str,
    founder_name: Optional[str] = None,
    user_id: Optional[str] = None,
    commit: bool = True,
) -> Startup:
    """Persist one analysed subject and return the ORM instance.

    With commit=False the row is only flushed, leaving the transaction to the caller.
    """
    startup = Startup(name=name.strip(), founder_name=founder_name, user_id=user_id)
    db.add(startup)
    _finish(db, startup, commit)
    return startup


def get_startup(db: Session, startup_id: Any) -> Optional[Startup]:
    key = _as_uuid(startup_id)
    if key is None:
        return None
    return db.query(Startup).filter(Startup.id == key).first()


def create_analysis(
    db: Session,
    startup_id: Any,
    analysis_data: Dict[str, Any],
    commit: bool = True,
) -> Analysis:
    """Store *analysis_data* verbatim as JSON against an existing startup.

    Raises LookupError when the startup does not exist.
    """
    startup = get_startup(db, startup_id)
    if startup is None:
        raise LookupError(f"Startup {startup_id} not found")
    analysis = Analysis(startup_id=startup.id, analysis_json=json.dumps(analysis_data, default=str))
    db.add(analysis)
    _finish(db, analysis, commit)
    return analysis


def list_startups(db: Session, user_id: Optional[str] = None) -> List[Startup]:
    """Startups newest first, optionally limited to one user's dashboard."""
    query = db.query(Startup)
    if user_id:
        query = query.filter(Startup.user_id == user_id)
    return query.order_by(Startup.created_at.desc()).all()


def list_analyses(db: Session, startup_id: Any) -> List[Analysis]:
    key = _as_uuid(startup_id)
    if key is None:
        return []
    return (
        db.query(Analysis)
        .filter(Analysis.startup_id == key)
        .order_by(Analysis.created_at.desc())
        .all()
    )


def startup_to_record(startup: Startup) -> StartupRecord:
    return StartupRecord(
        id=str(startup.id),
        name=startup.name,
        founder_name=startup.founder_name,
        user_id=startup.user_id,
        created_at=startup.created_at,
    )


def analysis_to_record(analysis: Analysis) -> AnalysisRecord:
    return AnalysisRecord(
        id=str(analysis.id),
        startup_id=str(analysis.startup_id),
        analysis_data=json.loads(analysis.analysis_json),
        created_at=analysis.created_at,
    )


@dataclass(frozen=True)
class PersistenceResult:
    """Outcome of a best-effort save. Inspected for logging only."""

    saved: bool
    startup_id: Optional[str] = None
    analysis_id: Optional[str] = None
    error: Optional[str] = None


def persist_analysis_best_effort(
    db: Session,
    *,
    name: str,
    founder_name: Optional[str],
    user_id: str,
    analysis_data: Dict[str, Any],
) -> PersistenceResult:
    """Create the startup and its analysis in one commit.

    Failures roll both back, are logged, and are returned, never raised.
    """
    try:
        startup = create_startup(db, name=name, founder_name=founder_name, user_id=user_id, commit=False)
        analysis = create_analysis(db, startup.id, analysis_data, commit=False)
        db.commit()
    except (SQLAlchemyError, LookupError, TypeError, ValueError) as exc:
        db.rollback()
        error = PersistenceError(f"Could not save analysis for '{name}': {exc}")
        logger.error("[PERSIST] %s", error)
        return PersistenceResult(saved=False, error=str(error))

    print(f"💾 [PERSIST] Saved analysis {analysis.id} for startup {startup.id}")
    return PersistenceResult(saved=True, startup_id=str(startup.id), analysis_id=str(analysis.id))
