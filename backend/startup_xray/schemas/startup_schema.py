"""Schemas for the startups / analyses CRUD routes."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StartupCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255)
    founder_name: Optional[str] = Field(default=None, alias="founderName", max_length=255)
    user_id: Optional[str] = Field(default=None, alias="userId", max_length=255)


class StartupRecord(BaseModel):
    id: str
    name: str
    founder_name: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime


class AnalysisCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    startup_id: str = Field(..., alias="startupId")
    analysis_data: Dict[str, Any] = Field(..., alias="analysisData")


class AnalysisRecord(BaseModel):
    id: str
    startup_id: str
    analysis_data: Dict[str, Any]
    created_at: datetime


class StartupListResponse(BaseModel):
    success: bool = True
    data: List[StartupRecord] = Field(default_factory=list)


class AnalysisListResponse(BaseModel):
    success: bool = True
    data: List[AnalysisRecord] = Field(default_factory=list)
