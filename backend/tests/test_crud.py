"""Startups / analyses routes — the saved-analysis dashboard."""

import os
import sys
import uuid
from unittest.mock import patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from startup_xray.database import Base, get_db
from startup_xray.main import app
from startup_xray.services.persistence import persist_analysis_best_effort

TEST_DATABASE_URL = "sqlite:///./test_crud.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


client = TestClient(app)


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    app.dependency_overrides[get_db] = override_get_db
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.pop(get_db, None)


def _create_startup(name="Stripe", user_id="user-1", founder_name=None):
    body = {"name": name, "userId": user_id}
    if founder_name:
        body["founderName"] = founder_name
    res = client.post("/startups", json=body)
    assert res.status_code == 201, res.text
    return res.json()["data"][0]


class TestStartups:
    def test_create_returns_envelope_with_id(self):
        startup = _create_startup(founder_name="Patrick Collison")
        assert uuid.UUID(startup["id"])
        assert startup["name"] == "Stripe"
        assert startup["founder_name"] == "Patrick Collison"
        assert startup["user_id"] == "user-1"

    def test_list_filtered_by_user(self):
        _create_startup("Stripe", "user-1")
        _create_startup("Adyen", "user-2")
        mine = client.get("/startups", params={"userId": "user-1"}).json()
        assert mine["success"] is True
        assert [s["name"] for s in mine["data"]] == ["Stripe"]
        assert len(client.get("/startups").json()["data"]) == 2

    def test_blank_name_rejected(self):
        res = client.post("/startups", json={"name": "", "userId": "user-1"})
        assert res.status_code == 400
        assert res.json()["success"] is False


class TestAnalyses:
    def test_create_and_list(self):
        startup = _create_startup()
        payload = {"startupId": startup["id"], "analysisData": {"analysis": {"overview": "• Payments"}}}
        res = client.post("/analyses", json=payload)
        assert res.status_code == 201, res.text
        created = res.json()["data"][0]
        assert created["startup_id"] == startup["id"]
        assert created["analysis_data"] == payload["analysisData"]

        listed = client.get("/analyses", params={"startupId": startup["id"]}).json()["data"]
        assert [a["id"] for a in listed] == [created["id"]]

    def test_unknown_startup_404(self):
        res = client.post(
            "/analyses",
            json={"startupId": str(uuid.uuid4()), "analysisData": {"x": 1}},
        )
        assert res.status_code == 404

    def test_list_for_malformed_id_404(self):
        res = client.get("/analyses", params={"startupId": "not-a-uuid"})
        assert res.status_code == 404

    def test_list_requires_startup_id(self):
        res = client.get("/analyses")
        assert res.status_code == 400
        assert res.json()["error"].startswith("startupId")


class TestBestEffortSave:
    def test_result_reports_ids(self):
        db = TestingSessionLocal()
        try:
            result = persist_analysis_best_effort(
                db,
                name="Stripe",
                founder_name=None,
                user_id="user-1",
                analysis_data={"analysis": {}},
            )
        finally:
            db.close()
        assert result.saved is True
        assert result.error is None
        assert uuid.UUID(result.analysis_id)

    def test_failure_is_returned_not_raised(self):
        db = TestingSessionLocal()
        try:
            with patch(
                "startup_xray.services.persistence.create_analysis",
                side_effect=SQLAlchemyError("disk full"),
            ):
                result = persist_analysis_best_effort(
                    db,
                    name="Stripe",
                    founder_name=None,
                    user_id="user-1",
                    analysis_data={"analysis": {}},
                )
        finally:
            db.close()
        assert result.saved is False
        assert "disk full" in result.error
        assert result.analysis_id is None

    def test_failed_save_leaves_no_startup(self):
        db = TestingSessionLocal()
        try:
            with patch(
                "startup_xray.services.persistence.create_analysis",
                side_effect=SQLAlchemyError("disk full"),
            ):
                result = persist_analysis_best_effort(
                    db,
                    name="Stripe",
                    founder_name=None,
                    user_id="user-1",
                    analysis_data={"analysis": {}},
                )
        finally:
            db.close()
        assert result.saved is False
        assert client.get("/startups", params={"userId": "user-1"}).json()["data"] == []

