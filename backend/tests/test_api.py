"""API tests — /analyze and /compare end to end with a mocked oracle."""

import os
import sys
from unittest.mock import AsyncMock, patch

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from startup_xray.constants import ANALYSIS_SECTION_KEYS
from startup_xray.database import Base, get_db
from startup_xray.exceptions import OracleEmptyResponseError, OracleUnavailableError
from startup_xray.main import app
from startup_xray.services.oracle_client import RawOracleResponse

# ---------------------------------------------------------------------------
# Test database setup (file-based SQLite for compatibility)
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite:///./test_api.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

FIXTURE = os.path.join(os.path.dirname(__file__), "fixtures", "stripe_analysis.md")
CITATIONS = [
    "https://stripe.com/about",
    "https://en.wikipedia.org/wiki/Stripe,_Inc.",
    "https://www.reuters.com/technology/stripe",
]

COMPARISON_TEXT = """Apple builds devices. Microsoft builds software.

```json
{
  "Apple": {"foundingYear": 1976, "valuation": 3.4, "valuationUnit": "trillion",
            "employees": 161000, "growthRate": 8, "marketShare": 28,
            "marketSize": 1.5, "marketSizeUnit": "trillion"},
  "Microsoft": {"foundingYear": 1975, "valuation": 3.1, "valuationUnit": "trillion",
                "employees": 221000, "growthRate": 16, "marketShare": 20}
}
```

Apple leans on hardware margins; Microsoft on cloud subscriptions.
"""

ORACLE_TARGET = "startup_xray.services.analysis_service.invoke_oracle"


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


def _stripe_response():
    with open(FIXTURE, encoding="utf-8") as fh:
        return RawOracleResponse(text=fh.read(), citations=list(CITATIONS))


def _mock_oracle(result=None, side_effect=None):
    return patch(ORACLE_TARGET, new=AsyncMock(return_value=result, side_effect=side_effect))


# ===================================================================== #
#  /analyze                                                               #
# ===================================================================== #

class TestAnalyze:
    def test_stripe_end_to_end(self):
        with _mock_oracle(_stripe_response()) as oracle:
            res = client.post("/analyze", json={"startupName": "Stripe"})

        assert res.status_code == 200, res.text
        data = res.json()
        assert data["success"] is True
        assert list(data["analysis"]) == ANALYSIS_SECTION_KEYS
        assert all(data["analysis"][key] for key in ANALYSIS_SECTION_KEYS)
        # [1], [2], [3] are in range; [9] is not
        assert data["citations"] == CITATIONS
        assert data["persisted"] is False
        assert oracle.await_count == 1

    def test_citation_links_rendered(self):
        with _mock_oracle(_stripe_response()):
            data = client.post("/analyze", json={"startupName": "Stripe"}).json()
        assert 'href="https://stripe.com/about"' in data["analysis"]["overview"]
        assert "[9]" in data["analysis"]["market_opportunity"]

    def test_metrics_charts_and_table(self):
        with _mock_oracle(_stripe_response()):
            data = client.post("/analyze", json={"startupName": "Stripe"}).json()

        metrics = data["metrics"]
        assert metrics["name"] == "Stripe"
        assert metrics["founding_year"] == 2010
        assert metrics["funding_amount_millions"] == pytest.approx(9400)
        assert "Stripe" not in metrics["competitors"]

        charts = {c["chart_id"]: c for c in data["charts"]}
        assert charts["funding"]["placeholder"] is None
        assert charts["funding"]["datasets"][0]["data"] == [pytest.approx(9400)]

        table = {row["metric"]: row["values"] for row in data["table"]}
        assert table["Founded"] == ["2010"]
        assert table["Valuation"] == ["$65B"]

    def test_founder_only_is_narrative(self):
        text = "## Overview\n- Serial founder.\n## Leadership\n- Calm operator.\n"
        with _mock_oracle(RawOracleResponse(text=text)):
            data = client.post("/analyze", json={"founderName": "Ada Lovelace"}).json()
        assert data["metrics"] is None
        assert data["charts"] == []
        assert data["analysis"]["team_assessment"] == "• Calm operator."
        assert data["analysis"]["business_model"] == ""

    def test_blank_names_rejected_without_oracle_call(self):
        with _mock_oracle(_stripe_response()) as oracle:
            res = client.post("/analyze", json={"startupName": "  ", "founderName": ""})
        assert res.status_code == 400
        assert res.json()["success"] is False
        assert "required" in res.json()["error"]
        assert oracle.await_count == 0

    def test_overlong_name_uses_error_envelope(self):
        with _mock_oracle(_stripe_response()) as oracle:
            res = client.post("/analyze", json={"startupName": "x" * 300})
        assert res.status_code == 400
        body = res.json()
        assert body["success"] is False
        assert body["error"].startswith("startupName")
        assert "detail" not in body
        assert oracle.await_count == 0

    def test_oracle_unavailable_is_502(self):
        with _mock_oracle(side_effect=OracleUnavailableError("timeout")):
            res = client.post("/analyze", json={"startupName": "Stripe"})
        assert res.status_code == 502
        assert res.json() == {"success": False, "error": "Failed to generate analysis"}

    def test_oracle_empty_is_502(self):
        with _mock_oracle(side_effect=OracleEmptyResponseError("empty")):
            res = client.post("/analyze", json={"startupName": "Stripe"})
        assert res.status_code == 502


class TestAnalyzePersistence:
    def test_saved_when_user_id_present(self):
        with _mock_oracle(_stripe_response()):
            data = client.post("/analyze", json={"startupName": "Stripe", "userId": "user-1"}).json()
        assert data["persisted"] is True

        startups = client.get("/startups", params={"userId": "user-1"}).json()["data"]
        assert [s["name"] for s in startups] == ["Stripe"]

        analyses = client.get("/analyses", params={"startupId": startups[0]["id"]}).json()["data"]
        assert len(analyses) == 1
        saved = analyses[0]["analysis_data"]
        assert set(saved["analysis"]) == set(ANALYSIS_SECTION_KEYS)
        assert "persisted" not in saved

    def test_persistence_failure_still_returns_analysis(self):
        with _mock_oracle(_stripe_response()), patch(
            "startup_xray.services.persistence.create_startup",
            side_effect=SQLAlchemyError("database is down"),
        ):
            res = client.post("/analyze", json={"startupName": "Stripe", "userId": "user-1"})

        assert res.status_code == 200
        data = res.json()
        assert data["success"] is True
        assert data["persisted"] is False
        assert data["analysis"]["overview"]

    def test_no_user_id_no_save(self):
        with _mock_oracle(_stripe_response()):
            client.post("/analyze", json={"startupName": "Stripe"})
        assert client.get("/startups").json()["data"] == []


# ===================================================================== #
#  /compare                                                               #
# ===================================================================== #

class TestCompare:
    def test_structured_metrics(self):
        with _mock_oracle(RawOracleResponse(text=COMPARISON_TEXT)):
            res = client.post("/compare", json={"businessesString": "Apple, Microsoft"})

        assert res.status_code == 200, res.text
        data = res.json()
        assert data["comparison"] == COMPARISON_TEXT
        assert data["metrics_error"] is None
        apple, microsoft = data["metrics"]["subjects"]
        assert apple["name"] == "Apple"
        assert apple["valuation_millions"] == pytest.approx(3_400_000)
        assert microsoft["employee_count"] == 221000
        assert data["metrics"]["narrative_differences"].startswith("Apple leans")

        table = {row["metric"]: row["values"] for row in data["table"]}
        assert table["Founded"] == ["1976", "1975"]
        assert table["Total Funding"] == ["N/A", "N/A"]

        charts = {c["chart_id"]: c for c in data["charts"]}
        assert charts["funding"]["placeholder"] == "No funding data available"
        assert charts["valuation"]["placeholder"] is None
        assert charts["market_share"]["labels"] == ["Apple", "Microsoft", "Rest of Market"]
        assert data["figures"] is None

    def test_missing_block_degrades(self):
        text = "Apple and Microsoft differ mainly in hardware versus software."
        with _mock_oracle(RawOracleResponse(text=text)):
            res = client.post("/compare", json={"businessesString": "Apple, Microsoft"})

        assert res.status_code == 200
        data = res.json()
        assert data["comparison"] == text
        assert data["metrics"] is None
        assert data["metrics_error"]
        assert all(c["placeholder"] for c in data["charts"])
        assert all(row["values"] == ["N/A", "N/A"] for row in data["table"])

    def test_render_figures(self):
        with _mock_oracle(RawOracleResponse(text=COMPARISON_TEXT)):
            data = client.post(
                "/compare",
                json={"businessesString": "Apple, Microsoft", "renderFigures": True},
            ).json()
        assert set(data["figures"]) == {"funding", "valuation", "growth", "market_share", "radar"}
        assert data["figures"]["funding"]["data"] == []

    @pytest.mark.parametrize("raw", ["", "Apple", "Apple, Microsoft, Google", "Apple,  "])
    def test_needs_exactly_two_names(self, raw):
        with _mock_oracle(RawOracleResponse(text=COMPARISON_TEXT)) as oracle:
            res = client.post("/compare", json={"businessesString": raw})
        assert res.status_code == 400
        assert res.json()["success"] is False
        assert oracle.await_count == 0

    def test_wrong_type_uses_error_envelope(self):
        with _mock_oracle(RawOracleResponse(text=COMPARISON_TEXT)) as oracle:
            res = client.post("/compare", json={"businessesString": ["Apple", "Microsoft"]})
        assert res.status_code == 400
        assert res.json()["success"] is False
        assert res.json()["error"].startswith("businessesString")
        assert oracle.await_count == 0

    def test_oracle_failure_message(self):
        with _mock_oracle(side_effect=OracleUnavailableError("down")):
            res = client.post("/compare", json={"businessesString": "Apple, Microsoft"})
        assert res.status_code == 502
        assert res.json()["error"] == "Failed to compare businesses"


class TestGeneral:
    def test_root(self):
        res = client.get("/")
        assert res.status_code == 200
        assert res.json()["name"] == "Startup X-Ray"

    def test_health(self):
        assert client.get("/health").json()["status"] == "healthy"
