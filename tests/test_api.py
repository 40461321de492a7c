"""
HTTP surface: trigger + read endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from insightboard.errors import StoreUnavailableError
from insightboard.main import app
from insightboard.routes import summary as summary_routes
from insightboard.services.summary_service import SummaryService


class _DownSource:
    def fetch_all(self):
        raise StoreUnavailableError("database is locked", operation="fetch raw records")

    def distinct_keywords(self):
        return []


@pytest.fixture()
def client(db_url):
    c = TestClient(app)
    yield c
    app.dependency_overrides.clear()


class TestRecomputeEndpoint:
    def test_success(self, client, add_records):
        add_records([("wellness", "positive"), ("wellness", "negative"), ("wellness", "neutral")])
        r = client.post("/api/summary/recompute")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "completed"
        assert body["keyword_count"] == 1
        assert body["record_count"] == 3

        rows = client.get("/api/summary").json()["rows"]
        assert rows[0]["word_insight"] == "wellness"
        assert (rows[0]["positive_percentage"], rows[0]["negative_percentage"], rows[0]["neutral_percentage"]) == (34, 33, 33)

    def test_data_integrity_is_422_and_keeps_old_rows(self, client, add_records):
        add_records([("bonus", "positive"), ("bonus", "positive")])
        assert client.post("/api/summary/recompute").status_code == 200

        bad = add_records([("bonus", "unknown")])
        r = client.post("/api/summary/recompute")
        assert r.status_code == 422
        detail = r.json()["detail"]
        assert detail["error"] == "data_integrity"
        assert detail["offenders"] == [{"record_id": bad[0], "sentiment": "unknown"}]

        rows = client.get("/api/summary").json()["rows"]
        assert rows[0]["total_count"] == 2
        assert client.get("/api/summary/runs/latest").json()["latest"]["status"] == "failed"

    def test_store_failure_is_503(self, client, add_records):
        app.dependency_overrides[summary_routes._svc] = lambda: SummaryService(source=_DownSource())
        r = client.post("/api/summary/recompute")
        assert r.status_code == 503
        assert r.json()["detail"]["error"] == "store_unavailable"


class TestReadEndpoints:
    @pytest.fixture(autouse=True)
    def _seed(self, client, add_records):
        add_records(
            [("zebra", "positive")] * 5
            + [("apple", "negative")] * 5
            + [("mid", "neutral")] * 2
        )
        assert client.post("/api/summary/recompute").status_code == 200

    def test_top(self, client):
        body = client.get("/api/summary/top", params={"n": 2}).json()
        assert [r["word_insight"] for r in body["rows"]] == ["apple", "zebra"]
        assert body["total_count"] == 10

    def test_top_default_n(self, client):
        body = client.get("/api/summary/top").json()
        assert body["n"] == 3

    def test_top_rejects_bad_n(self, client):
        assert client.get("/api/summary/top", params={"n": 0}).status_code == 422

    def test_categories(self, client):
        body = client.get("/api/summary/categories").json()
        assert [r["word_insight"] for r in body["positive"]] == ["zebra"]
        assert [r["word_insight"] for r in body["negative"]] == ["apple"]
        assert [r["word_insight"] for r in body["neutral"]] == ["mid"]

    def test_verify(self, client):
        assert client.get("/api/summary/verify").json()["ok"] is True

    def test_runs(self, client):
        runs = client.get("/api/summary/runs").json()["runs"]
        assert len(runs) == 1
        assert runs[0]["status"] == "completed"

    def test_stats(self, client):
        assert client.get("/api/data/stats").json() == {"raw_records": 12, "distinct_keywords": 3}


class TestImportEndpoint:
    def test_import_and_recompute(self, client):
        csv_bytes = b"wordInsight,sentimen\nbonus,positif\nbonus,positif\nworkload,negatif\n"
        r = client.post(
            "/api/data/import",
            params={"recompute": "true"},
            files={"file": ("export.csv", csv_bytes, "text/csv")},
        )
        assert r.status_code == 200
        body = r.json()
        assert body["inserted"] == 3
        assert body["recompute"]["keyword_count"] == 2

    def test_rejects_unknown_type(self, client):
        r = client.post("/api/data/import", files={"file": ("export.pdf", b"%PDF", "application/pdf")})
        assert r.status_code == 400

    def test_rejects_legacy_xls(self, client):
        r = client.post("/api/data/import", files={"file": ("export.xls", b"\xd0\xcf\x11\xe0", "application/vnd.ms-excel")})
        assert r.status_code == 400

    def test_rejects_missing_columns(self, client):
        r = client.post("/api/data/import", files={"file": ("export.csv", b"a,b\n1,2\n", "text/csv")})
        assert r.status_code == 400


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}
