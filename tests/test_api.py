"""
HTTP tests for the analysis, file and chart routes.

The database is an in-memory SQLite engine swapped in through
``app.dependency_overrides``; object storage and the Redis record cache are
replaced with dict-backed fakes so no external service is needed.
"""

from __future__ import annotations

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from excel_analytics.database import Base, get_db
from excel_analytics.main import app
from excel_analytics.routes import files as files_routes
from excel_analytics.services.storage import storage_service

SALES_CSV = b"month,revenue\nJan,100\nFeb,\nMar,300\n"
MULTI_CSV = b"region,units,price\nEast,3,9.5\nWest,5,9.5\nEast,2,12\nWest,8,12\nEast,1,7\n"


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def store():
    """Fake object storage and record cache contents."""
    return {"objects": {}, "cache": {}}


@pytest.fixture
def client(monkeypatch, store):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    objects = store["objects"]
    cache = store["cache"]

    def fake_upload(content, filename, file_id, content_type=None):
        path = f"s3://test-bucket/uploads/{file_id}/{filename}"
        objects[path] = content
        return path

    monkeypatch.setattr(storage_service, "upload_bytes", fake_upload)
    monkeypatch.setattr(storage_service, "download_file", lambda path: objects[path])
    monkeypatch.setattr(storage_service, "delete_file", lambda path: objects.pop(path, None) is not None)
    monkeypatch.setattr(files_routes, "cache_records", lambda file_id, records: cache.__setitem__(file_id, records))
    monkeypatch.setattr(files_routes, "get_cached_records", lambda file_id: cache.get(file_id))
    monkeypatch.setattr(files_routes, "delete_cached_records", lambda file_id: cache.pop(file_id, None))

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def upload(client, content=SALES_CSV, filename="sales.csv", content_type="text/csv"):
    return client.post("/files", files={"file": (filename, content, content_type)})


# ═════════════════════════════════════════════════════════════════════════════
# Stateless analysis
# ═════════════════════════════════════════════════════════════════════════════

class TestAnalyze:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_full_pipeline_on_csv(self, client):
        res = client.post("/analyze", files={"file": ("sales.csv", SALES_CSV, "text/csv")})
        assert res.status_code == 200
        body = res.json()
        assert body["row_count"] == 3
        assert body["columns"] == ["month", "revenue"]
        revenue = next(p for p in body["profiles"] if p["name"] == "revenue")
        assert revenue["nonEmptyCount"] == 2
        assert revenue["dataType"] == "numeric"
        assert revenue["avg"] == 200
        assert body["suggestion"] == {"xAxis": "month", "yAxis": ["revenue"], "chartType": "pie"}
        assert body["series"]["labels"] == ["Jan", "Feb", "Mar"]
        assert body["series"]["datasets"][0]["data"] == [100, 0, 300]
        assert body["title"] == "revenue by month"

    def test_text_only_file_has_no_series(self, client):
        res = client.post("/analyze", files={"file": ("names.csv", b"first,last\nAda,Lovelace\n", "text/csv")})
        assert res.status_code == 200
        assert res.json()["suggestion"]["yAxis"] == []
        assert res.json()["series"] is None

    def test_json_upload(self, client):
        content = b'[{"a":{"b":1},"k":"x"},{"a":{"b":2},"k":"y"}]'
        res = client.post("/analyze", files={"file": ("data.json", content, "application/json")})
        assert res.status_code == 200
        assert res.json()["columns"] == ["a_b", "k"]

    def test_unsupported_extension(self, client):
        res = client.post("/analyze", files={"file": ("notes.txt", b"hello", "text/plain")})
        assert res.status_code == 415

    def test_header_only_csv(self, client):
        res = client.post("/analyze", files={"file": ("empty.csv", b"a,b\n", "text/csv")})
        assert res.status_code == 400
        assert res.json()["error"] == "EmptyFileError"

    def test_malformed_json(self, client):
        res = client.post("/analyze", files={"file": ("bad.json", b"{nope", "application/json")})
        assert res.status_code == 422
        assert res.json()["error"] == "ParseError"

    def test_oversized_file_rejected(self, client):
        big = b"a,b\n" + b"1,2\n" * (5 * 1024 * 1024 // 4 + 1)
        res = client.post("/analyze", files={"file": ("big.csv", big, "text/csv")})
        assert res.status_code == 413


# ═════════════════════════════════════════════════════════════════════════════
# Stored files
# ═════════════════════════════════════════════════════════════════════════════

class TestFiles:

    def test_upload_stores_bytes_and_caches_records(self, client, store):
        res = upload(client)
        assert res.status_code == 201
        body = res.json()
        assert body["status"] == "processed"
        assert body["row_count"] == 3
        assert body["column_count"] == 2
        assert body["file_type"] == "csv"
        assert store["objects"]
        assert store["cache"][body["id"]][0] == {"month": "Jan", "revenue": 100}

    def test_bad_file_not_stored(self, client, store):
        res = upload(client, content=b"a,b\n1,2,3\n4,5\n6,7\n")
        assert res.status_code == 422
        assert client.get("/files").json() == []
        assert store["objects"] == {}

    def test_list_get_rename_download_delete(self, client, store):
        file_id = upload(client).json()["id"]

        assert [f["id"] for f in client.get("/files").json()] == [file_id]
        assert client.get(f"/files/{file_id}").json()["filename"] == "sales.csv"

        renamed = client.patch(f"/files/{file_id}", json={"filename": "q1.csv"})
        assert renamed.json()["filename"] == "q1.csv"

        download = client.get(f"/files/{file_id}/download")
        assert download.content == SALES_CSV

        assert client.delete(f"/files/{file_id}").status_code == 200
        assert client.get(f"/files/{file_id}").status_code == 404
        assert store["objects"] == {}
        assert file_id not in store["cache"]

    def test_analysis_after_cache_miss(self, client, store):
        file_id = upload(client, MULTI_CSV, "multi.csv").json()["id"]
        store["cache"].clear()
        body = client.get(f"/files/{file_id}/analysis").json()
        assert body["file_id"] == file_id
        assert body["suggestion"] == {"xAxis": "region", "yAxis": ["units", "price"], "chartType": "bar"}
        assert file_id in store["cache"]

    @pytest.mark.parametrize("new_name", ["Q3 sales report.txt", "report", "x.json"])
    def test_renamed_file_still_parses_after_cache_miss(self, client, store, new_name):
        file_id = upload(client).json()["id"]
        assert client.patch(f"/files/{file_id}", json={"filename": new_name}).status_code == 200
        store["cache"].clear()

        res = client.get(f"/files/{file_id}/analysis")
        assert res.status_code == 200
        assert res.json()["filename"] == new_name
        assert res.json()["suggestion"]["xAxis"] == "month"

        store["cache"].clear()
        series = client.post(f"/files/{file_id}/series", json={"x_axis": "month", "y_axis": ["revenue"]})
        assert series.status_code == 200
        assert series.json()["datasets"][0]["data"] == [100, 0, 300]

    def test_explicit_series_choice(self, client):
        file_id = upload(client, MULTI_CSV, "multi.csv").json()["id"]
        res = client.post(
            f"/files/{file_id}/series",
            json={"x_axis": "region", "y_axis": ["price"], "chart_type": "line"},
        )
        assert res.status_code == 200
        body = res.json()
        assert body["labels"] == ["East", "West", "East", "West", "East"]
        assert body["datasets"][0]["data"] == [9.5, 9.5, 12, 12, 7]
        assert body["datasets"][0]["fill"] is False

    def test_unknown_column_suggests_closest(self, client):
        file_id = upload(client).json()["id"]
        res = client.post(f"/files/{file_id}/series", json={"x_axis": "month", "y_axis": ["revenu"]})
        assert res.status_code == 400
        assert "Did you mean 'revenue'" in res.json()["detail"]

    def test_series_without_y_axis(self, client):
        file_id = upload(client).json()["id"]
        res = client.post(f"/files/{file_id}/series", json={"x_axis": "month", "y_axis": []})
        assert res.status_code == 400
        assert res.json()["error"] == "NoYAxisSelectedError"

    def test_missing_file_404(self, client):
        assert client.get("/files/999/analysis").status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# Saved charts
# ═════════════════════════════════════════════════════════════════════════════

def chart_body(**overrides):
    body = {
        "title": "revenue by month",
        "chartType": "bar",
        "data": {
            "labels": ["Jan", "Feb", "Mar"],
            "datasets": [{
                "label": "revenue",
                "data": [100, 0, 300],
                "backgroundColor": "#6366f180",
                "borderColor": "#6366f1",
            }],
        },
        "metadata": {"xAxis": "month", "yAxis": ["revenue"]},
    }
    body.update(overrides)
    return body


class TestCharts:

    def test_save_list_get_delete(self, client):
        file_id = upload(client).json()["id"]
        res = client.post("/charts", json=chart_body(file_id=file_id))
        assert res.status_code == 201
        chart = res.json()
        assert chart["file_id"] == file_id
        assert chart["chart_type"] == "bar"
        assert chart["data"]["labels"] == ["Jan", "Feb", "Mar"]
        assert chart["chart_metadata"] == {"xAxis": "month", "yAxis": ["revenue"]}

        assert [c["id"] for c in client.get("/charts").json()] == [chart["id"]]
        assert client.get(f"/charts/{chart['id']}").json()["title"] == "revenue by month"
        assert client.delete(f"/charts/{chart['id']}").status_code == 200
        assert client.get(f"/charts/{chart['id']}").status_code == 404

    def test_length_mismatch_rejected(self, client):
        body = chart_body()
        body["data"]["datasets"][0]["data"] = [1, 2]
        res = client.post("/charts", json=body)
        assert res.status_code == 400
        assert res.json()["error"] == "InvalidChartError"

    def test_unknown_chart_type_rejected(self, client):
        assert client.post("/charts", json=chart_body(chartType="sunburst")).status_code == 422

    def test_blank_title_rejected(self, client):
        assert client.post("/charts", json=chart_body(title="  ")).status_code == 422

    def test_unknown_source_file(self, client):
        assert client.post("/charts", json=chart_body(file_id=42)).status_code == 404
