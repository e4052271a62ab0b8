import json
import os

from fastapi.testclient import TestClient

from spotlight.api import app
from spotlight.path_source import IterablePathSource


client = TestClient(app)

FAKE_LISTING = [
    "/home/u/Documents/my-report.txt",
    "/home/u/Documents/report.pdf",
    "/home/u/Downloads/Report",
    "/home/u/Desktop/r-e-p-o-r-t.md",
]


def fake_source(query, settings):
    q = query.lower()
    return IterablePathSource(p for p in FAKE_LISTING if q in p.rsplit("/", 1)[-1].lower())


def test_health_endpoint():
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data == {"status": "healthy"}


def test_search_requires_non_empty_query(monkeypatch):
    monkeypatch.setattr("spotlight.api.build_path_source", fake_source)

    resp = client.post("/search", json={"query": " "})
    assert resp.status_code == 422
    resp = client.post("/search", json={"query": ""})
    assert resp.status_code == 422


def test_search_returns_ranked_final_response(monkeypatch):
    monkeypatch.setattr("spotlight.api.build_path_source", fake_source)

    resp = client.post("/search", json={"query": "report"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["final"] is True
    assert data["calc_result"] is None
    paths = [r["path"] for r in data["ranked"]]
    assert paths == [
        "/home/u/Downloads/Report",
        "/home/u/Documents/report.pdf",
        "/home/u/Documents/my-report.txt",
    ]
    assert data["total_matched"] == 3
    for r in data["ranked"]:
        assert "".join(s["text"] for s in r["segments"]) == r["basename"]


def test_search_stream_emits_ndjson_snapshots(monkeypatch):
    listing = [f"/home/u/Documents/notes-{i}.txt" for i in range(12)]
    monkeypatch.setattr("spotlight.api.build_path_source", lambda q, s: IterablePathSource(listing))

    resp = client.post("/search/stream", json={"query": "notes"})
    assert resp.status_code == 200
    lines = [json.loads(line) for line in resp.text.splitlines() if line.strip()]
    assert len(lines) >= 2
    assert lines[-1]["final"] is True
    assert all(not line["final"] for line in lines[:-1])
    assert all(len(line["ranked"]) <= 10 for line in lines)


def test_calculate_endpoint():
    resp = client.post("/calculate", json={"query": "2+3*4"})
    assert resp.status_code == 200
    assert resp.json() == {"query": "2+3*4", "result": "14"}

    resp = client.post("/calculate", json={"query": "10/0"})
    assert resp.json()["result"] is None


def test_launch_endpoint(monkeypatch):
    opened = []

    def fake_launch(path):
        opened.append(path)
        return True

    monkeypatch.setattr("spotlight.api.launch_path", fake_launch)
    resp = client.post("/launch", json={"path": "/tmp/report.pdf"})
    assert resp.status_code == 200
    assert resp.json() == {"path": "/tmp/report.pdf", "uri": "file:///tmp/report.pdf", "launched": True}
    assert opened == ["/tmp/report.pdf"]


def test_search_skips_paths_that_are_not_utf8(monkeypatch):
    bad = os.fsdecode(b"/home/u/Documents/report-\xff.txt")
    listing = [bad, "/home/u/Documents/report.pdf"]
    monkeypatch.setattr("spotlight.api.build_path_source", lambda q, s: IterablePathSource(listing))

    resp = client.post("/search", json={"query": "report"})
    assert resp.status_code == 200
    assert [r["path"] for r in resp.json()["ranked"]] == ["/home/u/Documents/report.pdf"]

    resp = client.post("/search/stream", json={"query": "report"})
    assert resp.status_code == 200
    lines = [json.loads(line) for line in resp.text.splitlines() if line.strip()]
    assert lines[-1]["final"] is True
    assert [r["path"] for r in lines[-1]["ranked"]] == ["/home/u/Documents/report.pdf"]
