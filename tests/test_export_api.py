"""Tests for CSV / ZIP download endpoints."""

import io
import zipfile

import pytest
from fastapi.testclient import TestClient

from app.core.csv_export import BOM, read_csv_rows
from app.main import app

client = TestClient(app)


@pytest.fixture
def writers(fake_supabase):
    ada = fake_supabase.seed("users", {"name": "Ada", "session_id": "s1"})
    grace = fake_supabase.seed("users", {"name": "Grace", "session_id": "s2"})
    fake_supabase.seed("documents", {"user_id": ada["id"], "content": "Line one\nline two"})
    fake_supabase.seed(
        "suggestions",
        {"user_id": ada["id"], "content": " more", "type": "append", "is_accepted": True, "reaction": "apply"},
    )
    return ada, grace


def test_user_csv(writers):
    ada, _ = writers

    response = client.get(f"/v1/export/users/{ada['id']}.csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="user-Ada-detail-' in response.headers["content-disposition"]
    rows = read_csv_rows(response.content.decode("utf-8"))
    assert rows[0]["document_content"] == "Line one\nline two"
    assert rows[0]["suggestion_is_accepted"] == "true"


def test_user_csv_unknown_writer(fake_supabase):
    assert client.get("/v1/export/users/99.csv").status_code == 404


def test_summary_csv(writers):
    response = client.get("/v1/export/summary.csv")

    text = response.content.decode("utf-8")
    assert text.startswith(BOM)
    rows = read_csv_rows(text)
    assert [r["user_name"] for r in rows] == ["Grace", "Ada"]
    assert rows[1]["acceptance_rate"] == "100.00%"


def test_summary_csv_without_writers(fake_supabase):
    assert client.get("/v1/export/summary.csv").status_code == 404


def test_users_zip(writers):
    ada, grace = writers

    response = client.get(f"/v1/export/users.zip?user_id={ada['id']}&user_id={grace['id']}")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    names = zipfile.ZipFile(io.BytesIO(response.content)).namelist()
    assert sorted(names) == [f"Ada-detail-{ada['id']}.csv", f"Grace-detail-{grace['id']}.csv"]


def test_snapshots_csv(fake_supabase):
    fake_supabase.seed(
        "writing_snapshots",
        {
            "user_id": 1,
            "session_id": "user-1111111",
            "timestamp": "2025-03-01T12:00:10+00:00",
            "text_length": 5,
            "word_count": 1,
            "sentence_count": 1,
            "last_sentence": "Hello",
            "typing_speed": 30.0,
            "full_text": "Hello",
        },
    )

    response = client.get("/v1/export/users/1/snapshots.csv")

    rows = read_csv_rows(response.content.decode("utf-8"))
    assert rows[0]["full_text"] == "Hello"
    assert rows[0]["typing_speed"] == "30.0"
