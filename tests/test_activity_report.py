"""Tests for per-writer activity aggregation."""

from app.core.activity_report import (
    UserActivity,
    edit_duration_minutes,
    format_rate,
    load_user_activity,
)


def test_format_rate():
    assert format_rate(2, 3) == "66.67%"
    assert format_rate(0, 0) == "0.00%"


def test_edit_duration_minutes():
    document = {"created_at": "2025-03-01T09:00:00Z", "updated_at": "2025-03-01T10:30:00Z"}

    assert edit_duration_minutes(document) == 90
    assert edit_duration_minutes({"created_at": None}) == 0


def test_document_lengths():
    activity = UserActivity(
        user={"id": 1},
        documents=[{"content": "abcd"}, {"content": None}, {"content": "ab"}],
    )

    assert activity.total_document_length == 6
    assert activity.average_document_length == 2
    assert activity.latest_document == {"content": "abcd"}


def test_load_user_activity(fake_supabase):
    ada = fake_supabase.seed("users", {"name": "Ada", "session_id": "user-a"})
    bob = fake_supabase.seed("users", {"name": "Bob", "session_id": "user-b"})
    fake_supabase.seed("documents", {"user_id": ada["id"], "content": "Once"})
    fake_supabase.seed("suggestions", {"user_id": ada["id"], "content": "x", "type": "append"})

    activities = load_user_activity()

    assert [a.user["name"] for a in activities] == ["Bob", "Ada"]
    ada_activity = activities[1]
    assert ada_activity.document_count == 1
    assert ada_activity.suggestion_count == 1
    assert activities[0].documents == []

    selected = load_user_activity([bob["id"]])
    assert [a.user_id for a in selected] == [bob["id"]]


def test_load_user_activity_survives_failed_reads(fake_supabase):
    fake_supabase.seed("users", {"name": "Ada", "session_id": "user-a"})
    fake_supabase.failing_tables.add("suggestions")

    activities = load_user_activity()

    assert len(activities) == 1
    assert activities[0].suggestions == []
