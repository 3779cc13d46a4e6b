from datetime import datetime, timedelta

from app.kinygroup.dashboard import (
    Activity,
    activity_counts,
    change_percentage,
    filter_activities,
    group_activities,
    group_label,
    one_month_ago,
    time_ago,
)
from conftest import login, make_division, make_post

NOW = datetime(2024, 3, 15, 12, 0, 0)


def test_change_percentage():
    assert change_percentage(0, 0) == 0
    assert change_percentage(5, 5) == 0
    assert change_percentage(15, 5) == 50
    assert change_percentage(3, 1) == 50
    assert change_percentage(4, 1) == 33


def test_one_month_ago_clamps_day():
    assert one_month_ago(datetime(2024, 3, 31, 8, 0)) == datetime(2024, 2, 29, 8, 0)
    assert one_month_ago(datetime(2024, 1, 10)) == datetime(2023, 12, 10)


def test_time_ago():
    assert time_ago(NOW - timedelta(seconds=10), NOW) == "just now"
    assert time_ago(NOW - timedelta(minutes=1), NOW) == "1 minute ago"
    assert time_ago(NOW - timedelta(hours=3), NOW) == "3 hours ago"
    assert time_ago(NOW - timedelta(days=2), NOW) == "2 days ago"


def test_group_labels():
    assert group_label(NOW - timedelta(hours=1), NOW) == "Today"
    assert group_label(NOW - timedelta(days=1), NOW) == "Yesterday"
    assert group_label(NOW - timedelta(days=4), NOW) == "This Week"
    assert group_label(NOW - timedelta(days=20), NOW) == "This Month"
    assert group_label(datetime(2023, 11, 2), NOW) == "November 2023"


def _activity(i, type_, action, user, delta):
    return Activity(id=f"{type_}-{i}", type=type_, action=action, user=user, created_at=NOW - delta)


def test_filter_group_and_count_activities():
    activities = [
        _activity(1, "post", 'Published "Hello"', "Editor", timedelta(hours=1)),
        _activity(2, "comment", 'Commented on "Hello"', "Reader", timedelta(days=1)),
        _activity(3, "user", "New user registered", "Newbie", timedelta(days=40)),
    ]
    assert [a.id for a in filter_activities(activities, "comment")] == ["comment-2"]
    assert [a.id for a in filter_activities(activities, "all", "hello")] == ["post-1", "comment-2"]
    assert [a.id for a in filter_activities(activities, None, "newbie")] == ["user-3"]

    groups = group_activities(activities, NOW)
    assert list(groups) == ["Today", "Yesterday", "February 2024"]

    assert activity_counts(activities) == {"all": 3, "post": 1, "comment": 1, "user": 1, "brand": 0}
    assert activities[0].to_dict(NOW)["time"] == "1 hour ago"


def test_stats_api(client):
    r = client.get("/api/dashboard/stats")
    assert r.status_code == 401

    login(client, "editor")
    make_post(client, slug="stat-post")
    make_division(client)
    r = client.get("/api/dashboard/stats")
    assert r.status_code == 200
    assert r.json["totalPosts"]["value"] == 1
    assert r.json["totalUsers"]["value"] == 4
    assert r.json["totalDivisions"]["value"] == 1
    assert r.json["totalComments"] == {"value": 0, "change": 0}
    # everything was created within the last month
    assert r.json["totalPosts"]["change"] == 0


def test_dashboard_shows_recent_activity(client):
    login(client, "editor")
    make_post(client, slug="fresh", title="Fresh News")
    r = client.get("/dashboard")
    assert r.status_code == 200
    assert b"Fresh News" in r.data

    r = client.get("/dashboard?type=user")
    assert r.status_code == 200
    assert b"New user registered" in r.data


def test_reader_is_forbidden_from_dashboard(client):
    login(client, "reader")
    r = client.get("/dashboard")
    assert r.status_code == 403
