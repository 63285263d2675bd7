def test_stats_empty(client, login):
    login()
    r = client.get("/api/dashboard/stats")
    assert r.status_code == 200
    assert r.json == {
        "activeWorkOrders": 0,
        "pendingQcReviews": 0,
        "completedThisMonth": 0,
        "statusCounts": {
            "planned": 0,
            "in_progress": 0,
            "completed": 0,
            "under_review": 0,
            "approved": 0,
            "rejected": 0,
        },
    }


def test_stats_counts(client, login, make_work_order, make_batch_record):
    login()
    make_work_order()
    make_batch_record()
    make_batch_record()
    stats = client.get("/api/dashboard/stats").json
    assert stats["activeWorkOrders"] == 2
    assert stats["statusCounts"]["planned"] == 1
    assert stats["statusCounts"]["in_progress"] == 2


def test_recent_activity_default_limit_and_order(client, login, make_work_order):
    login()
    created = [make_work_order() for _ in range(12)]

    r = client.get("/api/activity-logs/recent")
    assert r.status_code == 200
    assert len(r.json) == 10
    assert r.json[0]["entityId"] == created[-1]["id"]
    assert r.json[0]["user"]["username"] == "john.cooper"

    r = client.get("/api/activity-logs/recent?limit=3")
    assert [e["entityId"] for e in r.json] == [wo["id"] for wo in reversed(created[-3:])]


def test_recent_activity_bad_limit(client, login):
    login()
    for bad in ("0", "-1", "abc", "101"):
        r = client.get(f"/api/activity-logs/recent?limit={bad}")
        assert r.status_code == 400, bad
        assert r.json["error"] == "Invalid limit"
