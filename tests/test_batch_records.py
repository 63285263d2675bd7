from datetime import datetime

from conftest import JOHN_ID, MARIA_ID


def _recent_types(client, n=50):
    return [e["activityType"] for e in client.get(f"/api/activity-logs/recent?limit={n}").json]


def _steps(client, br):
    r = client.get(f"/api/batch-records/{br['id']}/manufacturing-steps")
    assert r.status_code == 200
    return r.json


def _complete_step(client, step, **extra):
    payload = {"completedAt": "2024-01-02T08:00:00Z"}
    payload.update(extra)
    r = client.patch(f"/api/manufacturing-steps/{step['id']}", json=payload)
    assert r.status_code == 200, r.json
    return r.json


def test_create_batch_record_starts_work_order(client, login, make_work_order, make_batch_record):
    login()
    wo = make_work_order()
    br = make_batch_record(wo)

    yy = datetime.utcnow().year % 100
    assert br["batchNumber"] == f"HY-{yy:02d}-001-500"
    assert br["workOrderId"] == wo["id"]
    assert br["operatorId"] == JOHN_ID
    assert br["completionPercentage"] == 0
    assert br["isComplete"] is False
    assert br["submittedAt"] is None

    assert client.get(f"/api/work-orders/{wo['id']}").json["status"] == "in_progress"
    assert _recent_types(client)[0] == "batch_record_created"

    steps = _steps(client, br)
    assert [s["name"] for s in steps] == [
        "Raw Material Preparation",
        "Oil Phase Mixing",
        "Water Phase Preparation",
        "Emulsification",
        "Cooling and Addition of Actives",
        "Filling and Packaging",
    ]
    assert [s["sortOrder"] for s in steps] == [1, 2, 3, 4, 5, 6]

    tests = client.get(f"/api/batch-records/{br['id']}/quality-control-tests").json
    assert [t["name"] for t in tests] == ["pH Test", "Viscosity Test", "Appearance", "Microbial Test"]
    assert all(t["isPassed"] is None for t in tests)


def test_create_batch_record_explicit_operator(client, login, make_batch_record):
    login()
    br = make_batch_record(operatorId=MARIA_ID)
    assert br["operatorId"] == MARIA_ID


def test_duplicate_batch_record_is_conflict(client, login, make_work_order, make_batch_record):
    login()
    wo = make_work_order()
    make_batch_record(wo)
    r = client.post("/api/batch-records", json={"workOrderId": wo["id"]})
    assert r.status_code == 409
    assert r.json["error"] == "Batch record already exists for this work order"
    assert len(client.get("/api/batch-records").json) == 1


def test_create_batch_record_errors(client, login):
    login()
    r = client.post("/api/batch-records", json={})
    assert r.status_code == 400
    assert r.json["details"] == [{"field": "workOrderId", "message": "Required"}]

    r = client.post("/api/batch-records", json={"workOrderId": 999})
    assert r.status_code == 404
    assert r.json["error"] == "Work order not found"


def test_step_completion_recomputes_percentage(client, login, make_batch_record):
    login()
    br = make_batch_record()
    steps = _steps(client, br)

    step = _complete_step(client, steps[0])
    assert step["completedAt"] == "2024-01-02T08:00:00"
    assert step["completedBy"] == JOHN_ID
    assert client.get(f"/api/batch-records/{br['id']}").json["completionPercentage"] == 16

    _complete_step(client, steps[1], completedBy=MARIA_ID)
    assert _steps(client, br)[1]["completedBy"] == MARIA_ID
    assert client.get(f"/api/batch-records/{br['id']}").json["completionPercentage"] == 33

    for step in steps[2:]:
        _complete_step(client, step)
    assert client.get(f"/api/batch-records/{br['id']}").json["completionPercentage"] == 100
    assert _recent_types(client).count("manufacturing_step_completed") == 6


def test_step_recompletion_logs_again(client, login, make_batch_record):
    login()
    br = make_batch_record()
    step = _steps(client, br)[0]
    _complete_step(client, step)
    _complete_step(client, step)
    assert _recent_types(client).count("manufacturing_step_completed") == 2
    assert client.get(f"/api/batch-records/{br['id']}").json["completionPercentage"] == 16


def test_step_uncomplete(client, login, make_batch_record):
    login()
    br = make_batch_record()
    step = _steps(client, br)[0]
    _complete_step(client, step)
    r = client.patch(f"/api/manufacturing-steps/{step['id']}", json={"completedAt": None})
    assert r.status_code == 200
    assert r.json["completedAt"] is None
    assert r.json["completedBy"] is None
    assert client.get(f"/api/batch-records/{br['id']}").json["completionPercentage"] == 0


def test_step_errors(client, login, make_batch_record):
    login()
    br = make_batch_record()
    step = _steps(client, br)[0]

    r = client.patch(f"/api/manufacturing-steps/{step['id']}", json={"completedAt": "soon"})
    assert r.status_code == 400

    r = client.patch(f"/api/manufacturing-steps/{step['id']}", json={"completedAt": "2024-01-02", "completedBy": 999})
    assert r.status_code == 404
    assert _steps(client, br)[0]["completedAt"] is None

    r = client.patch("/api/manufacturing-steps/999", json={"completedAt": "2024-01-02"})
    assert r.status_code == 404
    assert r.json["error"] == "Manufacturing step not found"


def test_add_manufacturing_step(client, login, make_batch_record):
    login()
    br = make_batch_record()
    r = client.post(
        "/api/manufacturing-steps",
        json={"batchRecordId": br["id"], "name": "Label Check", "sortOrder": 7},
    )
    assert r.status_code == 201
    assert r.json["name"] == "Label Check"
    assert r.json["completedAt"] is None
    assert len(_steps(client, br)) == 7

    r = client.post("/api/manufacturing-steps", json={"batchRecordId": br["id"]})
    assert r.status_code == 400
    assert {d["field"] for d in r.json["details"]} == {"name", "sortOrder"}


def test_submit_batch_record(client, login, make_work_order, make_batch_record):
    login()
    wo = make_work_order()
    br = make_batch_record(wo)
    _complete_step(client, _steps(client, br)[0])

    r = client.patch(f"/api/batch-records/{br['id']}", json={"isComplete": True})
    assert r.status_code == 200
    assert r.json["isComplete"] is True
    assert r.json["completionPercentage"] == 100
    assert r.json["submittedAt"] is not None

    assert client.get(f"/api/work-orders/{wo['id']}").json["status"] == "under_review"
    assert _recent_types(client)[0] == "batch_record_submitted"

    # A complete record cannot drop below 100
    r = client.patch(f"/api/batch-records/{br['id']}", json={"completionPercentage": 40})
    assert r.json["completionPercentage"] == 100


def test_submit_keeps_supplied_submitted_at(client, login, make_batch_record):
    login()
    br = make_batch_record()
    r = client.patch(
        f"/api/batch-records/{br['id']}",
        json={"isComplete": True, "submittedAt": "2024-01-03T12:00:00Z"},
    )
    assert r.json["submittedAt"] == "2024-01-03T12:00:00"


def test_patch_batch_record_validation(client, login, make_batch_record):
    login()
    br = make_batch_record()

    r = client.patch(f"/api/batch-records/{br['id']}", json={"completionPercentage": 101})
    assert r.status_code == 400
    r = client.patch(f"/api/batch-records/{br['id']}", json={"isComplete": "yes"})
    assert r.status_code == 400

    r = client.patch(f"/api/batch-records/{br['id']}", json={"completionPercentage": 50})
    assert r.status_code == 200
    assert r.json["completionPercentage"] == 50
    assert _recent_types(client)[0] == "batch_record_updated"


def test_batch_record_with_relations(client, login, make_batch_record):
    login()
    br = make_batch_record()
    r = client.get(f"/api/batch-records/{br['id']}?includeRelations=true")
    data = r.json
    assert data["workOrder"]["id"] == br["workOrderId"]
    assert data["operator"]["username"] == "john.cooper"
    assert len(data["manufacturingSteps"]) == 6
    assert len(data["qualityControlTests"]) == 4
    assert data["qualityReview"] is None

    r = client.get("/api/batch-records?includeRelations=true")
    assert r.json[0]["batchNumber"] == br["batchNumber"]

    assert client.get("/api/batch-records/999").status_code == 404
    assert client.get("/api/batch-records/999/manufacturing-steps").status_code == 404


def test_record_quality_control_test(client, login, make_batch_record):
    login()
    br = make_batch_record()
    test = client.get(f"/api/batch-records/{br['id']}/quality-control-tests").json[0]

    r = client.patch(f"/api/quality-control-tests/{test['id']}", json={"result": "7.0"})
    assert r.status_code == 200
    assert r.json["result"] == "7.0"
    assert r.json["isPassed"] is None
    assert "quality_test_completed" not in _recent_types(client)

    # Any result is accepted; pass/fail is the operator's call
    r = client.patch(
        f"/api/quality-control-tests/{test['id']}",
        json={"result": "9.9", "isPassed": True, "completedAt": "2024-01-02T09:00:00Z"},
    )
    assert r.json["isPassed"] is True
    assert r.json["completedBy"] == JOHN_ID
    assert _recent_types(client).count("quality_test_completed") == 1

    # Only the first completion is logged
    client.patch(f"/api/quality-control-tests/{test['id']}", json={"completedAt": "2024-01-03T09:00:00Z"})
    assert _recent_types(client).count("quality_test_completed") == 1

    r = client.patch(f"/api/quality-control-tests/{test['id']}", json={"isPassed": None})
    assert r.json["isPassed"] is None

    r = client.patch(f"/api/quality-control-tests/{test['id']}", json={"isPassed": "pass"})
    assert r.status_code == 400


def test_add_quality_control_test(client, login, make_batch_record):
    login()
    br = make_batch_record()
    r = client.post(
        "/api/quality-control-tests",
        json={"batchRecordId": br["id"], "name": "Fragrance", "acceptableRange": "Characteristic"},
    )
    assert r.status_code == 201
    assert r.json["acceptableRange"] == "Characteristic"
    assert len(client.get(f"/api/batch-records/{br['id']}/quality-control-tests").json) == 5

    r = client.post("/api/quality-control-tests", json={"batchRecordId": 999, "name": "X"})
    assert r.status_code == 404


def test_submitted_record_stays_at_100_when_steps_complete(client, login, make_batch_record):
    login()
    br = make_batch_record()
    steps = _steps(client, br)
    _complete_step(client, steps[0])
    _complete_step(client, steps[1])

    r = client.patch(f"/api/batch-records/{br['id']}", json={"isComplete": True})
    assert r.json["completionPercentage"] == 100

    _complete_step(client, steps[2])
    data = client.get(f"/api/batch-records/{br['id']}").json
    assert data["isComplete"] is True
    assert data["completionPercentage"] == 100

    client.post("/api/manufacturing-steps", json={"batchRecordId": br["id"], "name": "Late Check", "sortOrder": 8})
    assert client.get(f"/api/batch-records/{br['id']}").json["completionPercentage"] == 100


def test_adding_step_recomputes_percentage(client, login, make_batch_record):
    login()
    br = make_batch_record(manufacturingSteps=[{"name": "Mix"}])
    _complete_step(client, _steps(client, br)[0])
    assert client.get(f"/api/batch-records/{br['id']}").json["completionPercentage"] == 100

    r = client.post("/api/manufacturing-steps", json={"batchRecordId": br["id"], "name": "Fill", "sortOrder": 2})
    assert r.status_code == 201
    assert client.get(f"/api/batch-records/{br['id']}").json["completionPercentage"] == 50
