# tests/test_grade_entries_api.py

import pytest

BASE = "/v1/grade-entries"


def _create_enrollment(client, student_id=1, credits=3):
    response = client.post("/v1/enrollments/", json={"student_id": student_id, "credits": credits})
    assert response.status_code == 200
    return response.json()["data"]["id"]


def _add_root(client, enrollment_id, name, weight):
    response = client.post(f"{BASE}/", json={"enrollment_id": enrollment_id, "name": name, "weight": weight})
    assert response.status_code == 200, response.text
    return response.json()["data"]["id"]


def _add_child(client, parent_id, name, weight):
    response = client.post(f"{BASE}/{parent_id}/children", json={"name": name, "weight": weight})
    assert response.status_code == 200, response.text
    return response.json()["data"]["id"]


def test_hierarchy_of_new_enrollment_is_empty(client):
    enrollment_id = _create_enrollment(client)

    response = client.get(f"{BASE}/enrollment/{enrollment_id}/hierarchy")

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["data"] == []


def test_nested_component_scenario(client):
    enrollment_id = _create_enrollment(client)
    process = _add_root(client, enrollment_id, "Process", 0.4)
    quiz1 = _add_child(client, process, "Quiz1", 0.5)
    quiz2 = _add_child(client, process, "Quiz2", 0.5)
    final = _add_root(client, enrollment_id, "Final", 0.6)

    assert client.patch(f"{BASE}/{quiz1}/score", params={"score": 9}).status_code == 200
    assert client.patch(f"{BASE}/{quiz2}/score", json={"score": 7, "recorded_by": "prof.kim"}).status_code == 200
    assert client.patch(f"{BASE}/{final}/score", params={"score": 6.0}).status_code == 200

    hierarchy = client.get(f"{BASE}/enrollment/{enrollment_id}/hierarchy").json()["data"]
    assert hierarchy[0]["name"] == "Process"
    assert hierarchy[0]["is_leaf"] is False
    assert hierarchy[0]["score"] is None
    assert hierarchy[0]["calculated_score"] == pytest.approx(8.0)
    assert [c["score"] for c in hierarchy[0]["children"]] == [9.0, 7.0]
    assert hierarchy[0]["children"][1]["recorded_by"] == "prof.kim"

    estimate = client.get(f"{BASE}/enrollment/{enrollment_id}/estimated-grade").json()["data"]
    assert estimate["estimated_score"] == pytest.approx(6.8)
    assert estimate["letter_grade"] == "C+"
    assert estimate["gpa_value"] == 2.5
    assert estimate["weights_balanced"] is True

    calculated = client.get(f"{BASE}/{process}/calculated-score").json()["data"]
    assert calculated["calculated_score"] == pytest.approx(8.0)
    assert calculated["weighted_score"] == pytest.approx(3.2)

    leaves = client.get(f"{BASE}/enrollment/{enrollment_id}/leaves").json()["data"]
    assert [leaf["name"] for leaf in leaves] == ["Quiz1", "Quiz2", "Final"]


def test_remaining_weight_endpoint(client):
    enrollment_id = _create_enrollment(client)
    process = _add_root(client, enrollment_id, "Process", 0.3)
    _add_child(client, process, "Quiz", 0.4)

    roots = client.get(f"{BASE}/enrollment/{enrollment_id}/remaining-weight").json()["data"]
    children = client.get(
        f"{BASE}/enrollment/{enrollment_id}/remaining-weight", params={"parent_id": process}
    ).json()["data"]

    assert roots["remaining_weight"] == pytest.approx(0.7)
    assert children["remaining_weight"] == pytest.approx(0.6)


def test_delete_endpoint_cascades_and_reverts_parent(client):
    enrollment_id = _create_enrollment(client)
    midterm = _add_root(client, enrollment_id, "Midterm", 1.0)
    part = _add_child(client, midterm, "Part A", 1.0)
    sub = _add_child(client, part, "Question 1", 1.0)

    response = client.delete(f"{BASE}/{part}")

    assert response.status_code == 200
    assert response.json()["data"]["removed_ids"] == [sub, part]
    node = client.get(f"{BASE}/{midterm}").json()["data"]
    assert node["is_leaf"] is True
    assert node["score"] is None
    assert client.get(f"{BASE}/{sub}").status_code == 404


def test_update_endpoint_renames_entry(client):
    enrollment_id = _create_enrollment(client)
    midterm = _add_root(client, enrollment_id, "Midterm", 0.3)

    response = client.put(f"{BASE}/{midterm}", json={"name": "Midterm Exam", "weight": 0.35})

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Midterm Exam"
    assert response.json()["data"]["weight"] == 0.35


def test_unknown_enrollment_returns_not_found_envelope(client):
    response = client.get(f"{BASE}/enrollment/999/hierarchy")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["error"]["details"] == {"resource": "Enrollment", "id": 999}


def test_score_on_internal_entry_returns_conflict(client):
    enrollment_id = _create_enrollment(client)
    process = _add_root(client, enrollment_id, "Process", 0.4)
    _add_child(client, process, "Quiz", 1.0)

    response = client.patch(f"{BASE}/{process}/score", params={"score": 8})

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "INVALID_OPERATION"


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "", "weight": 0.5},
        {"name": "Quiz", "weight": 0},
        {"name": "Quiz", "weight": 1.2},
        {"name": "Quiz"},
    ],
)
def test_invalid_entry_returns_validation_error(client, payload):
    enrollment_id = _create_enrollment(client)

    response = client.post(f"{BASE}/", json={"enrollment_id": enrollment_id, **payload})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert client.get(f"{BASE}/enrollment/{enrollment_id}/hierarchy").json()["data"] == []


def test_score_out_of_range_and_missing_score(client):
    enrollment_id = _create_enrollment(client)
    midterm = _add_root(client, enrollment_id, "Midterm", 0.3)

    assert client.patch(f"{BASE}/{midterm}/score", params={"score": 10.5}).status_code == 422
    assert client.patch(f"{BASE}/{midterm}/score").status_code == 422


def test_latency_header_is_set(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert "X-Latency-Ms" in response.headers


def test_estimated_grade_letter_matches_displayed_score(client):
    enrollment_id = _create_enrollment(client)
    first = _add_root(client, enrollment_id, "Midterm", 0.5)
    second = _add_root(client, enrollment_id, "Final", 0.5)
    client.patch(f"{BASE}/{first}/score", params={"score": 9.0})
    client.patch(f"{BASE}/{second}/score", params={"score": 7.998})

    estimate = client.get(f"{BASE}/enrollment/{enrollment_id}/estimated-grade").json()["data"]

    assert estimate["estimated_score"] == 8.5
    assert estimate["letter_grade"] == "A-"
    assert estimate["gpa_value"] == 3.7


def test_entry_query_endpoints(client):
    enrollment_id = _create_enrollment(client, student_id=21)
    midterm = _add_root(client, enrollment_id, "Midterm", 0.4)
    _add_child(client, midterm, "Part A", 1.0)
    final = client.post(
        f"{BASE}/", json={"enrollment_id": enrollment_id, "name": "Final", "weight": 0.6, "entry_type": "FINAL"}
    ).json()["data"]["id"]

    by_type = client.get(f"{BASE}/enrollment/{enrollment_id}/type/FINAL").json()["data"]
    count = client.get(f"{BASE}/enrollment/{enrollment_id}/count").json()["data"]
    by_student = client.get(f"{BASE}/student/21").json()["data"]

    assert [e["id"] for e in by_type] == [final]
    assert count["count"] == 3
    assert [e["name"] for e in by_student] == ["Midterm", "Part A", "Final"]
    assert client.get(f"{BASE}/enrollment/{enrollment_id}/type/BONUS").status_code == 422
