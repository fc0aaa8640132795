from fastapi.testclient import TestClient

from conftest import limited_company_documents, limited_company_fields
from supplier_onboarding.main import app

SIGNED = {"signer": "Dana Okafor", "signature_date": "2026-03-02"}


def _create(client: TestClient, **field_overrides) -> dict:
    response = client.post(
        "/api/v1/submissions",
        json={
            "submitted_by": "priya.shah@nhs.net",
            "requester_fields": limited_company_fields(**field_overrides),
            "documents": limited_company_documents(),
            "alemba_reference": "ALM-42",
        },
        headers={"X-Correlation-Id": "corr_create"},
    )
    assert response.status_code == 201
    return response.json()


def test_create_returns_versioned_draft_envelope():
    client = TestClient(app)
    body = _create(client)

    assert body["correlation_id"] == "corr_create"
    assert body["contract_version"] == "v1"
    assert body["data"]["id"].startswith("SUP-")
    assert body["data"]["status"] == "Draft"
    assert body["data"]["version"] == 0
    assert body["data"]["next_stage"] == "requester"


def test_index_lists_summaries_without_answers():
    client = TestClient(app)
    first = _create(client)["data"]["id"]
    _create(client, companyName="Zenith Labs Ltd")

    response = client.get("/api/v1/submissions")

    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["id"] for item in items][0] == first
    assert items[1]["status"] == "Draft"
    assert "requester_fields" not in items[0]


def test_completeness_scope_is_selectable():
    client = TestClient(app)
    submission_id = _create(client, crn="12AB")["data"]["id"]

    section = client.get(f"/api/v1/submissions/{submission_id}/completeness", params={"scope": "3"})
    everything = client.get(f"/api/v1/submissions/{submission_id}/completeness")

    assert section.json()["data"]["missing"] == [
        "Company Registration Number (must be 7 or 8 digits)"
    ]
    assert everything.json()["data"]["missing"] == section.json()["data"]["missing"]


def test_invalid_scope_is_a_bad_request():
    client = TestClient(app)
    submission_id = _create(client)["data"]["id"]

    response = client.get(
        f"/api/v1/submissions/{submission_id}/completeness", params={"scope": "section 9"}
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_SCOPE"


def test_incomplete_submit_returns_problem_with_missing_list():
    client = TestClient(app)
    submission_id = _create(client, companyName="", crn="")["data"]["id"]

    response = client.post(f"/api/v1/submissions/{submission_id}/submit", json={"acknowledged": True})

    assert response.status_code == 422
    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["error_code"] == "SUBMISSION_INCOMPLETE"
    assert body["missing"] == ["Company Registration Number", "Company Name"]


def test_unacknowledged_submit_is_refused():
    client = TestClient(app)
    submission_id = _create(client)["data"]["id"]

    response = client.post(f"/api/v1/submissions/{submission_id}/submit", json={})

    assert response.status_code == 422
    assert response.json()["error_code"] == "ACKNOWLEDGEMENT_REQUIRED"


def test_unknown_submission_returns_404():
    client = TestClient(app)
    response = client.get("/api/v1/submissions/SUP-UNKNOWN")

    assert response.status_code == 404
    assert response.json()["error_code"] == "SUBMISSION_NOT_FOUND"


def test_unknown_reviewer_role_is_rejected():
    client = TestClient(app)
    submission_id = _create(client)["data"]["id"]

    response = client.post(
        f"/api/v1/submissions/{submission_id}/reviews/finance", json={"payload": {}}
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "INVALID_REQUEST"


def test_review_out_of_order_is_a_conflict():
    client = TestClient(app)
    submission_id = _create(client)["data"]["id"]
    client.post(f"/api/v1/submissions/{submission_id}/submit", json={"acknowledged": True})

    response = client.post(
        f"/api/v1/submissions/{submission_id}/reviews/ap_control",
        json={"payload": {**SIGNED, "decision": "approved"}},
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "STAGE_OUT_OF_ORDER"


def test_stale_expected_version_returns_409():
    client = TestClient(app)
    submission_id = _create(client)["data"]["id"]
    client.post(f"/api/v1/submissions/{submission_id}/submit", json={"acknowledged": True})

    response = client.post(
        f"/api/v1/submissions/{submission_id}/reviews/pbp",
        json={"expected_version": 0, "payload": {**SIGNED, "decision": "approved"}},
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "VERSION_CONFLICT"


def test_requester_fields_lock_after_submit():
    client = TestClient(app)
    submission_id = _create(client)["data"]["id"]
    updated = client.put(
        f"/api/v1/submissions/{submission_id}/requester-fields",
        json={"requester_fields": {"website": "https://acme.example"}},
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["requester_fields"]["website"] == "https://acme.example"

    client.post(f"/api/v1/submissions/{submission_id}/submit", json={"acknowledged": True})
    locked = client.put(
        f"/api/v1/submissions/{submission_id}/requester-fields",
        json={"requester_fields": {"website": "https://other.example"}},
    )

    assert locked.status_code == 422
    assert locked.json()["error_code"] == "REQUESTER_FIELDS_LOCKED"
