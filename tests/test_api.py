import httpx
import pytest

from main import app
from models.leaves import LeaveStatus
from utils.app_utils import get_current_admin, get_directory, get_engine, get_ledger, get_notifications, get_scanner

from conftest import local


@pytest.fixture
async def client(engine, ledger, directory, notifications, scanner, employees):
    app.dependency_overrides.update({
        get_engine: lambda: engine,
        get_ledger: lambda: ledger,
        get_directory: lambda: directory,
        get_notifications: lambda: notifications,
        get_scanner: lambda: scanner,
        get_current_admin: lambda: "Sokha",
    })
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


NEW_REQUEST = {
    "employee_id": "E001",
    "employee_name": "Dara",
    "leave_type": "Permission",
    "start_date": "2024-05-10",
    "end_date": "2024-05-10",
    "number_of_days": "មួយព្រឹក",
    "reason": "Bank errand",
}


async def test_verify_employee(client):
    response = await client.post("/employee/verify", json={"employee_id": "E001"})

    body = response.json()
    assert response.status_code == 200
    assert body["verification_status"] == "success"
    assert body["employee_info"] == {"name": "Dara", "photo_url": "http://photos/e001.jpg"}
    assert body["leave_status"]["status"] == "Clear"


async def test_verify_unknown_employee(client):
    response = await client.post("/employee/verify", json={"employee_id": "E999"})

    assert response.json()["verification_status"] == "error"


async def test_submit_decide_and_check_in(client):
    submitted = await client.post("/employee/requests", json=NEW_REQUEST)
    assert submitted.status_code == 201
    request_id = submitted.json()["request_id"]

    status = await client.get(f"/employee/requests/{request_id}/status")
    assert status.json() == {"status": "Pending", "leave_type": "Permission"}

    approved = await client.post(f"/leave-management/{request_id}/approve")
    assert approved.status_code == 200
    assert approved.json()["request_status"] == "Approved"

    again = await client.post(f"/leave-management/{request_id}/approve")
    assert again.status_code == 409

    checked_in = await client.post(f"/employee/requests/{request_id}/check-in",
                                   json={"latitude": 11.55, "longitude": 104.92})
    assert checked_in.status_code == 200
    assert (await client.post(f"/employee/requests/{request_id}/check-in", json={})).status_code == 409

    details = await client.get(f"/employee/requests/{request_id}")
    assert details.json()["approver"] == "Sokha"
    assert details.json()["check_in_location_link"] == "http://maps.google.com/maps?q=11.55,104.92"


async def test_submit_validation_errors(client):
    bad_duration = await client.post("/employee/requests", json={**NEW_REQUEST, "number_of_days": "0"})
    missing_reason = await client.post("/employee/requests", json={**NEW_REQUEST, "reason": ""})
    ineligible = await client.post("/employee/requests", json={**NEW_REQUEST, "employee_id": "E002"})

    assert bad_duration.status_code == 400
    assert missing_reason.status_code == 422
    assert ineligible.status_code == 409


async def test_duplicate_check(client):
    await client.post("/employee/requests", json=NEW_REQUEST)

    response = await client.post("/employee/duplicates/check", json={
        "employee_id": "E001", "leave_type": "Permission", "start_date": "2024-05-10",
    })

    assert response.json()["is_duplicate"] is True


async def test_reject_then_resubmit(client, ledger):
    request_id = (await client.post("/employee/requests", json=NEW_REQUEST)).json()["request_id"]

    rejected = await client.post(f"/leave-management/{request_id}/reject", json={"reason": "No cover"})
    status = await client.get(f"/employee/requests/{request_id}/status")
    assert rejected.status_code == 200
    assert status.json()["reason"] == "No cover"

    resubmitted = await client.put(f"/employee/requests/{request_id}", json={
        "leave_type": "Permission", "start_date": "2024-05-10", "end_date": "2024-05-10",
        "number_of_days": "1", "reason": "Bank errand, all day",
    })
    assert resubmitted.json()["request_status"] == "Pending"
    assert (await ledger.get(request_id)).rejection_reason is None


async def test_resubmit_rejects_a_blank_reason(client, ledger):
    request_id = (await client.post("/employee/requests", json=NEW_REQUEST)).json()["request_id"]

    response = await client.put(f"/employee/requests/{request_id}", json={
        "leave_type": "Permission", "start_date": "2024-05-10", "end_date": "2024-05-10",
        "number_of_days": "1", "reason": "   ",
    })

    assert response.status_code == 422
    assert (await ledger.get(request_id)).reason == "Bank errand"


async def test_pending_request_cannot_check_in(client, ledger):
    request_id = (await client.post("/employee/requests", json=NEW_REQUEST)).json()["request_id"]

    response = await client.post(f"/employee/requests/{request_id}/check-in", json={})

    assert response.status_code == 409
    assert (await ledger.get(request_id)).check_in_timestamp is None


async def test_unknown_request_is_404(client):
    assert (await client.post("/leave-management/REQ-404/approve")).status_code == 404
    assert (await client.get("/employee/requests/REQ-404")).status_code == 404
    assert (await client.get("/employee/requests/REQ-404/status")).json() == {"status": "Not Found"}
    assert (await client.delete("/leave-management/REQ-404")).status_code == 404


async def test_admin_routes_need_a_known_key(client):
    app.dependency_overrides.pop(get_current_admin)

    missing = await client.post("/leave-management/REQ-1/approve")
    unknown = await client.post("/leave-management/REQ-1/approve", headers={"X-Admin-Key": "nobody"})

    assert missing.status_code == 401
    assert unknown.status_code == 401


async def test_monthly_stats(client, make_request):
    await make_request(status=LeaveStatus.APPROVED, duration=2, duration_label="2")

    response = await client.get("/employee/stats/E001", params={"reference_date": "2024-05-31"})

    assert response.json()["total_requests"] == 1
    assert response.json()["total_days"] == 2


async def test_manual_escalation_scan(client, make_request, clock):
    request = await make_request(status=LeaveStatus.APPROVED, approval_timestamp=clock.now)
    clock.now = local(2024, 5, 10, 19, 0)

    response = await client.post("/leave-management/escalations/scan")

    assert response.json() == {"escalations": [{"request_id": request.request_id, "tier": "OverdueTime"}]}


async def test_telegram_webhook_approves_and_edits_message(client, ledger, notifier):
    request_id = (await client.post("/employee/requests", json=NEW_REQUEST)).json()["request_id"]
    update = {
        "update_id": 1,
        "callback_query": {
            "id": "cb-1",
            "data": f"approve_{request_id}_boss-key",
            "message": {"message_id": 42, "chat": {"id": 200}, "text": "New request"},
        },
    }

    first = await client.post("/telegram/webhook", json=update)
    second = await client.post("/telegram/webhook", json=update)

    assert first.json() == {"status": "ok"}
    assert second.status_code == 200
    assert (await ledger.get(request_id)).approver == "Sokha"
    (_, message_id, approved_text), (_, _, failed_text) = notifier.edits
    assert message_id == 42
    assert "Approved by: Sokha" in approved_text
    assert "Action Failed" in failed_text


async def test_telegram_webhook_ignores_other_updates(client, notifier):
    response = await client.post("/telegram/webhook", json={"update_id": 2, "message": {"text": "hi"}})

    assert response.json() == {"status": "ok"}
    assert notifier.edits == []
