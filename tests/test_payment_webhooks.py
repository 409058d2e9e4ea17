from unittest.mock import patch

from ikimina.config import ProductionConfig
from ikimina.extensions.db import db
from ikimina.services.notifications.sms_service import (
    send_contribution_failed_sms, send_contribution_receipt_sms
)

from conftest import (
    AIRTEL_STATUS, AIRTEL_TOKEN, MTN_STATUS, MTN_TOKEN, PHONE_E164, airtel_token_response,
    build_response, mtn_token_response, route_requests,
)


def _doc(transaction):
    return db.get_collection("contribution_transactions").find_one({"_id": transaction["_id"]})


def _group(group):
    return db.get_collection("groups").find_one({"_id": group["_id"]})


def _mtn_callback(reference, status="SUCCESSFUL"):
    return {
        "financialTransactionId": "1234567",
        "externalId": reference,
        "amount": "5000",
        "currency": "RWF",
        "payer": {"partyIdType": "MSISDN", "partyId": "250788123456"},
        "status": status,
    }


def _mtn_lookup(provider_status="SUCCESSFUL", status_code=200):
    return route_requests({
        MTN_TOKEN: mtn_token_response(),
        MTN_STATUS: build_response(status_code, {"status": provider_status, "financialTransactionId": "1234567"}),
    })


def test_mtn_success_callback_settles_and_queues_receipt(client, make_transaction, sms_queue):
    transaction = make_transaction()

    with patch("requests.request", side_effect=_mtn_lookup()):
        res = client.post("/api/v1/payments/MTN/callback", json=_mtn_callback(transaction["reference"]))

    assert res.status_code == 200
    assert res.get_json()["status"] == "Successful"

    doc = _doc(transaction)
    assert doc["status"] == "Successful"
    assert doc["completed_at"] is not None
    assert doc["operator_reference"] == "1234567"
    assert doc["callback_payload"]["externalId"] == transaction["reference"]

    sms_queue.enqueue.assert_called_once()
    assert sms_queue.enqueue.call_args.args[0] is send_contribution_receipt_sms
    kwargs = sms_queue.enqueue.call_args.kwargs["kwargs"]
    assert kwargs["phone_number"] == PHONE_E164
    assert kwargs["reference"] == transaction["reference"]
    assert kwargs["group_name"] == "Umurava Group"


def test_success_callback_credits_group_pool(client, make_transaction, group):
    transaction = make_transaction()

    with patch("requests.request", side_effect=_mtn_lookup()):
        client.post("/api/v1/payments/MTN/callback", json=_mtn_callback(transaction["reference"]))

    doc = _group(group)
    assert doc["total_savings"] == 5000
    assert doc["available_funds"] == 5000


def test_duplicate_callback_is_idempotent(client, make_transaction, group, sms_queue):
    transaction = make_transaction()
    payload = _mtn_callback(transaction["reference"])

    with patch("requests.request", side_effect=_mtn_lookup()):
        first = client.post("/api/v1/payments/mtn/callback", json=payload)
        second = client.post("/api/v1/payments/mtn/callback", json=payload)

    assert first.status_code == second.status_code == 200
    assert second.get_json()["message"] == "Callback already processed"
    assert sms_queue.enqueue.call_count == 1
    assert _group(group)["total_savings"] == 5000


def test_late_failure_callback_does_not_flip_settled_payment(client, make_transaction):
    transaction = make_transaction(status="Successful")

    with patch("requests.request") as mocked:
        res = client.post(
            "/api/v1/payments/MTN/callback", json=_mtn_callback(transaction["reference"], status="FAILED")
        )

    mocked.assert_not_called()
    assert res.status_code == 200
    assert _doc(transaction)["status"] == "Successful"


def test_mtn_failed_callback_records_reason_and_notifies(client, make_transaction, group, sms_queue):
    transaction = make_transaction()
    payload = _mtn_callback(transaction["reference"], status="FAILED")
    payload["reason"] = {"code": "APPROVAL_REJECTED", "message": "Payer rejected"}

    with patch("requests.request", side_effect=_mtn_lookup("FAILED")):
        res = client.post("/api/v1/payments/MTN/callback", json=payload)

    assert res.status_code == 200
    doc = _doc(transaction)
    assert doc["status"] == "Failed"
    assert doc["error_message"] == "Payer rejected"

    sms_queue.enqueue.assert_called_once()
    assert sms_queue.enqueue.call_args.args[0] is send_contribution_failed_sms
    assert sms_queue.enqueue.call_args.kwargs["kwargs"]["reference"] == transaction["reference"]
    assert "total_savings" not in _group(group)


def test_pending_callback_leaves_transaction_open(client, make_transaction):
    transaction = make_transaction()

    with patch("requests.request") as mocked:
        res = client.post(
            "/api/v1/payments/MTN/callback", json=_mtn_callback(transaction["reference"], status="PENDING")
        )

    mocked.assert_not_called()
    assert res.status_code == 200
    doc = _doc(transaction)
    assert doc["status"] == "Pending"
    assert doc["provider_status"] == "PENDING"


def test_unconfirmed_success_callback_is_not_applied(client, make_transaction, group, sms_queue):
    transaction = make_transaction()

    with patch("requests.request", side_effect=_mtn_lookup("PENDING")) as mocked:
        res = client.post("/api/v1/payments/MTN/callback", json=_mtn_callback(transaction["reference"]))

    assert any("requesttopay/req-123" in call.kwargs["url"] for call in mocked.call_args_list)
    assert res.status_code == 200
    assert res.get_json()["status"] == "Pending"
    assert _doc(transaction)["status"] == "Pending"
    assert "total_savings" not in _group(group)
    sms_queue.enqueue.assert_not_called()


def test_success_callback_waits_when_gateway_unreachable(client, make_transaction, sms_queue):
    transaction = make_transaction()

    with patch("requests.request", side_effect=_mtn_lookup(status_code=503)):
        res = client.post("/api/v1/payments/MTN/callback", json=_mtn_callback(transaction["reference"]))

    assert res.status_code == 200
    body = res.get_json()
    assert body["message"] == "Callback received, awaiting confirmation from the provider"
    assert body["status"] == "Pending"

    doc = _doc(transaction)
    assert doc["status"] == "Pending"
    assert doc["callback_payload"]["externalId"] == transaction["reference"]
    sms_queue.enqueue.assert_not_called()


def test_airtel_callback_matches_gateway_transaction_id(client, make_transaction):
    transaction = make_transaction(
        provider="AIRTEL", gateway="airtel_money", gateway_transaction_id="AIRTEL-20240301-1"
    )
    payload = {
        "transaction": {
            "id": "AIRTEL-20240301-1",
            "message": "Paid",
            "status_code": "TS",
            "airtel_money_id": "MP240301",
        }
    }
    routes = route_requests({
        AIRTEL_TOKEN: airtel_token_response(),
        AIRTEL_STATUS: build_response(200, {
            "data": {"transaction": {"id": "AIRTEL-20240301-1", "status": "TS", "airtel_money_id": "MP240301"}},
            "status": {"success": True},
        }),
    })

    with patch("requests.request", side_effect=routes):
        res = client.post("/api/v1/payments/AIRTEL/callback", json=payload)

    assert res.status_code == 200
    assert res.get_json()["reference"] == transaction["reference"]
    assert _doc(transaction)["status"] == "Successful"


def test_callback_for_unknown_reference(client):
    res = client.post("/api/v1/payments/MTN/callback", json=_mtn_callback("IKIM-00000000000000-deadbeef"))
    assert res.status_code == 404


def test_callback_for_other_providers_transaction(client, make_transaction):
    transaction = make_transaction(
        provider="AIRTEL", gateway="airtel_money", gateway_transaction_id="AIRTEL-20240301-2"
    )

    res = client.post("/api/v1/payments/MTN/callback", json=_mtn_callback(transaction["reference"]))

    assert res.status_code == 404
    assert _doc(transaction)["status"] == "Pending"


def test_malformed_callback(client):
    res = client.post("/api/v1/payments/MTN/callback", json={"status": "SUCCESSFUL"})
    assert res.status_code == 400


def test_callback_for_unknown_provider(client):
    res = client.post("/api/v1/payments/BANK/callback", json={})
    assert res.status_code == 404


def test_callback_secret_is_enforced(app, client, make_transaction, monkeypatch):
    monkeypatch.setitem(app.config, "MTN_MOMO_CALLBACK_SECRET", "s3cret")
    transaction = make_transaction()
    payload = _mtn_callback(transaction["reference"])

    with patch("requests.request", side_effect=_mtn_lookup()):
        rejected = client.post("/api/v1/payments/MTN/callback", json=payload, headers={"X-Callback-Secret": "nope"})
        accepted = client.post("/api/v1/payments/MTN/callback", json=payload, headers={"X-Callback-Secret": "s3cret"})

    assert rejected.status_code == 401
    assert accepted.status_code == 200
    assert _doc(transaction)["status"] == "Successful"


def test_callbacks_refused_without_secret_when_required(app, client, make_transaction, monkeypatch):
    monkeypatch.setitem(app.config, "CALLBACK_SECRET_REQUIRED", True)
    transaction = make_transaction()

    with patch("requests.request") as mocked:
        res = client.post("/api/v1/payments/MTN/callback", json=_mtn_callback(transaction["reference"]))

    mocked.assert_not_called()
    assert res.status_code == 401
    assert _doc(transaction)["status"] == "Pending"


def test_production_requires_callback_secret():
    assert ProductionConfig.CALLBACK_SECRET_REQUIRED is True
