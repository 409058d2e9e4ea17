import json
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import fakeredis
import mongomock
import pytest
import requests
from bson import ObjectId
from flask_jwt_extended import create_access_token

from ikimina import create_app
from ikimina.extensions.db import db, redis_connection
from ikimina.models.contribution_transaction import ContributionTransaction
from ikimina.utils.generators import generate_internal_reference

MEMBER_ID = "64b7f0c2a1b2c3d4e5f60718"
OTHER_MEMBER_ID = "64b7f0c2a1b2c3d4e5f60719"
SUSPENDED_MEMBER_ID = "64b7f0c2a1b2c3d4e5f6071a"

PHONE_E164 = "+250788123456"


@pytest.fixture(scope="session")
def app():
    app = create_app(
        "testing",
        mongo_client=mongomock.MongoClient(),
        redis_client=fakeredis.FakeRedis(),
    )
    return app


@pytest.fixture(autouse=True)
def clean_state(app, monkeypatch):
    """Empty collections and Redis between tests; SMS jobs go to a mock queue."""
    for name in ("contribution_transactions", "groups"):
        db.get_collection(name).delete_many({})
    redis_connection.connection.flushall()

    queue = MagicMock(name="sms_queue")
    monkeypatch.setattr(redis_connection, "queue", queue)
    yield


@pytest.fixture
def sms_queue():
    return redis_connection.queue


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield


def _token_for(app, member_id):
    with app.app_context():
        return create_access_token(identity=member_id)


@pytest.fixture
def auth_headers(app):
    return {"Authorization": f"Bearer {_token_for(app, MEMBER_ID)}"}


@pytest.fixture
def other_auth_headers(app):
    return {"Authorization": f"Bearer {_token_for(app, OTHER_MEMBER_ID)}"}


@pytest.fixture
def suspended_auth_headers(app):
    return {"Authorization": f"Bearer {_token_for(app, SUSPENDED_MEMBER_ID)}"}


@pytest.fixture
def group():
    doc = {
        "_id": ObjectId(),
        "name": "Umurava Group",
        "currency": "RWF",
        "contribution_amount": 5000,
        "members": [
            {"user": MEMBER_ID, "status": "active"},
            {"user": OTHER_MEMBER_ID, "status": "active"},
            {"user": SUSPENDED_MEMBER_ID, "status": "suspended"},
        ],
    }
    db.get_collection("groups").insert_one(doc)
    return doc


@pytest.fixture
def make_transaction(group):
    """Insert a contribution transaction directly, bypassing the gateways."""

    def _make(
        status=ContributionTransaction.STATUS_PENDING,
        provider="MTN",
        gateway="mtn_momo",
        gateway_transaction_id="req-123",
        member_id=MEMBER_ID,
        age_seconds=0,
        **extra
    ):
        transaction = ContributionTransaction(
            member_id=member_id,
            group_id=group["_id"],
            group_name=group["name"],
            amount=5000,
            fee=100,
            provider=provider,
            gateway=gateway,
            reference=generate_internal_reference(),
            phone_number=PHONE_E164,
            status=status,
        )
        transaction.gateway_transaction_id = gateway_transaction_id
        transaction.created_at = datetime.utcnow() - timedelta(seconds=age_seconds)
        for key, value in extra.items():
            setattr(transaction, key, value)
        return ContributionTransaction.get_by_id(transaction.save())

    return _make


def build_response(status_code=200, json_body=None, url="https://gateway.test/"):
    """A real requests.Response carrying json_body (empty body when None)."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = "OK" if status_code < 400 else "Error"
    response.url = url
    response._content = json.dumps(json_body).encode("utf-8") if json_body is not None else b""
    return response


def route_requests(routes):
    """
    side_effect for patching requests.request. `routes` maps
    (method, url fragment) to a Response, or to an exception to raise.
    """

    def _side_effect(method, url, **kwargs):
        for (route_method, fragment), outcome in routes.items():
            if method == route_method and fragment in url:
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        raise AssertionError(f"Unexpected gateway call {method} {url}")

    return _side_effect


MTN_TOKEN = ("POST", "collection/token/")
MTN_REQUEST_TO_PAY = ("POST", "collection/v1_0/requesttopay")
MTN_STATUS = ("GET", "collection/v1_0/requesttopay/")
AIRTEL_TOKEN = ("POST", "auth/oauth2/token")
AIRTEL_PAYMENT = ("POST", "merchant/v1/payments/")
AIRTEL_STATUS = ("GET", "standard/v1/payments/")


def mtn_token_response():
    return build_response(200, {"access_token": "mtn-token", "token_type": "access_token", "expires_in": 3600})


def airtel_token_response():
    return build_response(200, {"access_token": "airtel-token", "expires_in": "7200", "token_type": "bearer"})


def find_call(mocked, fragment, method=None):
    for call in mocked.call_args_list:
        if fragment in call.kwargs["url"] and (method is None or call.kwargs["method"] == method):
            return call
    raise AssertionError(f"No call to {fragment}")
