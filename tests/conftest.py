"""Shared fixtures for Plaidster tests."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from plaidster import ClientConfig, PlaidsterClient

CLIENT_ID = "test_client_id"
SECRET = "test_secret_value"

VALID_ACCOUNT = {
    "_id": "acc_checking",
    "_item": "item_1",
    "_user": "user_1",
    "balance": {"available": 1203.42, "current": 1274.93},
    "meta": {"name": "Plaid Checking", "number": "9606"},
    "institution_type": "fake_institution",
    "type": "depository",
    "subtype": "checking",
}

VALID_ACCOUNT_2 = {
    "_id": "acc_savings",
    "balance": {"available": 5000.0, "current": 5000.0},
    "meta": {"name": "Plaid Savings", "number": "1202"},
    "type": "depository",
}

MALFORMED_ACCOUNT = {
    "balance": {"available": "not a number"},
    "meta": {"name": "No id here"},
}

VALID_TRANSACTION = {
    "_id": "txn_1",
    "_account": "acc_checking",
    "amount": 12.74,
    "date": "2016-01-29",
    "name": "Golden Crepes",
    "pending": False,
    "category": ["Food and Drink", "Restaurants"],
    "category_id": "13005000",
    "type": {"primary": "place"},
}


def form_of(request: httpx.Request) -> dict:
    """Decoded form body of a captured request, one value per field."""
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


def json_response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode())


@pytest.fixture
def config():
    return ClientConfig(client_id=CLIENT_ID, secret=SECRET)


@pytest.fixture
def make_client(config):
    """
    Build a client whose requests are answered by ``handler``.

    Every request is recorded on the returned client's ``requests`` list.
    """
    def _make(handler, **overrides):
        cfg = config.model_copy(update=overrides) if overrides else config
        requests = []

        async def recording_handler(request):
            requests.append(request)
            result = handler(request)
            if hasattr(result, "__await__"):
                result = await result
            return result

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
        client = PlaidsterClient(cfg, http_client=http_client)
        client.requests = requests
        return client

    return _make
