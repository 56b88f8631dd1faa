"""
Tests for the PlaidsterClient facade and its transport.

These tests use httpx.MockTransport to check what goes on the wire and
what outcome comes back, without making real API calls.
"""

import asyncio
import json
import logging
from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

from plaidster import (
    Authenticated,
    ChallengeResponseKind,
    ClientConfig,
    CredentialSubmission,
    Environment,
    Failed,
    PlaidsterClient,
    Product,
    TransportFailure,
    format_json_date,
)

from .conftest import CLIENT_ID, SECRET, VALID_ACCOUNT, VALID_TRANSACTION, form_of, json_response


def answer(payload):
    return lambda request: json_response(payload)


# ============================================================================
# WIRE HELPERS
# ============================================================================

class TestFormatJsonDate:

    def test_plain_date(self):
        assert format_json_date(date(2016, 1, 13)) == "2016-01-13T00:00:00.000Z"

    def test_naive_datetime_is_utc(self):
        assert format_json_date(datetime(2016, 1, 13, 9, 5, 7, 123456)) == "2016-01-13T09:05:07.123Z"

    def test_aware_datetime_is_converted(self):
        eastern = timezone(timedelta(hours=-5))
        assert format_json_date(datetime(2016, 1, 13, 22, 0, tzinfo=eastern)) == "2016-01-14T03:00:00.000Z"


# ============================================================================
# LOGIN AND MFA
# ============================================================================

@pytest.mark.asyncio
async def test_login_form(make_client):
    client = make_client(answer({"access_token": "tok1", "accounts": [VALID_ACCOUNT]}))
    credentials = CredentialSubmission(
        username="plaid_test", password="p@ss word&", pin="1234", institution_type="usaa",
    )

    outcome = await client.login(credentials)

    assert isinstance(outcome, Authenticated)
    request = client.requests[0]
    assert request.method == "POST"
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    assert form_of(request) == {
        "client_id": CLIENT_ID,
        "secret": SECRET,
        "username": "plaid_test",
        "password": "p@ss word&",
        "type": "usaa",
        "options": '{"list":true}',
        "pin": "1234",
    }


@pytest.mark.asyncio
async def test_login_without_pin_omits_field(make_client):
    client = make_client(answer({"access_token": "tok1"}))
    await client.login(CredentialSubmission(username="u", password="p", institution_type="wells"))
    assert "pin" not in form_of(client.requests[0])


@pytest.mark.asyncio
@pytest.mark.parametrize("kind,field,value", [
    (ChallengeResponseKind.CODE, "mfa", "1234"),
    (ChallengeResponseKind.QUESTION, "mfa", "tomato"),
    (ChallengeResponseKind.DEVICE_TYPE, "options", '{"send_method":{"type":"phone"}}'),
    (ChallengeResponseKind.DEVICE_MASK, "options", '{"send_method":{"mask":"xxx-xxx-5309"}}'),
])
async def test_challenge_response_form(make_client, kind, field, value):
    client = make_client(answer({"access_token": "tok"}))
    raw = {
        ChallengeResponseKind.CODE: "1234",
        ChallengeResponseKind.QUESTION: "tomato",
        ChallengeResponseKind.DEVICE_TYPE: "phone",
        ChallengeResponseKind.DEVICE_MASK: "xxx-xxx-5309",
    }[kind]

    await client.submit_challenge_response("tok", kind, raw)

    form = form_of(client.requests[0])
    assert client.requests[0].url.path == "/connect/step"
    assert form["access_token"] == "tok"
    assert form[field] == value


@pytest.mark.asyncio
async def test_remove_user(make_client):
    client = make_client(answer({"message": "Successfully removed from system"}))

    outcome = await client.remove_user("tok")

    request = client.requests[0]
    assert request.method == "DELETE"
    assert request.url.path == "/connect"
    assert form_of(request) == {"client_id": CLIENT_ID, "secret": SECRET, "access_token": "tok"}
    assert outcome.message == "Successfully removed from system"


# ============================================================================
# ACCOUNTS AND TRANSACTIONS
# ============================================================================

@pytest.mark.asyncio
async def test_fetch_balances(make_client):
    client = make_client(answer({"access_token": "tok", "accounts": [VALID_ACCOUNT]}))

    outcome = await client.fetch_balances("tok")

    request = client.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/balance"
    assert dict(request.url.params) == {"client_id": CLIENT_ID, "secret": SECRET, "access_token": "tok"}
    assert outcome.accounts[0].balance.available == 1203.42


@pytest.mark.asyncio
async def test_fetch_transactions_options(make_client):
    client = make_client(answer({"transactions": [VALID_TRANSACTION]}))

    outcome = await client.fetch_transactions(
        "tok", include_pending=False, begin=date(2016, 1, 1), end=datetime(2016, 1, 31, 23, 59, 59),
    )

    params = client.requests[0].url.params
    assert client.requests[0].url.path == "/connect"
    assert json.loads(params["options"]) == {
        "pending": False,
        "gte": "2016-01-01T00:00:00.000Z",
        "lte": "2016-01-31T23:59:59.000Z",
    }
    assert outcome.transactions[0].transaction_date == date(2016, 1, 29)


@pytest.mark.asyncio
async def test_fetch_transactions_defaults(make_client):
    client = make_client(answer({"transactions": []}))
    outcome = await client.fetch_transactions("tok")
    assert json.loads(client.requests[0].url.params["options"]) == {"pending": True}
    assert outcome.transactions == []


# ============================================================================
# REFERENCE DATA
# ============================================================================

@pytest.mark.asyncio
async def test_fetch_categories(make_client):
    client = make_client(answer([{"id": "10000000", "type": "special", "hierarchy": ["Bank Fees"]}]))
    outcome = await client.fetch_categories()
    assert str(client.requests[0].url) == "https://tartan.plaid.com/categories"
    assert outcome.records[0].hierarchy == ["Bank Fees"]


@pytest.mark.asyncio
async def test_fetch_institutions(make_client):
    client = make_client(answer([
        {"id": "5301a93ac140de84910000e0", "name": "Chase", "type": "chase", "has_mfa": True,
         "mfa": ["code", "list"], "products": ["connect", "auth"],
         "credentials": {"username": "Username", "password": "Password"}},
    ]))
    outcome = await client.fetch_institutions()
    assert outcome.records[0].credentials.username == "Username"


@pytest.mark.asyncio
async def test_fetch_longtail_institutions(make_client):
    client = make_client(answer({"total_count": 9000, "results": [{"id": "ins_1", "name": "Small Bank"}]}))

    outcome = await client.fetch_longtail_institutions(count=50, offset=100)

    request = client.requests[0]
    assert request.url.path == "/institutions/longtail"
    assert form_of(request) == {"client_id": CLIENT_ID, "secret": SECRET, "count": "50", "offset": "100"}
    assert outcome.total_count == 9000


@pytest.mark.asyncio
async def test_search_by_query(make_client):
    client = make_client(answer([{"id": "ins_1", "name": "Bank of America"}]))

    outcome = await client.search_institutions(query="bank of", product=Product.AUTH)

    assert dict(client.requests[0].url.params) == {"q": "bank of", "p": "auth"}
    assert [i.name for i in outcome.records] == ["Bank of America"]


@pytest.mark.asyncio
async def test_search_empty_body_is_no_results(make_client):
    client = make_client(lambda request: httpx.Response(200, content=b""))
    outcome = await client.search_institutions(query="zzz")
    assert outcome == Authenticated(records=[])


@pytest.mark.asyncio
async def test_search_by_id(make_client):
    client = make_client(answer({"id": "ins_1", "name": "Bank of America"}))
    outcome = await client.search_institutions(institution_id="ins_1")
    assert dict(client.requests[0].url.params) == {"id": "ins_1"}
    assert outcome.records[0].id == "ins_1"


@pytest.mark.asyncio
async def test_search_needs_exactly_one_criterion(make_client):
    client = make_client(answer([]))
    with pytest.raises(ValueError):
        client.search_institutions()
    with pytest.raises(ValueError):
        client.search_institutions(query="a", institution_id="b")


@pytest.mark.asyncio
async def test_search_cancellation(make_client):
    started = asyncio.Event()

    async def handler(request):
        started.set()
        await asyncio.sleep(30)
        return json_response([])

    client = make_client(handler)
    handle = client.search_institutions(query="chase")
    await started.wait()

    assert handle.cancel()
    outcome = await handle

    assert isinstance(outcome, Failed)
    assert outcome.error == TransportFailure("Request cancelled")
    assert handle.done()


# ============================================================================
# TRANSPORT
# ============================================================================

@pytest.mark.asyncio
async def test_timeout_is_transport_failure(make_client):
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    outcome = await make_client(handler).fetch_categories()

    assert isinstance(outcome.error, TransportFailure)
    assert outcome.error.description.startswith("Request timed out")


@pytest.mark.asyncio
async def test_error_status_with_envelope_is_classified(make_client):
    client = make_client(lambda request: json_response({"code": 1300, "message": "down"}, status_code=402))
    outcome = await client.fetch_balances("tok")
    assert outcome.error.code == 1300


@pytest.mark.asyncio
async def test_raw_traffic_is_logged_redacted(make_client, caplog):
    raw_logger = logging.getLogger("tests.raw_traffic")
    client = make_client(
        answer({"access_token": "tok1"}),
        log_raw_traffic=True,
        raw_traffic_logger=raw_logger,
    )

    with caplog.at_level(logging.DEBUG, logger="tests.raw_traffic"):
        await client.login(CredentialSubmission(username="u", password="hunter2", pin="9876", institution_type="wells"))
        await client.fetch_balances("tok1")

    raw = [r for r in caplog.records if r.name == "tests.raw_traffic"]
    assert len(raw) == 2
    text = "\n".join(r.getMessage() for r in raw)
    assert SECRET not in text
    assert "hunter2" not in text
    assert "9876" not in text
    assert "tok1" in text


@pytest.mark.asyncio
async def test_raw_traffic_off_by_default(make_client, caplog):
    client = make_client(answer({"access_token": "tok1"}))
    with caplog.at_level(logging.DEBUG):
        await client.login(CredentialSubmission(username="u", password="hunter2", institution_type="wells"))
    assert "hunter2" not in caplog.text
    assert SECRET not in caplog.text


@pytest.mark.asyncio
async def test_production_base_url(make_client):
    client = make_client(answer([]), environment=Environment.PRODUCTION)
    await client.fetch_categories()
    assert str(client.requests[0].url) == "https://api.plaid.com/categories"


@pytest.mark.asyncio
async def test_context_manager_closes_owned_client():
    async with PlaidsterClient(ClientConfig(client_id="id", secret="s")) as client:
        http_client = await client._transport._get_client()
    assert http_client.is_closed


@pytest.mark.asyncio
async def test_context_manager_leaves_given_client_open(config):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(answer([])))
    async with PlaidsterClient(config, http_client=http_client):
        pass
    assert not http_client.is_closed
    await http_client.aclose()
