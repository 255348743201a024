"""Integration tests for the HTTP surface (webhooks and admin actions)."""

from decimal import Decimal

import pytest
from aiohttp import test_utils

from ybs.services.referral import RegistrationService
from ybs.services.withdrawal import WithdrawalRequestHandler
from ybs.web import build_container, create_app

ADMIN_TOKEN = "test-admin-token"
AUTH = {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def container(session_maker, mock_redis_client, mock_payment_collector, test_settings):
    return build_container(
        session_maker, mock_redis_client, mock_payment_collector, test_settings
    )


@pytest.fixture
async def client(container):
    server = test_utils.TestServer(create_app(container))
    async with test_utils.TestClient(server) as client:
        yield client


@pytest.fixture
async def pending_request(seed_user, uow_factory, test_settings):
    user = await seed_user("254712345678", available_balance=Decimal("1000"))
    result = await WithdrawalRequestHandler(
        uow_factory, test_settings
    ).request_withdrawal(user.id, Decimal("1000"))
    return result.data


class TestLiveness:
    @pytest.mark.asyncio
    async def test_liveness(self, client):
        response = await client.get("/liveness")

        assert response.status == 200
        assert (await response.json())["alive"] is True


class TestMpesaWebhooks:
    """The provider is always acknowledged."""

    @pytest.mark.asyncio
    async def test_successful_callback_activates_and_acknowledges(
        self, client, container, uow_factory, test_settings, stk_callback, load_user
    ):
        user = (
            await RegistrationService(uow_factory, test_settings).register(
                "0712345678", "secret123"
            )
        ).data.user
        initiated = await container.activation.initiate_activation(
            user.id, "0712345678"
        )

        response = await client.post(
            "/api/mpesa/activation-callback",
            json=stk_callback(initiated.data["correlation_id"]),
        )

        assert response.status == 200
        assert await response.json() == {"ResultCode": 0, "ResultDesc": "Success"}
        assert (await load_user(user.id)).is_active is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            b"not json at all",
            b'{"Body": {}}',
            b'{"Body": {"stkCallback": {"CheckoutRequestID": "ws_CO_x", "ResultCode": 0}}}',
        ],
    )
    async def test_bad_or_unknown_callbacks_acknowledged(self, client, body):
        response = await client.post(
            "/api/mpesa/activation-callback",
            data=body,
            headers={"Content-Type": "application/json"},
        )

        assert response.status == 200
        assert (await response.json())["ResultCode"] == 0

    @pytest.mark.asyncio
    async def test_internal_failure_still_acknowledged(
        self, client, container, stk_callback, mock_redis_client
    ):
        mock_redis_client.get.side_effect = RuntimeError("redis exploded")

        response = await client.post(
            "/api/mpesa/activation-callback", json=stk_callback("ws_CO_1")
        )

        assert response.status == 200
        assert (await response.json())["ResultCode"] == 0

    @pytest.mark.asyncio
    async def test_timeout_acknowledged(self, client):
        response = await client.post(
            "/api/mpesa/timeout",
            json={"Body": {"stkCallback": {"CheckoutRequestID": "ws_CO_9"}}},
        )

        assert response.status == 200
        assert (await response.json())["ResultDesc"] == "Success"


class TestAdminRoutes:
    """Token-protected operator actions."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "headers",
        [{}, {"Authorization": "Bearer wrong"}, {"X-Admin-Token": "wrong"}],
    )
    async def test_missing_or_wrong_token_unauthorized(self, client, headers):
        response = await client.get("/api/admin/withdrawals", headers=headers)

        assert response.status == 401

    @pytest.mark.asyncio
    async def test_admin_api_disabled_without_token(
        self, session_maker, mock_redis_client, mock_payment_collector, test_settings
    ):
        settings = test_settings.model_copy(update={"admin_api_token": None})
        container = build_container(
            session_maker, mock_redis_client, mock_payment_collector, settings
        )

        server = test_utils.TestServer(create_app(container))
        async with test_utils.TestClient(server) as client:
            response = await client.get("/api/admin/withdrawals", headers=AUTH)

        assert response.status == 503

    @pytest.mark.asyncio
    async def test_list_pending_withdrawals(self, client, pending_request):
        response = await client.get(
            "/api/admin/withdrawals", headers={"X-Admin-Token": ADMIN_TOKEN}
        )

        assert response.status == 200
        body = await response.json()
        assert body["success"] is True
        assert body["data"]["total"] == 1
        item = body["data"]["items"][0]
        assert item["id"] == pending_request.id
        assert Decimal(item["amount"]) == Decimal("1000")
        assert item["status"] == "PENDING"

    @pytest.mark.asyncio
    async def test_reject_withdrawal(self, client, pending_request, load_user):
        response = await client.post(
            f"/api/admin/withdrawals/{pending_request.id}/resolve",
            json={"outcome": "REJECTED", "rejection_reason": "Wrong number"},
            headers={**AUTH, "X-Admin-Id": "ops-7"},
        )

        assert response.status == 200
        data = (await response.json())["data"]
        assert data["status"] == "REJECTED"
        assert data["admin_id"] == "ops-7"
        assert data["rejection_reason"] == "Wrong number"
        user = await load_user(pending_request.user_id)
        assert user.available_balance == Decimal("1000")

    @pytest.mark.asyncio
    async def test_double_resolution_is_conflict(self, client, pending_request):
        url = f"/api/admin/withdrawals/{pending_request.id}/resolve"
        body = {"outcome": "COMPLETED", "mpesa_transaction_code": "RKT5ABC123"}

        first = await client.post(url, json=body, headers=AUTH)
        second = await client.post(url, json=body, headers=AUTH)

        assert first.status == 200
        assert second.status == 409
        payload = await second.json()
        assert payload["error_kind"] == "conflict"
        assert payload["retryable"] is False

    @pytest.mark.asyncio
    async def test_resolve_validation_errors(self, client, pending_request):
        url = f"/api/admin/withdrawals/{pending_request.id}/resolve"

        missing_code = await client.post(
            url, json={"outcome": "COMPLETED"}, headers=AUTH
        )
        not_json = await client.post(url, data=b"nope", headers=AUTH)

        assert missing_code.status == 400
        assert not_json.status == 400

    @pytest.mark.asyncio
    async def test_resolve_unknown_request(self, client):
        response = await client.post(
            "/api/admin/withdrawals/999/resolve",
            json={"outcome": "REJECTED", "rejection_reason": "No"},
            headers=AUTH,
        )

        assert response.status == 404

    @pytest.mark.asyncio
    async def test_balance_audit(self, client, pending_request):
        response = await client.get(
            f"/api/admin/users/{pending_request.user_id}/balance-audit",
            headers=AUTH,
        )

        assert response.status == 200
        data = (await response.json())["data"]
        assert data["is_consistent"] is True
        assert Decimal(data["reserved_amount"]) == Decimal("1000")
        assert Decimal(data["available_balance"]) == Decimal("0")

    @pytest.mark.asyncio
    async def test_invalid_status_query(self, client):
        response = await client.get(
            "/api/admin/withdrawals?status=LOST", headers=AUTH
        )

        assert response.status == 400
