import json

import httpx
import pytest

from src.intentflow.domain.exceptions import BuildError, RegistrationError
from src.intentflow.domain.models.intent import ActionType
from src.intentflow.domain.models.transaction import TransactionRequest
from src.intentflow.infrastructure.console_kit.client import (
    BUILD_ENDPOINT,
    INDEX_ENDPOINT,
    ConsoleKitClient,
    to_base_units,
)
from src.setup.console_config import ConsoleKitSettings
from tests.conftest import ACCOUNT, AAVE_POOL

BASE_URL = "https://console.test/v1/vendor"
USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"


def _client(handler, registry_id: str | None = "registry-1") -> ConsoleKitClient:
    settings = ConsoleKitSettings(
        CONSOLE_API_KEY="secret",
        CONSOLE_BASE_URL=BASE_URL,
        EXECUTOR_REGISTRY_ID=registry_id,
    )
    http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return ConsoleKitClient(settings, 8453, http_client=http)


def _request(amount: str = "100") -> TransactionRequest:
    return TransactionRequest(
        account_address=ACCOUNT,
        type=ActionType.DEPOSIT,
        protocol_address=AAVE_POOL,
        token_address=USDC,
        amount=amount,
        token_decimals=6,
    )


@pytest.mark.parametrize(
    ("amount", "decimals", "expected"),
    [("100", 6, 100_000_000), ("0.5", 18, 500_000_000_000_000_000), ("1.000001", 6, 1_000_001)],
)
def test_to_base_units(amount: str, decimals: int, expected: int) -> None:
    assert to_base_units(amount, decimals) == expected


@pytest.mark.parametrize(("amount", "decimals"), [("1.0000001", 6), ("abc", 6)])
def test_to_base_units_rejects_unrepresentable_amounts(amount: str, decimals: int) -> None:
    with pytest.raises(BuildError):
        to_base_units(amount, decimals)


@pytest.mark.asyncio
async def test_build_transaction_posts_request_and_maps_steps() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "data": {
                    "transactions": [
                        {"to": USDC, "data": "0x095ea7b3", "value": "0"},
                        {"to": AAVE_POOL, "data": "0x617ba037", "value": 0, "operation": 0},
                    ],
                    "metadata": {"fee": "0"},
                }
            },
        )

    client = _client(handler)
    bundle = await client.build_transaction(_request())
    await client.close()

    body = json.loads(seen[0].content)
    assert seen[0].url.path.endswith(BUILD_ENDPOINT)
    assert seen[0].headers["x-api-key"] == "secret"
    assert body == {
        "chainId": 8453,
        "registryId": "registry-1",
        "clientId": "intentflow-executor",
        "accountAddress": ACCOUNT,
        "type": "DEPOSIT",
        "to": AAVE_POOL,
        "tokenAddress": USDC,
        "amount": "100000000",
    }
    assert [step.to for step in bundle.transactions] == [USDC, AAVE_POOL]
    assert bundle.transactions[1].value == "0"
    assert bundle.metadata == {"fee": "0"}


@pytest.mark.asyncio
async def test_unregistered_executor_cannot_build() -> None:
    client = _client(lambda request: httpx.Response(200, json={}), registry_id=None)

    assert not client.is_registered()
    with pytest.raises(RegistrationError):
        await client.build_transaction(_request())


@pytest.mark.asyncio
async def test_http_error_becomes_build_error() -> None:
    client = _client(lambda request: httpx.Response(422, json={"error": "bad amount"}))

    with pytest.raises(BuildError, match="422"):
        await client.build_transaction(_request())


@pytest.mark.asyncio
async def test_invalid_step_payload_becomes_build_error() -> None:
    client = _client(
        lambda request: httpx.Response(
            200, json={"data": {"transactions": [{"to": "aave", "data": "0x"}]}}
        )
    )

    with pytest.raises(BuildError, match="Invalid transaction payload"):
        await client.build_transaction(_request())


@pytest.mark.asyncio
async def test_index_transaction_posts_hash() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    client = _client(handler)
    await client.index_transaction("0xabc")

    assert seen[0].url.path.endswith(INDEX_ENDPOINT)
    assert json.loads(seen[0].content) == {"txHash": "0xabc", "chainId": 8453}
