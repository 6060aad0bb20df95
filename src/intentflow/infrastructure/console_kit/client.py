from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.intentflow.domain.exceptions import BuildError, RegistrationError
from src.intentflow.domain.models.task import TransactionStep
from src.intentflow.domain.models.transaction import TransactionBundle, TransactionRequest
from src.intentflow.domain.repositories import ProtocolTransactionService
from src.setup.console_config import ConsoleKitSettings

logger = logging.getLogger(__name__)

BUILD_ENDPOINT = "/builder/core-actions/send"
INDEX_ENDPOINT = "/indexer/transactions"


def to_base_units(amount: str, decimals: int) -> int:
    """Convert a decimal token quantity into integer base units, rejecting dust."""
    try:
        value = Decimal(amount)
    except InvalidOperation as exc:
        raise BuildError(f"Invalid amount {amount!r}") from exc
    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise BuildError(f"Amount {amount} has more than {decimals} decimals")
    return int(scaled)


class ConsoleTransactionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    to: str
    data: str = "0x"
    value: str | int | None = "0"
    operation: int = 0


class ConsoleBuildData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transactions: list[ConsoleTransactionPayload] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None


class ConsoleBuildResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: ConsoleBuildData


class ConsoleKitClient(ProtocolTransactionService):
    """Builds transaction bundles and indexes executed hashes through ConsoleKit."""

    def __init__(
        self,
        settings: ConsoleKitSettings,
        chain_id: int,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._chain_id = chain_id
        self._registry_id = settings.EXECUTOR_REGISTRY_ID
        self._http = http_client or httpx.AsyncClient(
            base_url=settings.CONSOLE_BASE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        self._headers = {"x-api-key": settings.CONSOLE_API_KEY}

    def is_registered(self) -> bool:
        return self._registry_id is not None

    async def build_transaction(self, request: TransactionRequest) -> TransactionBundle:
        if not self.is_registered():
            raise RegistrationError(
                "Executor is not registered; set EXECUTOR_REGISTRY_ID after registration."
            )
        body = {
            "chainId": self._chain_id,
            "registryId": self._registry_id,
            "clientId": self._settings.EXECUTOR_CLIENT_ID,
            "accountAddress": request.account_address,
            "type": request.type.value,
            "to": request.protocol_address,
            "tokenAddress": request.token_address,
            "amount": str(to_base_units(request.amount, request.token_decimals)),
        }
        logger.info(
            "Building transaction",
            extra={"type": request.type.value, "to": request.protocol_address},
        )
        payload = await self._post(BUILD_ENDPOINT, body)
        try:
            parsed = ConsoleBuildResponse.model_validate(payload)
            steps = [
                TransactionStep.model_validate(item.model_dump())
                for item in parsed.data.transactions
            ]
        except ValidationError as exc:
            raise BuildError(f"Invalid transaction payload: {exc.errors()}") from exc
        return TransactionBundle(transactions=steps, metadata=parsed.data.metadata or {})

    async def index_transaction(self, transaction_hash: str) -> None:
        await self._post(INDEX_ENDPOINT, {"txHash": transaction_hash, "chainId": self._chain_id})
        logger.info("Transaction indexed", extra={"tx_hash": transaction_hash})

    async def close(self) -> None:
        await self._http.aclose()

    async def _post(self, endpoint: str, body: dict[str, Any]) -> Any:
        try:
            response = await self._http.post(endpoint, json=body, headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise BuildError(
                f"ConsoleKit {endpoint} returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise BuildError(f"ConsoleKit {endpoint} request failed: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise BuildError(f"ConsoleKit {endpoint} returned invalid JSON") from exc
