from __future__ import annotations

from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TimeExhausted

from src.intentflow.domain.exceptions import ExecutionError
from src.intentflow.domain.models.task import TransactionStep
from src.intentflow.domain.models.transaction import TransactionReceipt
from src.intentflow.domain.repositories import ChainClient
from src.setup.chain_config import ChainSettings


class Web3ChainClient(ChainClient):
    """Signs with a local key and talks to the chain over JSON-RPC."""

    def __init__(
        self,
        w3: AsyncWeb3,
        account: LocalAccount,
        chain_id: int,
        *,
        poll_latency: float = 2.0,
    ) -> None:
        self._w3 = w3
        self._account = account
        self._chain_id = chain_id
        self._poll_latency = poll_latency

    @classmethod
    def from_settings(cls, settings: ChainSettings) -> Web3ChainClient:
        if not settings.EXECUTOR_EOA_PRIVATE_KEY:
            raise ValueError("EXECUTOR_EOA_PRIVATE_KEY is required to sign transactions")
        return cls(
            AsyncWeb3(AsyncHTTPProvider(settings.JSON_RPC_URL)),
            Account.from_key(settings.EXECUTOR_EOA_PRIVATE_KEY),
            settings.CHAIN_ID,
            poll_latency=settings.RECEIPT_POLL_LATENCY_SECONDS,
        )

    @property
    def account_address(self) -> str:
        return self._account.address

    async def send_transaction(self, step: TransactionStep) -> str:
        tx = self._tx_params(step, self._account.address)
        tx["chainId"] = self._chain_id
        tx["nonce"] = await self._w3.eth.get_transaction_count(self._account.address, "pending")
        tx["gas"] = await self._w3.eth.estimate_gas(tx)
        tx["gasPrice"] = await self._w3.eth.gas_price
        signed = self._account.sign_transaction(tx)
        tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    async def wait_for_receipt(self, transaction_hash: str, *, timeout: float) -> TransactionReceipt:
        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                transaction_hash, timeout=timeout, poll_latency=self._poll_latency
            )
        except TimeExhausted as exc:
            raise ExecutionError(
                f"No receipt for {transaction_hash} after {timeout} seconds",
                tx_hash=transaction_hash,
            ) from exc
        return TransactionReceipt(
            transaction_hash=Web3.to_hex(receipt["transactionHash"]),
            status=int(receipt["status"]),
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
        )

    async def estimate_gas(self, step: TransactionStep, sender: str) -> int:
        return int(await self._w3.eth.estimate_gas(self._tx_params(step, sender)))

    async def call(self, step: TransactionStep, sender: str) -> str:
        return Web3.to_hex(await self._w3.eth.call(self._tx_params(step, sender)))

    @staticmethod
    def _tx_params(step: TransactionStep, sender: str) -> dict[str, Any]:
        return {
            "from": Web3.to_checksum_address(sender),
            "to": Web3.to_checksum_address(step.to),
            "value": int(step.value),
            "data": step.data,
        }
