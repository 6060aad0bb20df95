from __future__ import annotations

import asyncio
import logging

import inject

from src.intentflow.application.intent_parser import IntentParser
from src.intentflow.application.protocol_resolver import ProtocolResolver
from src.intentflow.domain.exceptions import (
    AddressResolutionError,
    BuildError,
    PipelineError,
    ProtocolNotFoundError,
    StoreError,
    TaskNotFoundError,
)
from src.intentflow.domain.models.intent import ActionType, ParsedIntent
from src.intentflow.domain.models.results import BuildBatchResult, BuildFailure, BuiltTask
from src.intentflow.domain.models.task import Task, TokenDescriptor
from src.intentflow.domain.models.transaction import BuildRequest, TransactionRequest
from src.intentflow.domain.repositories import (
    ChainClient,
    ProtocolTransactionService,
    TaskRepository,
)
from src.setup.chains import ChainConfig

logger = logging.getLogger(__name__)

# Decimals reported for protocol receipt tokens when the target is not a known token.
_PROTOCOL_SHARE_DECIMALS = 18


class TransactionBuilder:
    """Turn task text into a persisted transaction bundle."""

    def __init__(
        self,
        resolver: ProtocolResolver | None = None,
        transactions: ProtocolTransactionService | None = None,
        repository: TaskRepository | None = None,
        chain: ChainConfig | None = None,
        account_address: str | None = None,
        parser: IntentParser | None = None,
    ) -> None:
        self._parser = parser or IntentParser()
        self._resolver = resolver or ProtocolResolver()
        self._transactions = transactions or inject.instance(ProtocolTransactionService)
        self._repository = repository or inject.instance(TaskRepository)
        self._chain = chain or inject.instance(ChainConfig)
        self._account_address = account_address or inject.instance(ChainClient).account_address

    async def build_transactions(self, requests: list[BuildRequest]) -> BuildBatchResult:
        """Build every request concurrently; a failed item never affects its siblings."""
        resolver = self._resolver.scoped()
        outcomes = await asyncio.gather(
            *(self._build_item(index, request, resolver) for index, request in enumerate(requests))
        )
        batch = BuildBatchResult()
        for outcome in outcomes:
            if isinstance(outcome, BuildFailure):
                batch.results.append(None)
                batch.failures.append(outcome)
            else:
                batch.results.append(outcome)
        logger.info(
            "Built transaction batch",
            extra={"requested": len(requests), "failed": len(batch.failures)},
        )
        return batch

    async def build(
        self,
        text: str,
        task_id: str | None = None,
        *,
        resolver: ProtocolResolver | None = None,
    ) -> BuiltTask:
        """Build and persist a single task, raising the pipeline error on failure."""
        intent = self._parser.parse(text).unwrap()
        return await self._build_parsed(text, intent, task_id, resolver or self._resolver)

    async def _build_item(
        self, index: int, request: BuildRequest, resolver: ProtocolResolver
    ) -> BuiltTask | BuildFailure:
        outcome = self._parser.parse(request.text)
        if not outcome.ok:
            logger.warning("Task text could not be parsed", extra={"index": index, "text": request.text})
            return BuildFailure(index=index, description=request.text, reason=str(outcome.error))
        try:
            return await self._build_parsed(request.text, outcome.unwrap(), request.task_id, resolver)
        except PipelineError as exc:
            logger.warning(
                "Transaction build failed",
                extra={"index": index, "text": request.text, "error": str(exc)},
            )
            return BuildFailure(index=index, description=request.text, reason=str(exc))
        except Exception as exc:
            logger.exception("Unexpected error building transaction", extra={"index": index})
            return BuildFailure(index=index, description=request.text, reason=repr(exc))

    async def _build_parsed(
        self,
        text: str,
        intent: ParsedIntent,
        task_id: str | None,
        resolver: ProtocolResolver,
    ) -> BuiltTask:
        token = self._chain.token(intent.source_token)
        if token is None:
            raise AddressResolutionError(intent.source_token)

        protocol_address, to_token = await self._resolve_target(intent, resolver)
        request = TransactionRequest(
            account_address=self._account_address,
            type=intent.type,
            protocol_address=protocol_address,
            token_address=token.address,
            amount=intent.amount,
            token_decimals=token.decimals,
        )
        bundle = await self._transactions.build_transaction(request)
        if not bundle.transactions:
            raise BuildError(f"No transactions returned for task {text!r}")

        task = Task(
            description=text,
            steps=bundle.transactions,
            from_token=TokenDescriptor(
                symbol=intent.source_token, decimals=token.decimals, address=token.address
            ),
            to_token=to_token,
            from_amount=intent.amount,
        )
        stored = await self._persist(task_id, task)
        return BuiltTask(
            task_id=stored.id,  # type: ignore[arg-type]
            description=stored.description,
            steps=stored.steps,
            created_at=stored.created_at,
        )

    async def _resolve_target(
        self, intent: ParsedIntent, resolver: ProtocolResolver
    ) -> tuple[str, TokenDescriptor]:
        if intent.type is ActionType.SWAP:
            if intent.target is None:
                raise BuildError("A swap needs a destination token ('for <token>').")
            destination = self._chain.token(intent.target)
            if destination is None:
                raise AddressResolutionError(intent.target)
            return destination.address, TokenDescriptor(
                symbol=intent.target, decimals=destination.decimals, address=destination.address
            )

        if intent.target is None:
            raise ProtocolNotFoundError("", intent.source_token)
        address = await resolver.resolve(intent.target, intent.source_token)
        return address, TokenDescriptor(
            symbol=intent.target, decimals=_PROTOCOL_SHARE_DECIMALS, address=address
        )

    async def _persist(self, task_id: str | None, task: Task) -> Task:
        if task_id is None:
            stored = await self._repository.create(task)
        else:
            try:
                stored = await self._repository.update(task_id, task)
            except TaskNotFoundError:
                # Already executed or never stored: a resubmission becomes a new task.
                logger.warning("Task to update no longer exists", extra={"task_id": task_id})
                stored = await self._repository.create(task)
        if not stored.id:
            raise StoreError(f"Task store returned no id for task {task.description!r}")
        return stored
