from __future__ import annotations

from datetime import UTC, datetime

import inject

from src.intentflow.application.executor import Executor
from src.intentflow.application.simulator import Simulator
from src.intentflow.application.transaction_builder import TransactionBuilder
from src.intentflow.domain.exceptions import PipelineError
from src.intentflow.domain.models import (
    BuildBatchResult,
    BuildRequest,
    ExecutionResult,
    PositionQuery,
    SimulationReport,
    SimulationResult,
    Task,
    YieldOpportunity,
)
from src.intentflow.domain.repositories import (
    ExecutionQueue,
    MarketDataProvider,
    TaskRefiner,
    TaskRepository,
)
from src.setup.chains import ChainConfig

_DEFAULT_YIELD_TOKEN = "USDC"


class PipelineService:
    """Surface of the pipeline offered to calling agents and tools."""

    def __init__(
        self,
        builder: TransactionBuilder | None = None,
        simulator: Simulator | None = None,
        executor: Executor | None = None,
        repository: TaskRepository | None = None,
        market: MarketDataProvider | None = None,
        chain: ChainConfig | None = None,
        queue: ExecutionQueue | None = None,
    ) -> None:
        self._builder = builder or TransactionBuilder()
        self._simulator = simulator or Simulator()
        self._executor = executor or Executor()
        self._repository = repository or inject.instance(TaskRepository)
        self._market = market or inject.instance(MarketDataProvider)
        self._chain = chain or inject.instance(ChainConfig)
        self._queue = queue

    async def build_transactions(self, requests: list[BuildRequest]) -> BuildBatchResult:
        """Parse, resolve, build and store each request; failures are reported per item."""
        return await self._builder.build_transactions(requests)

    async def simulate(self, task_id: str) -> SimulationResult:
        return await self._simulator.simulate(task_id)

    async def simulate_all(self, refiner: TaskRefiner | None = None) -> SimulationReport:
        """
        Simulate every stored task and describe the outcome of each one.
        With a refiner, the description is also handed over for task text rewriting.
        """
        tasks = [task for task in await self._repository.list() if task.id]
        if not tasks:
            return SimulationReport(summary="No tasks found.")

        results = await self._simulator.simulate_many([task.id for task in tasks])
        summary = "\n".join(
            _describe_simulation(task, result) for task, result in zip(tasks, results)
        )
        report = SimulationReport(results=results, summary=summary)
        if refiner is not None:
            report.refined = await refiner.refine(summary)
        return report

    async def execute(self, task_id: str) -> ExecutionResult:
        return await self._executor.execute(task_id)

    async def schedule_execution(self, task_id: str) -> str:
        """Hand execution of ``task_id`` to a worker and return the job id."""
        if self._queue is None:
            self._queue = inject.instance(ExecutionQueue)
        return await self._queue.enqueue(task_id)

    async def list_yield_opportunities(
        self, min_apy: float | None = None, token: str = _DEFAULT_YIELD_TOKEN
    ) -> list[YieldOpportunity]:
        snapshot = await self._market.get_market_data(self._chain.name, token)
        if min_apy is None:
            return snapshot.tokens
        return [opportunity for opportunity in snapshot.tokens if opportunity.apy >= min_apy]

    async def describe_yield_opportunities(
        self, min_apy: float | None = None, token: str = _DEFAULT_YIELD_TOKEN
    ) -> str:
        """Render the opportunities as one ``"<name>: APY <apy>% - TVL: $<tvl>"`` line each."""
        snapshot = await self._market.get_market_data(self._chain.name, token)
        if not snapshot.tokens:
            return f"No yield opportunities found for {token}"
        opportunities = snapshot.tokens
        if min_apy is not None:
            opportunities = [item for item in opportunities if item.apy >= min_apy]
            if not opportunities:
                return f"No opportunities meeting minimum APY of {min_apy}% found"
        return "\n".join(item.describe() for item in opportunities)

    async def deposit_for_yield(
        self, protocol: str, amount: str, token: str = _DEFAULT_YIELD_TOKEN
    ) -> ExecutionResult:
        """
        Deposit into a yield protocol end to end: validate, build, simulate, execute.
        A failing simulation blocks execution and leaves the stored task in place.
        """
        positions = await self._market.get_position_data(
            [PositionQuery(protocol=protocol, token=token)]
        )
        if not positions or not positions[0].data:
            return _failure(f"No valid yield opportunities found for {protocol}")

        text = f"Deposit {amount} {token} into {protocol} for yield generation"
        try:
            built = await self._builder.build(text)
        except PipelineError as exc:
            return _failure(f"Failed to build yield transaction: {exc}", description=text)

        simulation = await self._simulator.simulate(built.task_id)
        if not simulation.ok:
            return _failure(simulation.diagnosis or "Simulation failed", built.task_id, text)

        return await self._executor.execute(built.task_id, index_transactions=True)

    async def pending_tasks(self) -> list[Task]:
        return await self._repository.list()


def _describe_simulation(task: Task, result: SimulationResult) -> str:
    output = task.output_amount if task.output_amount is not None else "unknown"
    lines = [
        f'[taskId: {task.id}] "{task.description}"',
        f"The transaction is from {task.from_token.symbol} to {task.to_token.symbol}.",
        f"The amount is {task.from_amount} {task.from_token.symbol} "
        f"and the output amount is {output} {task.to_token.symbol}.",
    ]
    if result.ok:
        lines.append("The simulation succeeded.")
    else:
        lines.append(f"The simulation failed: {result.diagnosis}")
        lines.append("Fix the task accordingly and return just the updated task.")
    return "\n".join(lines)


def _failure(
    reason: str, task_id: str | None = None, description: str | None = None
) -> ExecutionResult:
    return ExecutionResult(
        success=False,
        task_id=task_id,
        description=description,
        reason=reason,
        failed_at=datetime.now(UTC),
    )

