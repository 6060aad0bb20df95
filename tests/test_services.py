import inject
import pytest

from src.intentflow.application.executor import Executor
from src.intentflow.application.protocol_resolver import ProtocolResolver
from src.intentflow.application.services import PipelineService
from src.intentflow.application.simulator import Simulator
from src.intentflow.application.transaction_builder import TransactionBuilder
from src.intentflow.domain.models.market import YieldOpportunity
from src.intentflow.domain.models.transaction import BuildRequest
from src.intentflow.domain.repositories import (
    ChainClient,
    ExecutionQueue,
    MarketDataProvider,
    ProtocolTransactionService,
    TaskRepository,
)
from src.setup.chain_config import ChainSettings
from src.setup.chains import ChainConfig
from tests.conftest import ACCOUNT, StubChainClient, StubMarketData, make_task


class StubRefiner:
    def __init__(self) -> None:
        self.summaries: list[str] = []

    async def refine(self, simulation_summary: str) -> str:
        self.summaries.append(simulation_summary)
        return "Deposit 50 USDC into Aave"


class StubQueue(ExecutionQueue):
    def __init__(self) -> None:
        self.enqueued: list[str] = []

    async def enqueue(self, task_id: str) -> str:
        self.enqueued.append(task_id)
        return f"job-{task_id}"


def _service(repository, market, transactions, chain, chain_config, queue=None) -> PipelineService:
    return PipelineService(
        builder=TransactionBuilder(
            resolver=ProtocolResolver(market, chain_config),
            transactions=transactions,
            repository=repository,
            chain=chain_config,
            account_address=ACCOUNT,
        ),
        simulator=Simulator(repository, chain, all_steps=False),
        executor=Executor(
            repository, chain, transactions, receipt_timeout=30.0, index_transactions=False
        ),
        repository=repository,
        market=market,
        chain=chain_config,
        queue=queue,
    )


@pytest.mark.asyncio
async def test_deposit_scenario_end_to_end(repository, market, transactions, chain, chain_config) -> None:
    service = _service(repository, market, transactions, chain, chain_config)

    batch = await service.build_transactions([BuildRequest(text="Deposit 100 USDC into Aave")])
    task_id = batch.results[0].task_id
    stored = repository.tasks[task_id]
    assert stored.from_amount == "100"
    assert stored.to_token.symbol == "Aave"

    simulation = await service.simulate(task_id)
    assert simulation.ok

    result = await service.execute(task_id)

    assert result.success
    assert len(result.hashes) == 2
    assert await service.pending_tasks() == []


@pytest.mark.asyncio
async def test_simulate_all_with_empty_store(repository, market, transactions, chain, chain_config) -> None:
    service = _service(repository, market, transactions, chain, chain_config)

    report = await service.simulate_all()

    assert report.summary == "No tasks found."
    assert report.results == []


@pytest.mark.asyncio
async def test_simulate_all_describes_each_task(repository, market, transactions, chain_config) -> None:
    chain = StubChainClient(fail_simulation=True)
    service = _service(repository, market, transactions, chain, chain_config)
    stored = await repository.create(make_task())
    refiner = StubRefiner()

    report = await service.simulate_all(refiner)

    assert not report.ok
    assert f'[taskId: {stored.id}] "Deposit 100 USDC into Aave"' in report.summary
    assert "The transaction is from USDC to Aave." in report.summary
    assert "the output amount is unknown Aave" in report.summary
    assert "The simulation failed: Failed to simulate transaction" in report.summary
    assert refiner.summaries == [report.summary]
    assert report.refined == "Deposit 50 USDC into Aave"


@pytest.mark.asyncio
async def test_list_yield_opportunities_filters_by_apy(repository, market, transactions, chain, chain_config) -> None:
    service = _service(repository, market, transactions, chain, chain_config)

    everything = await service.list_yield_opportunities()
    high = await service.list_yield_opportunities(min_apy=4.0)

    assert len(everything) == 3
    assert [item.name for item in high] == ["Aave USDC", "Morpho USDC"]
    assert market.market_calls[0] == (chain_config.name, "USDC")


@pytest.mark.asyncio
async def test_deposit_for_yield_executes_and_indexes(repository, market, transactions, chain, chain_config) -> None:
    service = _service(repository, market, transactions, chain, chain_config)

    result = await service.deposit_for_yield("Aave", "25")

    assert result.success
    assert result.description == "Deposit 25 USDC into Aave for yield generation"
    assert transactions.indexed == result.hashes
    assert repository.tasks == {}


@pytest.mark.asyncio
async def test_deposit_for_yield_rejects_unknown_protocol(repository, market, transactions, chain, chain_config) -> None:
    service = _service(repository, market, transactions, chain, chain_config)

    result = await service.deposit_for_yield("Uniswap", "25")

    assert not result.success
    assert result.reason == "No valid yield opportunities found for Uniswap"
    assert transactions.requests == []


@pytest.mark.asyncio
async def test_deposit_for_yield_stops_on_failed_simulation(repository, market, transactions, chain_config) -> None:
    chain = StubChainClient(fail_simulation=True)
    service = _service(repository, market, transactions, chain, chain_config)

    result = await service.deposit_for_yield("Aave", "25")

    assert not result.success
    assert result.task_id in repository.tasks
    assert "Failed to simulate transaction" in result.reason
    assert not [event for event in chain.events if event[0] == "send"]


@pytest.mark.asyncio
async def test_deposit_for_yield_reports_build_failure(repository, market, transactions, chain, chain_config) -> None:
    service = _service(repository, market, transactions, chain, chain_config)

    result = await service.deposit_for_yield("Aave", "lots")

    assert not result.success
    assert result.reason.startswith("Failed to build yield transaction")
    assert repository.tasks == {}


@pytest.mark.asyncio
async def test_schedule_execution_enqueues_task(repository, market, transactions, chain, chain_config) -> None:
    queue = StubQueue()
    service = _service(repository, market, transactions, chain, chain_config, queue=queue)

    job_id = await service.schedule_execution("task-7")

    assert job_id == "job-task-7"
    assert queue.enqueued == ["task-7"]


@pytest.mark.asyncio
async def test_service_resolves_collaborators_from_injector(
    monkeypatch, repository, market, transactions, chain, chain_config
) -> None:
    queue = StubQueue()
    bindings = {
        TaskRepository: repository,
        MarketDataProvider: market,
        ProtocolTransactionService: transactions,
        ChainClient: chain,
        ChainConfig: chain_config,
        ChainSettings: ChainSettings(RECEIPT_TIMEOUT_SECONDS=7.0),
        ExecutionQueue: queue,
    }
    monkeypatch.setattr(inject, "instance", lambda iface: bindings[iface])

    service = PipelineService()
    batch = await service.build_transactions([BuildRequest(text="Deposit 10 USDC into Compound")])
    result = await service.execute(batch.results[0].task_id)
    job_id = await service.schedule_execution("task-9")

    assert result.success
    assert chain.timeouts == [7.0, 7.0]
    assert job_id == "job-task-9"


@pytest.mark.asyncio
async def test_describe_yield_opportunities_renders_each_line(
    repository, market, transactions, chain, chain_config
) -> None:
    service = _service(repository, market, transactions, chain, chain_config)

    report = await service.describe_yield_opportunities(min_apy=4.0)

    assert report.splitlines() == [
        "Aave USDC: APY 4.2% - TVL: $1000000",
        "Morpho USDC: APY 6.0% - TVL: $0",
    ]


@pytest.mark.asyncio
async def test_describe_yield_opportunities_reports_empty_results(
    repository, transactions, chain, chain_config
) -> None:
    empty = _service(repository, StubMarketData([]), transactions, chain, chain_config)
    assert await empty.describe_yield_opportunities() == "No yield opportunities found for USDC"

    thin = _service(
        repository,
        StubMarketData([YieldOpportunity(name="Aave USDC", apy=2.5)]),
        transactions,
        chain,
        chain_config,
    )
    assert (
        await thin.describe_yield_opportunities(min_apy=5.0)
        == "No opportunities meeting minimum APY of 5.0% found"
    )
