import inject

from src.intentflow.domain.repositories import (
    ChainClient,
    ExecutionQueue,
    MarketDataProvider,
    ProtocolTransactionService,
    TaskRepository,
)
from src.intentflow.infrastructure.celery.app import celery_app
from src.intentflow.infrastructure.celery.execution_queue import CeleryExecutionQueue
from src.intentflow.infrastructure.chain.client import Web3ChainClient
from src.intentflow.infrastructure.console_kit.client import ConsoleKitClient
from src.intentflow.infrastructure.postgres.orm import PostgresOrm
from src.intentflow.infrastructure.postgres.repositories import PostgresTaskRepository
from src.intentflow.infrastructure.stakekit.client import StakeKitClient
from src.setup.celery_config import get_celery_settings
from src.setup.chain_config import ChainSettings, get_chain_settings
from src.setup.chains import ChainConfig, get_chain_config
from src.setup.console_config import get_console_settings
from src.setup.db_config import get_database_settings
from src.setup.market_config import get_market_settings


def _task_repository() -> TaskRepository:
    settings = get_database_settings()
    orm = PostgresOrm(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_pre_ping=settings.DATABASE_POOL_PRE_PING,
    )
    return PostgresTaskRepository(orm)


def _market_data() -> MarketDataProvider:
    return StakeKitClient(get_market_settings(), inject.instance(ChainConfig).name)


def _transaction_service() -> ProtocolTransactionService:
    return ConsoleKitClient(get_console_settings(), inject.instance(ChainConfig).chain_id)


def _chain_client() -> ChainClient:
    return Web3ChainClient.from_settings(inject.instance(ChainSettings))


def _execution_queue() -> ExecutionQueue:
    return CeleryExecutionQueue(celery_app, get_celery_settings().EXECUTION_QUEUE)


def _bind(binder: inject.Binder) -> None:
    settings = get_chain_settings()
    binder.bind(ChainSettings, settings)
    binder.bind(ChainConfig, get_chain_config(settings.CHAIN_ID))
    # Adapters are built on first use so a process only needs the settings it touches.
    binder.bind_to_constructor(TaskRepository, _task_repository)
    binder.bind_to_constructor(MarketDataProvider, _market_data)
    binder.bind_to_constructor(ProtocolTransactionService, _transaction_service)
    binder.bind_to_constructor(ChainClient, _chain_client)
    binder.bind_to_constructor(ExecutionQueue, _execution_queue)


def configure_di() -> None:
    """Configure the process-wide injector once; later calls are no-ops."""
    if inject.is_configured():
        return
    inject.configure(_bind)
