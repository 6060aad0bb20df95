from __future__ import annotations

import asyncio
import logging

import inject

from src.intentflow.domain.exceptions import AddressResolutionError, ProtocolNotFoundError
from src.intentflow.domain.models.market import YieldOpportunity
from src.intentflow.domain.models.task import is_address
from src.intentflow.domain.repositories import MarketDataProvider
from src.setup.chains import ChainConfig

logger = logging.getLogger(__name__)


class ProtocolResolver:
    """Map a human protocol label to its canonical contract address.

    Each resolver instance keeps at most one market snapshot per token. Long-lived
    instances should not be reused across pipeline invocations; call ``scoped()`` to get
    a fresh instance whose cache lives only as long as one batch.
    """

    def __init__(
        self,
        market: MarketDataProvider | None = None,
        chain: ChainConfig | None = None,
        *,
        memoize: bool = False,
    ) -> None:
        self._market = market or inject.instance(MarketDataProvider)
        self._chain = chain or inject.instance(ChainConfig)
        self._memoize = memoize
        self._snapshots: dict[str, list[YieldOpportunity]] = {}
        self._lock = asyncio.Lock()

    def scoped(self) -> ProtocolResolver:
        return ProtocolResolver(self._market, self._chain, memoize=True)

    async def resolve(self, target: str, token: str) -> str:
        opportunities = await self._opportunities(token)
        match = self.match(target, opportunities)
        if match is None:
            raise ProtocolNotFoundError(target, token)

        if is_address(match.address):
            return match.address  # type: ignore[return-value]

        for key in (match.address, target, match.name.split(" ")[0]):
            if not key:
                continue
            address = self._chain.protocol_address(key)
            if address is not None:
                return address

        logger.warning(
            "Matched opportunity has no known address",
            extra={"target": target, "opportunity": match.name},
        )
        raise AddressResolutionError(match.name)

    @staticmethod
    def match(target: str, opportunities: list[YieldOpportunity]) -> YieldOpportunity | None:
        """Exact case-insensitive name match first, then substring containment."""
        wanted = target.strip().lower()
        if not wanted:
            return None
        for opportunity in opportunities:
            if opportunity.name.lower() == wanted:
                return opportunity
        for opportunity in opportunities:
            if wanted in opportunity.name.lower():
                return opportunity
        return None

    async def _opportunities(self, token: str) -> list[YieldOpportunity]:
        key = token.lower()
        if not self._memoize:
            return await self._fetch(token)
        async with self._lock:
            if key not in self._snapshots:
                self._snapshots[key] = await self._fetch(token)
            return self._snapshots[key]

    async def _fetch(self, token: str) -> list[YieldOpportunity]:
        snapshot = await self._market.get_market_data(self._chain.name, token)
        return snapshot.tokens
