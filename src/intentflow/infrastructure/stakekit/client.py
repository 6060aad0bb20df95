from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.intentflow.domain.models.market import (
    MarketSnapshot,
    PositionData,
    PositionQuery,
    YieldOpportunity,
)
from src.intentflow.domain.repositories import MarketDataProvider
from src.setup.market_config import MarketDataSettings

logger = logging.getLogger(__name__)

_TOKEN_ALIASES: dict[str, frozenset[str]] = {
    "usdc": frozenset({"usdc", "usdbc", "usdc.e"}),
}


class StakeKitToken(BaseModel):
    model_config = ConfigDict(extra="ignore")

    symbol: str = ""
    address: str | None = None


class StakeKitProvider(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str = ""
    tvl: float | str | None = None


class StakeKitYieldMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    provider: StakeKitProvider = Field(default_factory=StakeKitProvider)


class StakeKitYield(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | None = None
    apy: float = 0.0
    token: StakeKitToken = Field(default_factory=StakeKitToken)
    metadata: StakeKitYieldMetadata = Field(default_factory=StakeKitYieldMetadata)
    contract_address: str | None = Field(default=None, alias="contractAddress")

    def has_liquidity(self, floor: float) -> bool:
        """Yields without a reported TVL are kept."""
        try:
            return float(self.metadata.provider.tvl) >= floor  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return True

    def to_opportunity(self) -> YieldOpportunity:
        provider = self.metadata.provider
        tvl = str(provider.tvl) if provider.tvl is not None else "0"
        return YieldOpportunity(
            name=f"{provider.name} {self.token.symbol}".strip(),
            address=self.contract_address or provider.id,
            apy=self.apy * 100,
            volume_1d=tvl,
            volume_7d=tvl,
        )


class StakeKitPage(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    data: list[StakeKitYield] = Field(default_factory=list)


def _token_matches(symbol: str, token: str) -> bool:
    wanted = token.lower()
    aliases = _TOKEN_ALIASES.get(wanted, frozenset({wanted}))
    return symbol.lower() in aliases


class StakeKitClient(MarketDataProvider):
    """Yield market data from the StakeKit API. Failures degrade to empty results."""

    def __init__(
        self,
        settings: MarketDataSettings,
        chain: str,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._chain = chain
        self._http = http_client or httpx.AsyncClient(
            base_url=settings.STAKEKIT_API_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        self._headers = {
            "X-API-KEY": settings.STAKEKIT_API_KEY,
            "Content-Type": "application/json",
        }

    async def get_market_data(self, chain: str, token: str) -> MarketSnapshot:
        yields = await self._lending_yields(chain)
        opportunities = [
            item.to_opportunity() for item in yields if _token_matches(item.token.symbol, token)
        ]
        opportunities.sort(key=lambda opportunity: opportunity.apy, reverse=True)
        return MarketSnapshot(tokens=opportunities)

    async def get_position_data(
        self,
        queries: list[PositionQuery],
        *,
        min_liquidity: float | None = None,
        min_apy: float | None = None,
        max_apy: float | None = None,
    ) -> list[PositionData]:
        low = (self._settings.MIN_APY if min_apy is None else min_apy) / 100
        high = (self._settings.MAX_APY if max_apy is None else max_apy) / 100
        floor = self._settings.MIN_LIQUIDITY if min_liquidity is None else min_liquidity
        yields = await self._lending_yields(self._chain)

        results: list[PositionData] = []
        for query in queries:
            protocol = query.protocol.lower()
            token = query.token.lower()
            matching = [
                item
                for item in yields
                if low <= item.apy <= high
                and protocol in item.metadata.provider.name.lower()
                and token in item.token.symbol.lower()
                and item.has_liquidity(floor)
            ]
            results.append(
                PositionData(
                    protocol=query.protocol,
                    token=query.token,
                    data=[item.to_opportunity() for item in matching],
                )
            )
        return results

    async def close(self) -> None:
        await self._http.aclose()

    async def _lending_yields(self, chain: str) -> list[StakeKitYield]:
        page = await self._fetch("/v2/yields", params={"type": "lending", "network": chain})
        return page.data

    async def _fetch(self, endpoint: str, **kwargs: Any) -> StakeKitPage:
        try:
            response = await self._http.get(endpoint, headers=self._headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("StakeKit request failed", extra={"endpoint": endpoint, "error": str(exc)})
            return StakeKitPage()

        if response.is_error:
            logger.warning(
                "StakeKit API error",
                extra={"endpoint": endpoint, "status_code": response.status_code},
            )
            return StakeKitPage()

        try:
            return StakeKitPage.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("StakeKit returned an invalid payload", extra={"endpoint": endpoint, "error": str(exc)})
            return StakeKitPage()
