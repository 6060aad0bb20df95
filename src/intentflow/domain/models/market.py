from pydantic import BaseModel, Field


class YieldOpportunity(BaseModel):
    name: str = Field(description="Display name, e.g. 'Aave USDC'.")
    address: str | None = Field(
        default=None,
        description="Protocol contract address or provider identifier.",
    )
    apy: float = Field(default=0.0, description="Annual percentage yield, in percent.")
    volume_1d: str = Field(default="0", description="One-day volume or TVL, in USD.")
    volume_7d: str = Field(default="0", description="Seven-day volume or TVL, in USD.")

    def describe(self) -> str:
        return f"{self.name}: APY {self.apy}% - TVL: ${self.volume_7d}"


class MarketSnapshot(BaseModel):
    tokens: list[YieldOpportunity] = Field(default_factory=list)


class PositionQuery(BaseModel):
    protocol: str
    token: str


class PositionData(BaseModel):
    protocol: str
    token: str
    data: list[YieldOpportunity] = Field(default_factory=list)
