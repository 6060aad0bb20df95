from dataclasses import dataclass, field


@dataclass(frozen=True)
class TokenInfo:
    address: str
    decimals: int


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int
    name: str
    tokens: dict[str, TokenInfo] = field(default_factory=dict)
    protocols: dict[str, str] = field(default_factory=dict)

    def token(self, symbol: str) -> TokenInfo | None:
        return self.tokens.get(symbol.lower())

    def protocol_address(self, name: str) -> str | None:
        return self.protocols.get(name.lower())


_CHAINS: dict[int, ChainConfig] = {
    8453: ChainConfig(
        chain_id=8453,
        name="base",
        tokens={
            "usdc": TokenInfo("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", 6),
            "usdbc": TokenInfo("0xd9aAEc86B65D86f6A7B5B1b0c42FFA531710b6CA", 6),
            "weth": TokenInfo("0x4200000000000000000000000000000000000006", 18),
        },
        protocols={
            "aave": "0x0595D1Df64279ddB51F1bdC405Fe2D0b4Cc86681",
            "aave-v3": "0x0595D1Df64279ddB51F1bdC405Fe2D0b4Cc86681",
            "compound": "0xb125E6687d4313864e53df431d5425969c15Eb2F",
            "compound-v3": "0xb125E6687d4313864e53df431d5425969c15Eb2F",
            "moonwell": "0xEdc817A28E8B93B03976FBd4a3dDBc9f7D176c22",
        },
    ),
    42161: ChainConfig(
        chain_id=42161,
        name="arbitrum",
        tokens={
            "usdc": TokenInfo("0xaf88d065e77c8cC2239327C5EDb3A432268e5831", 6),
            "usdc.e": TokenInfo("0xFF970A61A04b1cA14834A43f5dE4533eBDDB5CC8", 6),
            "weth": TokenInfo("0x82aF49447D8a07e3bd95BD0d56f35241523fBab1", 18),
        },
        protocols={
            "aave": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
            "aave-v3": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
            "compound": "0x9c4ec768c28520B50860ea7a15bd7213a9fF58bf",
            "compound-v3": "0x9c4ec768c28520B50860ea7a15bd7213a9fF58bf",
        },
    ),
}


def get_chain_config(chain_id: int) -> ChainConfig:
    try:
        return _CHAINS[chain_id]
    except KeyError as exc:
        raise ValueError(f"Chain id {chain_id} is not supported") from exc
