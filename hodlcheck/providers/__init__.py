"""
Provider layer for hodlcheck.

Provides a factory `get_provider()` returning the client for one indexing
service, and `build_providers()` which instantiates every provider named
in the config on a shared httpx client. All providers implement
LedgerProvider.

Usage:
    from hodlcheck.providers import build_providers
    providers = build_providers(config, client)
    summary = await providers[SUMMARY][0].fetch_summary(address)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hodlcheck.providers.base import (
    CAPABILITIES,
    FIRST_SEEN,
    PAGES,
    PRICE,
    SUMMARY,
    BaseProvider,
    LedgerProvider,
)

if TYPE_CHECKING:
    import httpx

    from hodlcheck.config import HodlcheckConfig, TimeoutConfig

SUPPORTED_PROVIDERS = ("blockstream", "mempool", "blockchair", "blockchain_info")

__all__ = [
    "CAPABILITIES",
    "FIRST_SEEN",
    "PAGES",
    "PRICE",
    "SUMMARY",
    "SUPPORTED_PROVIDERS",
    "BaseProvider",
    "LedgerProvider",
    "build_providers",
    "get_provider",
]


def get_provider(
    name: str,
    client: httpx.AsyncClient | None = None,
    timeouts: TimeoutConfig | None = None,
) -> BaseProvider:
    """
    Factory: return the client for the named indexing service.

    Raises:
        ValueError: Unknown provider name
    """
    name = name.lower()
    if name not in SUPPORTED_PROVIDERS:
        raise ValueError(
            f"Unsupported provider: {name!r}. Supported: {sorted(SUPPORTED_PROVIDERS)}"
        )

    if name == "blockstream":
        from hodlcheck.providers.esplora import BlockstreamProvider

        return BlockstreamProvider(client=client, timeouts=timeouts)

    if name == "mempool":
        from hodlcheck.providers.esplora import MempoolProvider

        return MempoolProvider(client=client, timeouts=timeouts)

    if name == "blockchair":
        from hodlcheck.providers.blockchair import BlockchairProvider

        return BlockchairProvider(client=client, timeouts=timeouts)

    if name == "blockchain_info":
        from hodlcheck.providers.blockchain_info import BlockchainInfoProvider

        return BlockchainInfoProvider(client=client, timeouts=timeouts)

    raise ValueError(f"Unreachable: {name}")  # pragma: no cover


def build_providers(
    config: HodlcheckConfig,
    client: httpx.AsyncClient | None = None,
) -> dict[str, list[LedgerProvider]]:
    """
    Instantiate the configured fallback chain for every capability.

    A provider named under several capabilities is built once and shared.

    Returns:
        {capability: [provider, ...]} in configured priority order.
    """
    instances: dict[str, BaseProvider] = {}
    chains: dict[str, list[LedgerProvider]] = {}
    for capability in CAPABILITIES:
        chain: list[LedgerProvider] = []
        for name in getattr(config.providers, capability):
            if name not in instances:
                instances[name] = get_provider(name, client=client, timeouts=config.timeouts)
            chain.append(instances[name])
        chains[capability] = chain
    return chains
