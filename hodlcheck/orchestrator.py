"""
Fallback orchestration across providers.

For one capability, walk an ordered list of providers and return the first
success. Provider failures (errors, timeouts, unsupported) are logged and
swallowed; only when the list is exhausted does the capability resolve to
absent, and the caller decides whether that is fatal.

Ordering is static configuration. No provider is tried twice in one pass
and nothing is retried with backoff: resilience comes from provider
diversity, not from hammering a failing endpoint.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from hodlcheck.exceptions import NetworkTimeoutError, ProviderError, UnsupportedError
from hodlcheck.providers.base import FIRST_SEEN, PAGES, PRICE, SUMMARY, LedgerProvider

logger = logging.getLogger(__name__)

# Capability → provider method the orchestrator dispatches to
_METHODS = {
    SUMMARY: "fetch_summary",
    PAGES: "fetch_first_page",
    FIRST_SEEN: "fetch_first_seen",
    PRICE: "fetch_price",
}


@dataclass(frozen=True)
class Resolution:
    """Outcome of one fallback pass for one capability."""

    capability: str
    value: Any = None
    provider: LedgerProvider | None = None
    failures: tuple[ProviderError, ...] = ()

    @property
    def ok(self) -> bool:
        return self.provider is not None

    @property
    def provider_name(self) -> str | None:
        return self.provider.name if self.provider is not None else None

    @property
    def timed_out(self) -> bool:
        """True when the last real attempt (not a capability skip) timed out."""
        for failure in reversed(self.failures):
            if isinstance(failure, UnsupportedError):
                continue
            return isinstance(failure, NetworkTimeoutError)
        return False


class FallbackOrchestrator:
    """
    Resolves capabilities against ordered provider chains.

    Args:
        chains: {capability: [provider, ...]} in priority order, as built by
                hodlcheck.providers.build_providers().
    """

    def __init__(self, chains: Mapping[str, Sequence[LedgerProvider]]) -> None:
        unknown = set(chains) - set(_METHODS)
        if unknown:
            raise ValueError(f"Unknown capabilities: {sorted(unknown)}")
        self._chains = {cap: list(providers) for cap, providers in chains.items()}

    async def resolve(self, capability: str, *args: Any, **kwargs: Any) -> Resolution:
        """
        Try each provider for `capability` in order; first success wins.

        Positional and keyword arguments are passed through to the provider
        method (e.g. the address, or tx_count for first-seen lookups).
        """
        method_name = _METHODS[capability]
        failures: list[ProviderError] = []
        tried: set[str] = set()

        for provider in self._chains.get(capability, []):
            if provider.name in tried:
                continue
            tried.add(provider.name)

            if capability not in provider.capabilities:
                failures.append(
                    UnsupportedError(
                        f"{provider.name} does not support {capability}",
                        provider=provider.name,
                    )
                )
                continue

            try:
                value = await getattr(provider, method_name)(*args, **kwargs)
            except ProviderError as e:
                logger.warning("%s failed %s: %s", provider.name, capability, e.message)
                failures.append(e)
                continue

            logger.debug("%s resolved by %s", capability, provider.name)
            return Resolution(
                capability=capability,
                value=value,
                provider=provider,
                failures=tuple(failures),
            )

        logger.warning("%s unresolved: %d provider(s) failed", capability, len(failures))
        return Resolution(capability=capability, failures=tuple(failures))
