"""Base provider protocol, capability names and the shared HTTP helper."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

import httpx

from hodlcheck.config import TimeoutConfig
from hodlcheck.exceptions import (
    APIError,
    ConnectionFailedError,
    NetworkTimeoutError,
    ProviderError,
    UnsupportedError,
)
from hodlcheck.models import Address, TransactionPage, TraversalCursor, WalletSummary

logger = logging.getLogger(__name__)

# Capabilities the orchestrator resolves by fallback
SUMMARY = "summary"
PAGES = "pages"
FIRST_SEEN = "first_seen"
PRICE = "price"

CAPABILITIES = (SUMMARY, PAGES, FIRST_SEEN, PRICE)

USER_AGENT = "hodlcheck/0.1"


@runtime_checkable
class LedgerProvider(Protocol):
    """
    Protocol that all indexing-service clients implement.

    Providers are responsible for:
    - Making exactly one HTTP request per call, bounded by a deadline
    - Normalizing responses into WalletSummary / TransactionPage
    - Raising ProviderError subclasses on any failure

    Providers are NOT responsible for:
    - Retrying or falling back (that's orchestrator.py)
    - Walking history (that's walker.py / scanner.py)
    - Reconciling partial answers (that's reconciler.py)
    """

    name: str
    page_size: int
    capabilities: frozenset[str]

    async def fetch_summary(self, address: Address) -> WalletSummary:
        """Funded/spent totals and transaction count."""
        ...

    async def fetch_first_page(self, address: Address) -> TransactionPage:
        """Newest-first page of transactions."""
        ...

    async def fetch_next_page(self, address: Address, cursor: TraversalCursor) -> TransactionPage:
        """
        Page of transactions older than cursor.before_txid.

        Raises:
            PageNotFoundError: cursor transaction no longer resolves
        """
        ...

    async def fetch_first_seen(self, address: Address, tx_count: int | None = None) -> int:
        """Unix timestamp of the first transaction funding the address."""
        ...

    async def fetch_price(self) -> Decimal:
        """Current BTC/USD."""
        ...

    async def close(self) -> None:
        ...


class BaseProvider:
    """
    Shared plumbing for provider clients.

    Every capability raises UnsupportedError until a subclass overrides it,
    so the orchestrator can dispatch uniformly across providers.
    """

    name: str = ""
    page_size: int = 0
    capabilities: frozenset[str] = frozenset()

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeouts: TimeoutConfig | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(headers={"User-Agent": USER_AGENT})
        self._timeouts = timeouts or TimeoutConfig()

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities

    async def fetch_summary(self, address: Address) -> WalletSummary:
        raise self._unsupported(SUMMARY)

    async def fetch_first_page(self, address: Address) -> TransactionPage:
        raise self._unsupported(PAGES)

    async def fetch_next_page(self, address: Address, cursor: TraversalCursor) -> TransactionPage:
        raise self._unsupported(PAGES)

    async def fetch_first_seen(self, address: Address, tx_count: int | None = None) -> int:
        raise self._unsupported(FIRST_SEEN)

    async def fetch_price(self) -> Decimal:
        raise self._unsupported(PRICE)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    # ──────────────────────────────────────────────────────────────
    # Private helpers
    # ──────────────────────────────────────────────────────────────

    def _unsupported(self, capability: str) -> UnsupportedError:
        return UnsupportedError(
            f"{self.name} does not support {capability}",
            provider=self.name,
        )

    async def _get_json(
        self,
        url: str,
        timeout: float,
        params: dict[str, Any] | None = None,
        not_found: type[ProviderError] | None = None,
    ) -> Any:
        """
        Single GET returning decoded JSON.

        The request is bounded twice: httpx's own timeout covers each I/O
        phase, asyncio.wait_for caps the whole call so a slow-drip response
        cannot exceed `timeout` either. Expiry cancels the request.
        """
        logger.debug("%s GET %s params=%s timeout=%.1fs", self.name, url, params, timeout)
        try:
            resp = await asyncio.wait_for(
                self._client.get(
                    url,
                    params=params,
                    headers={"Accept": "application/json"},
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise NetworkTimeoutError(
                f"{self.name} timeout after {timeout:g}s", provider=self.name
            ) from e
        except httpx.ConnectError as e:
            raise ConnectionFailedError(
                f"Cannot connect to {self.name}: {e}", provider=self.name
            ) from e
        except httpx.HTTPError as e:
            raise APIError(f"{self.name} request failed: {e}", provider=self.name) from e

        if resp.status_code == 404 and not_found is not None:
            raise not_found(f"{self.name}: {url} not found", provider=self.name)
        if resp.status_code != 200:
            raise APIError(
                f"{self.name} API error: HTTP {resp.status_code}",
                provider=self.name,
                details={"status_code": resp.status_code},
            )

        try:
            return resp.json()
        except ValueError as e:
            raise APIError(f"{self.name} returned invalid JSON", provider=self.name) from e
