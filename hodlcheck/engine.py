"""
Wallet-history resolution engine.

One stateless pipeline per lookup:

  validate → summary ∥ price → [tx_count == 0 → NotFound]
           → first page ∥ first-seen lookup
           → [ever sent] outgoing scan
           → earliest = known override | first-seen | history walk
           → reconcile

Independent capabilities (summary and price; first page and first-seen)
run concurrently as asyncio tasks. Any task still running when the lookup
finishes or fails is cancelled, so no request outlives its usefulness.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from decimal import Decimal

import httpx

from hodlcheck.config import HodlcheckConfig
from hodlcheck.exceptions import (
    HodlcheckError,
    InternalError,
    LookupTimeoutError,
    NoTransactionsError,
    UpstreamUnavailableError,
)
from hodlcheck.models import Address, EarliestTimestamp, LookupResult, WalletSummary
from hodlcheck.orchestrator import FallbackOrchestrator, Resolution
from hodlcheck.providers import FIRST_SEEN, PAGES, PRICE, SUMMARY, LedgerProvider, build_providers
from hodlcheck.providers.base import USER_AGENT
from hodlcheck.reconciler import reconcile
from hodlcheck.scanner import find_last_outgoing
from hodlcheck.validator import validate_address
from hodlcheck.walker import KNOWN_SOURCE, HistoryWalker, known_first_receive

logger = logging.getLogger(__name__)


class LookupEngine:
    """
    Resolves LookupResults for single addresses.

    Holds no per-lookup state, so one engine may serve many lookups. When
    no provider chains are injected, the engine builds them from config on
    its own httpx client and closes that client in close().

    Usage:
        async with LookupEngine(config) as engine:
            result = await engine.lookup("bc1q...")
    """

    def __init__(
        self,
        config: HodlcheckConfig | None = None,
        providers: Mapping[str, Sequence[LedgerProvider]] | None = None,
    ) -> None:
        self.config = config or HodlcheckConfig()
        self._client: httpx.AsyncClient | None = None
        if providers is None:
            self._client = httpx.AsyncClient(headers={"User-Agent": USER_AGENT})
            providers = build_providers(self.config, client=self._client)
        self._orchestrator = FallbackOrchestrator(providers)
        self._walker = HistoryWalker(page_budget=self.config.traversal.page_budget)

    async def __aenter__(self) -> LookupEngine:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def lookup(self, raw_address: object, now: datetime | None = None) -> LookupResult:
        """
        Resolve the full LookupResult for one address.

        Raises:
            InvalidAddressError: malformed address (no network call made)
            NoTransactionsError: address has no history
            LookupTimeoutError: summary timed out on every provider
            UpstreamUnavailableError: summary failed on every provider
            HistoryUnresolvedError: earliest transaction could not be found
            InternalError: anything unexpected
        """
        try:
            return await self._lookup(raw_address, now)
        except HodlcheckError:
            raise
        except Exception as e:
            logger.exception("Unexpected lookup failure")
            raise InternalError("Something went wrong. Try again.") from e

    # ──────────────────────────────────────────────────────────────
    # Private helpers
    # ──────────────────────────────────────────────────────────────

    async def _lookup(self, raw_address: object, now: datetime | None) -> LookupResult:
        address = validate_address(raw_address)
        logger.info("Looking up %s (%s)", address.value, address.kind)

        tasks: list[asyncio.Task] = []
        try:
            price_task = self._spawn(tasks, self._orchestrator.resolve(PRICE))
            summary = self._require_summary(
                address, await self._orchestrator.resolve(SUMMARY, address)
            )
            if summary.tx_count == 0:
                raise NoTransactionsError(
                    "Address has no transactions",
                    details={"address": address.value},
                )

            known = known_first_receive(address)
            first_seen_task = None
            if known is None:
                first_seen_task = self._spawn(
                    tasks,
                    self._orchestrator.resolve(FIRST_SEEN, address, tx_count=summary.tx_count),
                )

            # A known first receive needs no history pages unless a spend must be dated.
            pages = Resolution(capability=PAGES)
            if known is None or summary.ever_sent:
                pages = await self._orchestrator.resolve(PAGES, address)
            first_page = pages.value if pages.ok else None

            last_outgoing = None
            if summary.ever_sent and pages.ok:
                last_outgoing = await find_last_outgoing(pages.provider, address, first_page)

            if known is not None:
                earliest: EarliestTimestamp | None = EarliestTimestamp(known, KNOWN_SOURCE)
            else:
                earliest = await self._resolve_earliest(address, await first_seen_task, pages)

            price_res = await price_task
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        sources = {"summary": summary.source}
        if pages.ok:
            sources["pages"] = pages.provider_name
        if price_res.ok:
            sources["price"] = price_res.provider_name

        return reconcile(
            address,
            summary,
            earliest,
            last_activity=first_page.newest_timestamp() if first_page is not None else None,
            last_outgoing=last_outgoing,
            price=price_res.value if price_res.ok else None,
            now=now,
            price_floor=Decimal(str(self.config.price.floor_usd)),
            sources=sources,
        )

    @staticmethod
    def _spawn(tasks: list[asyncio.Task], coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        tasks.append(task)
        return task

    @staticmethod
    def _require_summary(address: Address, resolution: Resolution) -> WalletSummary:
        if resolution.ok:
            return resolution.value
        details = {
            "address": address.value,
            "failures": [f.to_dict() for f in resolution.failures],
        }
        if resolution.timed_out:
            raise LookupTimeoutError("Request timed out. Try again.", details=details)
        raise UpstreamUnavailableError("Could not look up address. Try again.", details=details)

    async def _resolve_earliest(
        self,
        address: Address,
        first_seen: Resolution,
        pages: Resolution,
    ) -> EarliestTimestamp | None:
        """Direct first-seen lookup if any provider answered, else walk pages."""
        if first_seen.ok:
            return EarliestTimestamp(first_seen.value, first_seen.provider_name)

        if not pages.ok:
            logger.warning("%s: no first-seen answer and no page provider", address.value)
            return None

        walk = await self._walker.walk(pages.provider, address, first_page=pages.value)
        return walk.to_earliest()


async def lookup_wallet(
    raw_address: object,
    config: HodlcheckConfig | None = None,
    providers: Mapping[str, Sequence[LedgerProvider]] | None = None,
    now: datetime | None = None,
) -> LookupResult:
    """One-shot lookup on a short-lived engine."""
    async with LookupEngine(config=config, providers=providers) as engine:
        return await engine.lookup(raw_address, now=now)
