"""Pytest fixtures and stub providers shared across all hodlcheck tests."""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable

import pytest

from hodlcheck.config import HodlcheckConfig
from hodlcheck.exceptions import UnsupportedError
from hodlcheck.models import (
    Address,
    TransactionPage,
    TraversalCursor,
    TxInput,
    TxOutput,
    TxRecord,
    WalletSummary,
)
from hodlcheck.providers.base import FIRST_SEEN, PAGES, PRICE, SUMMARY
from hodlcheck.validator import validate_address

# ── Addresses ─────────────────────────────────────────────────────────────────

SEGWIT_ADDR = "bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh"
P2SH_ADDR = "3J98t1WpEZ73CNmQviecrnyiWrnqRhWNLy"
GENESIS_ADDR = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"
OTHER_ADDR = "bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq"

BASE_TS = 1_700_000_000  # 2023-11-14T22:13:20Z
NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


# ── Record builders ───────────────────────────────────────────────────────────


def make_record(
    txid: str,
    ts: int | None,
    spends_from: str | None = None,
    receives: str | None = SEGWIT_ADDR,
    value_sats: int = 50_000,
) -> TxRecord:
    """One transaction; `spends_from` puts that address among the inputs."""
    inputs = (TxInput(source_address=spends_from or OTHER_ADDR, value_sats=value_sats),)
    outputs = (TxOutput(address=receives, value_sats=value_sats),)
    return TxRecord(txid=txid, timestamp=ts, inputs=inputs, outputs=outputs)


def make_records(
    count: int,
    newest_ts: int = BASE_TS,
    step: int = 600,
    prefix: str = "tx",
    spend_at: int | None = None,
    address: str = SEGWIT_ADDR,
) -> list[TxRecord]:
    """`count` confirmed records, newest first, `step` seconds apart."""
    return [
        make_record(
            f"{prefix}{i:04d}",
            newest_ts - i * step,
            spends_from=address if spend_at == i else None,
        )
        for i in range(count)
    ]


def make_summary(funded: int = 150_000_000, spent: int = 0, tx_count: int = 3, source: str = "stub") -> WalletSummary:
    return WalletSummary(funded_sats=funded, spent_sats=spent, tx_count=tx_count, source=source)


# ── Stub provider ─────────────────────────────────────────────────────────────


class StubProvider:
    """
    In-memory LedgerProvider.

    Each capability is configured with a value, an exception instance to
    raise, or None (capability unsupported). Every call is recorded in
    `calls` so tests can assert which "network" operations happened.

    next_pages: list of record lists served in order (an exhausted list
    serves an empty page), or a callable(cursor) -> records.
    """

    def __init__(
        self,
        name: str = "stub",
        *,
        summary: WalletSummary | Exception | None = None,
        first_page: list[TxRecord] | Exception | None = None,
        next_pages: list[Any] | Callable[[TraversalCursor], Any] | None = None,
        first_seen: int | Exception | None = None,
        price: Decimal | Exception | None = None,
        page_size: int = 25,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.page_size = page_size
        self.calls: list[str] = []
        self.cursors: list[TraversalCursor] = []
        self.first_seen_kwargs: list[dict[str, Any]] = []
        self.cancelled = False
        self._summary = summary
        self._first_page = first_page
        self._next_pages = list(next_pages) if isinstance(next_pages, list) else next_pages
        self._first_seen = first_seen
        self._price = price
        self._delay = delay

        caps = set()
        if summary is not None:
            caps.add(SUMMARY)
        if first_page is not None:
            caps.add(PAGES)
        if first_seen is not None:
            caps.add(FIRST_SEEN)
        if price is not None:
            caps.add(PRICE)
        self.capabilities = frozenset(caps)

    async def _answer(self, method: str, value: Any) -> Any:
        self.calls.append(method)
        if value is None:
            raise UnsupportedError(f"{self.name} does not support {method}", provider=self.name)
        if self._delay:
            try:
                await asyncio.sleep(self._delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if isinstance(value, Exception):
            raise value
        return value

    def _page(self, address: Address, records: list[TxRecord]) -> TransactionPage:
        return TransactionPage(address=address.value, records=tuple(records), provider=self.name)

    async def fetch_summary(self, address: Address) -> WalletSummary:
        return await self._answer("fetch_summary", self._summary)

    async def fetch_first_page(self, address: Address) -> TransactionPage:
        return self._page(address, await self._answer("fetch_first_page", self._first_page))

    async def fetch_next_page(self, address: Address, cursor: TraversalCursor) -> TransactionPage:
        cursor.check_provider(self.name)
        self.cursors.append(cursor)
        if callable(self._next_pages):
            value = self._next_pages(cursor)
        elif self._next_pages:
            value = self._next_pages.pop(0)
        else:
            value = []
        return self._page(address, await self._answer("fetch_next_page", value))

    async def fetch_first_seen(self, address: Address, tx_count: int | None = None) -> int:
        self.first_seen_kwargs.append({"tx_count": tx_count})
        return await self._answer("fetch_first_seen", self._first_seen)

    async def fetch_price(self) -> Decimal:
        return await self._answer("fetch_price", self._price)

    async def close(self) -> None:
        pass

    def count(self, method: str) -> int:
        return self.calls.count(method)


def chains(
    summary: list | None = None,
    pages: list | None = None,
    first_seen: list | None = None,
    price: list | None = None,
) -> dict[str, list]:
    """Capability → provider list, as build_providers() would produce."""
    return {
        SUMMARY: summary or [],
        PAGES: pages or [],
        FIRST_SEEN: first_seen or [],
        PRICE: price or [],
    }


# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture
def sample_config() -> HodlcheckConfig:
    """Default config (no file, no env)."""
    return HodlcheckConfig()


@pytest.fixture
def segwit_address() -> Address:
    return validate_address(SEGWIT_ADDR)


@pytest.fixture
def genesis_address() -> Address:
    return validate_address(GENESIS_ADDR)


@pytest.fixture(autouse=True)
def _isolate_config_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep tests away from the user's ~/.hodlcheck and HODLCHECK_* env."""
    for key in list(os.environ):
        if key.startswith("HODLCHECK_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HODLCHECK_CONFIG_PATH", str(tmp_path / "config.toml"))
