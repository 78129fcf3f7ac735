"""Tests for hodlcheck/models.py — value types and their invariants."""

from __future__ import annotations

from decimal import Decimal

import pytest
from conftest import BASE_TS, SEGWIT_ADDR, make_record, make_records

from hodlcheck.models import (
    EarliestTimestamp,
    LookupResult,
    TransactionPage,
    TraversalCursor,
    TxInput,
    TxRecord,
    WalletSummary,
    sats_to_btc,
)


def page(records, provider: str = "stub") -> TransactionPage:
    return TransactionPage(address=SEGWIT_ADDR, records=tuple(records), provider=provider)


# ── Amounts ───────────────────────────────────────────────────────────────────


def test_sats_to_btc_exact() -> None:
    assert sats_to_btc(1) == Decimal("0.00000001")
    assert sats_to_btc(150_000_000) == Decimal("1.5")
    assert sats_to_btc(2_100_000_000_000_000) == Decimal("21000000")


def test_wallet_summary_conversions() -> None:
    summary = WalletSummary(funded_sats=150_000_000, spent_sats=49_999_999, tx_count=5)
    assert summary.total_received == Decimal("1.5")
    assert summary.total_sent == Decimal("0.49999999")
    assert summary.current_balance == Decimal("1.00000001")
    assert summary.current_balance == summary.total_received - summary.total_sent
    assert summary.ever_sent is True


def test_wallet_summary_never_sent() -> None:
    summary = WalletSummary(funded_sats=1, spent_sats=0, tx_count=1)
    assert summary.ever_sent is False
    assert summary.total_sent == 0


def test_wallet_summary_rejects_negative_tx_count() -> None:
    with pytest.raises(ValueError):
        WalletSummary(funded_sats=0, spent_sats=0, tx_count=-1)


# ── Transactions ──────────────────────────────────────────────────────────────


def test_tx_record_spends_from() -> None:
    record = TxRecord(
        txid="a",
        timestamp=BASE_TS,
        inputs=(TxInput(source_address=None), TxInput(source_address=SEGWIT_ADDR)),
    )
    assert record.spends_from(SEGWIT_ADDR) is True
    assert record.spends_from("3J98t1WpEZ73CNmQviecrnyiWrnqRhWNLy") is False


def test_page_timestamps_skip_unconfirmed() -> None:
    records = [make_record("mempool", None)] + make_records(3) + [make_record("tail", None)]
    p = page(records)
    assert p.newest_timestamp() == BASE_TS
    assert p.oldest_timestamp() == BASE_TS - 2 * 600


def test_page_timestamps_empty() -> None:
    p = page([])
    assert p.oldest_timestamp() is None
    assert p.newest_timestamp() is None
    assert p.last_txid() is None


def test_page_full_counts_confirmed_only() -> None:
    records = [make_record("mempool", None)] + make_records(24)
    assert len(page(records)) == 25
    assert page(records).is_full(25) is False
    assert page(make_records(25)).is_full(25) is True


# ── Cursor ────────────────────────────────────────────────────────────────────


def test_cursor_after_short_page_is_none() -> None:
    assert TraversalCursor.after(page(make_records(3)), page_size=25) is None


def test_cursor_after_full_page_points_at_oldest() -> None:
    records = make_records(25)
    cursor = TraversalCursor.after(page(records), page_size=25)
    assert cursor is not None
    assert cursor.before_txid == records[-1].txid
    assert cursor.provider == "stub"
    assert cursor.pages_walked == 0


def test_cursor_advance_counts_pages() -> None:
    cursor = TraversalCursor.after(page(make_records(25)), page_size=25)
    nxt = cursor.advance(page(make_records(25, prefix="older")), page_size=25)
    assert nxt.pages_walked == 1
    assert nxt.before_txid == "older0024"
    # the consumed cursor is unchanged
    assert cursor.pages_walked == 0


def test_cursor_rejects_foreign_provider() -> None:
    cursor = TraversalCursor.after(page(make_records(25)), page_size=25)
    with pytest.raises(ValueError, match="cannot be used"):
        cursor.advance(page(make_records(25), provider="other"), page_size=25)


# ── LookupResult ──────────────────────────────────────────────────────────────


def test_lookup_result_to_dict() -> None:
    result = LookupResult(
        address=SEGWIT_ADDR,
        first_receive=1231006505,
        last_activity=1231006505,
        total_received=Decimal("1.5"),
        total_sent=Decimal("0"),
        current_balance=Decimal("1.5"),
        tx_count=3,
        ever_sold=False,
        btc_price=Decimal("84712"),
        hold_days=100,
    )
    d = result.to_dict()
    assert d["first_receive"] == "2009-01-03T18:15:05+00:00"
    assert d["last_outgoing"] is None
    assert d["first_receive_approximate"] is False
    assert d["total_received"] == Decimal("1.5")


def test_earliest_timestamp_defaults_exact() -> None:
    assert EarliestTimestamp(timestamp=1, source="blockchair").approximate is False
