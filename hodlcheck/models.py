"""
Shared data models for hodlcheck.

These dataclasses are the canonical data shapes used across all modules:
providers produce them, the walker and scanner consume them, the reconciler
turns them into a LookupResult, output renders it.

All models are frozen. Amounts travel as integer satoshis and are converted
to BTC with exact Decimal arithmetic only at the edges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

SATOSHIS_PER_BTC = Decimal(100_000_000)

ADDRESS_KIND_LEGACY = "legacy"
ADDRESS_KIND_SEGWIT = "segwit"


def sats_to_btc(sats: int) -> Decimal:
    """Convert satoshis to BTC without any float rounding."""
    return Decimal(sats) / SATOSHIS_PER_BTC


def ts_to_iso(ts: int) -> str:
    """Unix seconds → ISO8601 UTC string."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


@dataclass(frozen=True)
class Address:
    """A Bitcoin address that passed local format validation."""

    value: str
    kind: str       # "legacy" | "segwit"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class WalletSummary:
    """Funded/spent totals and transaction count as reported by one provider."""

    funded_sats: int
    spent_sats: int
    tx_count: int
    source: str = ""

    def __post_init__(self) -> None:
        if self.tx_count < 0:
            raise ValueError(f"tx_count must be non-negative, got {self.tx_count}")
        if self.funded_sats < 0 or self.spent_sats < 0:
            raise ValueError("funded/spent totals must be non-negative")

    @property
    def total_received(self) -> Decimal:
        return sats_to_btc(self.funded_sats)

    @property
    def total_sent(self) -> Decimal:
        return sats_to_btc(self.spent_sats)

    @property
    def current_balance(self) -> Decimal:
        return sats_to_btc(self.funded_sats - self.spent_sats)

    @property
    def ever_sent(self) -> bool:
        return self.spent_sats > 0


@dataclass(frozen=True)
class TxInput:
    """One spent output referenced by a transaction input."""

    source_address: str | None      # None for coinbase / unresolved prevouts
    value_sats: int = 0


@dataclass(frozen=True)
class TxOutput:
    """One output created by a transaction."""

    address: str | None             # None for OP_RETURN / non-standard scripts
    value_sats: int = 0


@dataclass(frozen=True)
class TxRecord:
    """A single transaction touching the queried address."""

    txid: str
    timestamp: int | None           # block time; None while unconfirmed
    inputs: tuple[TxInput, ...] = ()
    outputs: tuple[TxOutput, ...] = ()

    @property
    def confirmed(self) -> bool:
        return self.timestamp is not None

    def spends_from(self, address: str) -> bool:
        """True if any input's resolved source address is `address`."""
        return any(i.source_address == address for i in self.inputs)


@dataclass(frozen=True)
class TransactionPage:
    """One newest-first page of transactions for one address from one provider."""

    address: str
    records: tuple[TxRecord, ...]
    provider: str

    def __len__(self) -> int:
        return len(self.records)

    def confirmed_count(self) -> int:
        return sum(1 for r in self.records if r.confirmed)

    def is_full(self, page_size: int) -> bool:
        """
        Whether an older page may exist.

        Only confirmed records count: Esplora-style first pages prepend
        mempool transactions on top of a full page of chain history.
        """
        return self.confirmed_count() >= page_size

    def last_txid(self) -> str | None:
        return self.records[-1].txid if self.records else None

    def oldest_timestamp(self) -> int | None:
        """Block time of the last confirmed record (the oldest on the page)."""
        for record in reversed(self.records):
            if record.timestamp is not None:
                return record.timestamp
        return None

    def newest_timestamp(self) -> int | None:
        """Block time of the first confirmed record (the newest on the page)."""
        for record in self.records:
            if record.timestamp is not None:
                return record.timestamp
        return None


@dataclass(frozen=True)
class TraversalCursor:
    """
    Position in a provider's paginated history.

    A cursor names the oldest transaction seen so far; the next fetch asks
    for transactions older than it. Cursors are provider-specific and are
    never handed to a different provider.
    """

    provider: str
    address: str
    before_txid: str
    pages_walked: int = 0

    @classmethod
    def after(cls, page: TransactionPage, page_size: int, pages_walked: int = 0) -> TraversalCursor | None:
        """Cursor for the page older than `page`, or None at end of history."""
        last_txid = page.last_txid()
        if last_txid is None or not page.is_full(page_size):
            return None
        return cls(
            provider=page.provider,
            address=page.address,
            before_txid=last_txid,
            pages_walked=pages_walked,
        )

    def advance(self, page: TransactionPage, page_size: int) -> TraversalCursor | None:
        """Consume this cursor with the page it produced; return the next one."""
        self.check_provider(page.provider)
        return TraversalCursor.after(page, page_size, pages_walked=self.pages_walked + 1)

    def check_provider(self, provider: str) -> None:
        if provider != self.provider:
            raise ValueError(
                f"Cursor from {self.provider!r} cannot be used with {provider!r}"
            )


@dataclass(frozen=True)
class EarliestTimestamp:
    """Resolved first-receive time and how it was obtained."""

    timestamp: int
    source: str                 # provider name, "known" or "<provider>:walk"
    approximate: bool = False   # True when pagination stopped before history start


@dataclass(frozen=True)
class LookupResult:
    """
    Reconciled answer for one address.

    Created once per lookup by the reconciler; never mutated; not persisted.
    """

    address: str
    first_receive: int                  # Unix seconds (UTC)
    last_activity: int                  # Unix seconds; defaults to first_receive
    total_received: Decimal             # BTC
    total_sent: Decimal                 # BTC
    current_balance: Decimal            # BTC
    tx_count: int
    ever_sold: bool
    btc_price: Decimal                  # USD; floor constant if no ticker answered
    hold_days: int
    last_outgoing: int | None = None    # only when ever_sold
    first_receive_approximate: bool = False
    sources: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Serialize for JSON output."""
        return {
            "address": self.address,
            "first_receive": ts_to_iso(self.first_receive),
            "first_receive_approximate": self.first_receive_approximate,
            "last_activity": ts_to_iso(self.last_activity),
            "last_outgoing": (
                ts_to_iso(self.last_outgoing) if self.last_outgoing is not None else None
            ),
            "total_received": self.total_received,
            "total_sent": self.total_sent,
            "current_balance": self.current_balance,
            "tx_count": self.tx_count,
            "hold_days": self.hold_days,
            "ever_sold": self.ever_sold,
            "btc_price": self.btc_price,
            "sources": dict(self.sources),
        }
