"""
Reconciler — merges whatever was gathered into one LookupResult.

Mandatory: the earliest (first-receive) timestamp. Without it hold time
cannot be computed, so its absence is a hard HistoryUnresolvedError.

Optional, with fallbacks:
- last_activity  → first_receive
- btc_price      → price floor constant
- last_outgoing  → omitted (and always omitted when nothing was ever sent)
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from hodlcheck.config import DEFAULT_PRICE_FLOOR_USD
from hodlcheck.exceptions import HistoryUnresolvedError
from hodlcheck.models import Address, EarliestTimestamp, LookupResult, WalletSummary

SECONDS_PER_DAY = 86_400


def hold_days(first_receive: int, now: datetime) -> int:
    """Whole days elapsed since first_receive, floored, never negative."""
    elapsed = int(now.timestamp()) - first_receive
    return max(elapsed // SECONDS_PER_DAY, 0)


def reconcile(
    address: Address,
    summary: WalletSummary,
    earliest: EarliestTimestamp | None,
    last_activity: int | None = None,
    last_outgoing: int | None = None,
    price: Decimal | None = None,
    now: datetime | None = None,
    price_floor: Decimal | float = DEFAULT_PRICE_FLOOR_USD,
    sources: dict[str, str] | None = None,
) -> LookupResult:
    """
    Build the final LookupResult.

    Raises:
        HistoryUnresolvedError: earliest timestamp could not be resolved.
    """
    if earliest is None:
        raise HistoryUnresolvedError(
            "Could not determine when this address first received BTC. Try again.",
            details={"address": address.value},
        )

    now = now or datetime.now(tz=timezone.utc)
    first_receive = earliest.timestamp
    ever_sold = summary.ever_sent

    all_sources = dict(sources or {})
    all_sources["first_receive"] = earliest.source
    if price is None:
        all_sources["price"] = "floor"

    return LookupResult(
        address=address.value,
        first_receive=first_receive,
        last_activity=last_activity if last_activity is not None else first_receive,
        last_outgoing=last_outgoing if ever_sold else None,
        total_received=summary.total_received,
        total_sent=summary.total_sent,
        current_balance=summary.current_balance,
        tx_count=summary.tx_count,
        ever_sold=ever_sold,
        btc_price=price if price is not None else Decimal(str(price_floor)),
        hold_days=hold_days(first_receive, now),
        first_receive_approximate=earliest.approximate,
        sources=all_sources,
    )
