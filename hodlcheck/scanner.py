"""
Outgoing-transaction scanner.

Finds the newest confirmed transaction in which the queried address
appears among the inputs, i.e. the most recent time it spent funds.

Only run when the summary already shows total_sent > 0: the summary proves
*that* a spend happened, so the scan only looks for a recent date. It reads
the first page and at most one older page; anything deeper is reported as
unavailable instead of holding up the result.
"""

from __future__ import annotations

import logging

from hodlcheck.exceptions import ProviderError
from hodlcheck.models import Address, TransactionPage, TraversalCursor
from hodlcheck.providers.base import LedgerProvider

logger = logging.getLogger(__name__)

MAX_EXTRA_PAGES = 1


def find_spend(page: TransactionPage, address: str) -> int | None:
    """Block time of the newest confirmed record spending from `address`."""
    for record in page.records:
        if record.confirmed and record.spends_from(address):
            return record.timestamp
    return None


async def find_last_outgoing(
    provider: LedgerProvider,
    address: Address,
    first_page: TransactionPage,
) -> int | None:
    """
    Most recent outgoing-transaction time, or None if not found nearby.

    `first_page` must come from `provider`; the extra hop reuses its cursor.
    """
    found = find_spend(first_page, address.value)
    if found is not None:
        return found

    cursor = TraversalCursor.after(first_page, provider.page_size)
    hops = 0
    while cursor is not None and hops < MAX_EXTRA_PAGES:
        try:
            page = await provider.fetch_next_page(address, cursor)
        except ProviderError as e:
            logger.warning("%s: outgoing scan on %s stopped: %s", address.value, provider.name, e.message)
            return None
        hops += 1

        found = find_spend(page, address.value)
        if found is not None:
            return found
        cursor = cursor.advance(page, provider.page_size)

    logger.debug("%s: no outgoing transaction within %d page(s)", address.value, hops + 1)
    return None
