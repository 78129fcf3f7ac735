"""
History walker — earliest transaction by pagination.

Used when no provider answers a direct first-seen lookup. Walks a single
provider's newest-first pages backwards, one TraversalCursor at a time,
until either:

- a page comes back short of a full page (natural end of history; its last
  confirmed record is the true earliest), or
- the page budget is spent (the oldest timestamp seen so far is returned
  as a lower-bound estimate, flagged approximate).

Pages depend on the previous page's cursor, so a walk is strictly
sequential. The budget bounds load on the upstream service, not local work.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from hodlcheck.exceptions import ProviderError
from hodlcheck.models import Address, EarliestTimestamp, TransactionPage, TraversalCursor
from hodlcheck.providers.base import LedgerProvider

logger = logging.getLogger(__name__)

DEFAULT_PAGE_BUDGET = 10
KNOWN_SOURCE = "known"

# Addresses whose first receive predates what any indexer's pagination reaches.
# address → Unix seconds
KNOWN_FIRST_RECEIVE: dict[str, int] = {
    "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa": 1231006505,  # genesis coinbase, 2009-01-03
}


def known_first_receive(
    address: Address | str,
    overrides: Mapping[str, int] | None = None,
) -> int | None:
    """Hardcoded first-receive time for `address`, if it has one."""
    table = KNOWN_FIRST_RECEIVE if overrides is None else overrides
    value = address.value if isinstance(address, Address) else address
    return table.get(value)


@dataclass(frozen=True)
class WalkResult:
    """Outcome of one history walk."""

    timestamp: int | None
    complete: bool          # False when the budget or a page failure cut the walk short
    pages_fetched: int      # network fetches made by this walk
    provider: str

    def to_earliest(self) -> EarliestTimestamp | None:
        if self.timestamp is None:
            return None
        source = self.provider if self.provider == KNOWN_SOURCE else f"{self.provider}:walk"
        return EarliestTimestamp(
            timestamp=self.timestamp,
            source=source,
            approximate=not self.complete,
        )


class HistoryWalker:
    """
    Finds the earliest transaction of an address by walking pages.

    Args:
        page_budget: Maximum next-page fetches after the first page.
        overrides: address → known first-receive time, checked before any
                   network call. Defaults to KNOWN_FIRST_RECEIVE.
    """

    def __init__(
        self,
        page_budget: int = DEFAULT_PAGE_BUDGET,
        overrides: Mapping[str, int] | None = None,
    ) -> None:
        if page_budget < 0:
            raise ValueError(f"page_budget must be non-negative, got {page_budget}")
        self.page_budget = page_budget
        self._overrides = KNOWN_FIRST_RECEIVE if overrides is None else overrides

    async def walk(
        self,
        provider: LedgerProvider,
        address: Address,
        first_page: TransactionPage | None = None,
    ) -> WalkResult:
        """
        Walk `provider`'s history for `address`.

        If `first_page` is given it must come from `provider` (cursors are
        not portable) and is not re-fetched.

        Raises:
            ProviderError: only if the first page itself cannot be fetched.
                Later page failures end the walk with an approximate result.
        """
        known = known_first_receive(address, self._overrides)
        if known is not None:
            logger.debug("%s: using known first receive %d", address.value, known)
            return WalkResult(timestamp=known, complete=True, pages_fetched=0, provider=KNOWN_SOURCE)

        pages_fetched = 0
        if first_page is None:
            first_page = await provider.fetch_first_page(address)
            pages_fetched += 1
        elif first_page.provider != provider.name:
            raise ValueError(
                f"First page from {first_page.provider!r} cannot seed a walk on {provider.name!r}"
            )

        oldest = first_page.oldest_timestamp()
        cursor = TraversalCursor.after(first_page, provider.page_size)

        while cursor is not None:
            if cursor.pages_walked >= self.page_budget:
                logger.info(
                    "%s: page budget (%d) exhausted on %s; earliest is a lower bound",
                    address.value,
                    self.page_budget,
                    provider.name,
                )
                return WalkResult(oldest, complete=False, pages_fetched=pages_fetched, provider=provider.name)

            try:
                page = await provider.fetch_next_page(address, cursor)
            except ProviderError as e:
                logger.warning(
                    "%s: walk on %s stopped after %d page(s): %s",
                    address.value,
                    provider.name,
                    pages_fetched,
                    e.message,
                )
                return WalkResult(oldest, complete=False, pages_fetched=pages_fetched, provider=provider.name)

            pages_fetched += 1
            page_oldest = page.oldest_timestamp()
            if page_oldest is not None:
                oldest = page_oldest
            cursor = cursor.advance(page, provider.page_size)

        return WalkResult(oldest, complete=True, pages_fetched=pages_fetched, provider=provider.name)
