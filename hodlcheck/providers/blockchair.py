"""
Blockchair client — address dashboard.

One call to /dashboards/address/{addr}?limit=0 returns balance totals and
the address's first-seen-receiving time, so the earliest transaction is
known without walking any pages. No pagination support is used.

Rate limits: ~30 req/min unauthenticated; HTTP 402/430 when exceeded.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from hodlcheck.exceptions import APIError, UnsupportedError
from hodlcheck.models import Address, WalletSummary
from hodlcheck.providers.base import FIRST_SEEN, SUMMARY, BaseProvider

BLOCKCHAIR_BASE = "https://api.blockchair.com/bitcoin"


class BlockchairProvider(BaseProvider):
    """Async Blockchair dashboard client."""

    name = "blockchair"
    capabilities = frozenset({SUMMARY, FIRST_SEEN})

    async def fetch_summary(self, address: Address) -> WalletSummary:
        info = await self._dashboard(address, timeout=self._timeouts.summary)
        try:
            return WalletSummary(
                funded_sats=int(info["received"]),
                spent_sats=int(info["spent"]),
                tx_count=int(info["transaction_count"]),
                source=self.name,
            )
        except (KeyError, ValueError, TypeError) as e:
            raise APIError(f"{self.name}: malformed address info: {e}", provider=self.name) from e

    async def fetch_first_seen(self, address: Address, tx_count: int | None = None) -> int:
        info = await self._dashboard(address, timeout=self._timeouts.first_seen)
        first_seen = info.get("first_seen_receiving")
        if not first_seen:
            raise UnsupportedError(
                f"{self.name}: no first_seen_receiving for {address.value}",
                provider=self.name,
            )
        return parse_blockchair_time(first_seen)

    async def _dashboard(self, address: Address, timeout: float) -> dict[str, Any]:
        data = await self._get_json(
            f"{BLOCKCHAIR_BASE}/dashboards/address/{address.value}",
            timeout=timeout,
            params={"limit": 0},
        )
        try:
            entry = data["data"][address.value]
            info = entry["address"]
        except (KeyError, TypeError) as e:
            raise APIError(f"{self.name}: address missing from response", provider=self.name) from e
        if not isinstance(info, dict):
            raise APIError(f"{self.name}: malformed address info", provider=self.name)
        return info


def parse_blockchair_time(value: str) -> int:
    """Blockchair reports 'YYYY-MM-DD HH:MM:SS' in UTC; return Unix seconds."""
    try:
        dt = datetime.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise APIError(f"blockchair: unparseable timestamp {value!r}", provider="blockchair") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())
