"""
Blockchain.info client — rawaddr + ticker.

- GET /rawaddr/{addr}?limit=0                  → n_tx, total_received, total_sent
- GET /rawaddr/{addr}?limit=1&offset=n_tx-1    → the single oldest transaction
- GET /ticker                                  → {"USD": {"last": ...}, ...}

rawaddr lists newest first, so the oldest transaction sits at offset
n_tx - 1. That lookup needs the transaction count up front; without the
summary's tx_count hint the capability is reported unsupported rather
than spending a second request.

Rate limit: ~1 req/sec unauthenticated.
"""

from __future__ import annotations

from decimal import Decimal

from hodlcheck.exceptions import APIError, UnsupportedError
from hodlcheck.models import Address, WalletSummary
from hodlcheck.providers.base import FIRST_SEEN, PRICE, SUMMARY, BaseProvider

BLOCKCHAIN_BASE = "https://blockchain.info"


class BlockchainInfoProvider(BaseProvider):
    """Async Blockchain.info client."""

    name = "blockchain_info"
    capabilities = frozenset({SUMMARY, FIRST_SEEN, PRICE})

    async def fetch_summary(self, address: Address) -> WalletSummary:
        data = await self._get_json(
            f"{BLOCKCHAIN_BASE}/rawaddr/{address.value}",
            timeout=self._timeouts.summary,
            params={"limit": 0},
        )
        try:
            return WalletSummary(
                funded_sats=int(data["total_received"]),
                spent_sats=int(data["total_sent"]),
                tx_count=int(data["n_tx"]),
                source=self.name,
            )
        except (KeyError, ValueError, TypeError) as e:
            raise APIError(f"{self.name}: malformed rawaddr: {e}", provider=self.name) from e

    async def fetch_first_seen(self, address: Address, tx_count: int | None = None) -> int:
        if not tx_count:
            raise UnsupportedError(
                f"{self.name}: first-seen lookup needs the transaction count",
                provider=self.name,
            )
        data = await self._get_json(
            f"{BLOCKCHAIN_BASE}/rawaddr/{address.value}",
            timeout=self._timeouts.first_seen,
            params={"limit": 1, "offset": max(0, tx_count - 1)},
        )
        try:
            txs = data.get("txs") or []
            if not txs:
                raise APIError(f"{self.name}: no transaction at offset", provider=self.name)
            return int(txs[0]["time"])
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise APIError(f"{self.name}: malformed rawaddr: {e}", provider=self.name) from e

    async def fetch_price(self) -> Decimal:
        data = await self._get_json(f"{BLOCKCHAIN_BASE}/ticker", timeout=self._timeouts.price)
        try:
            price = Decimal(str(data["USD"]["last"]))
        except (KeyError, TypeError, ArithmeticError) as e:
            raise APIError(f"{self.name}: malformed ticker", provider=self.name) from e
        if not price.is_finite() or price <= 0:
            raise APIError(f"{self.name}: unusable price {price}", provider=self.name)
        return price
