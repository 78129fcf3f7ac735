"""
Esplora clients — Blockstream.info and Mempool.space.

Both services run the Esplora REST API, so one implementation serves both;
Mempool.space additionally publishes a price ticker.

Endpoints used:
- GET /address/{addr}                   → chain_stats (summary)
- GET /address/{addr}/txs               → newest page (mempool txs + 25 confirmed)
- GET /address/{addr}/txs/chain/{txid}  → 25 confirmed txs older than txid
- GET /v1/prices                        → {"USD": ...} (mempool.space only)

Design decisions:
- Only chain_stats are used for the summary; unconfirmed mempool totals
  are not part of a wallet's settled history.
- Page fullness counts confirmed records only, since the first page may
  carry extra mempool transactions above the 25 confirmed ones.
- No API key required. Rate limits: ~10 req/sec unauthenticated.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from hodlcheck.exceptions import APIError, PageNotFoundError
from hodlcheck.models import (
    Address,
    TransactionPage,
    TraversalCursor,
    TxInput,
    TxOutput,
    TxRecord,
    WalletSummary,
)
from hodlcheck.providers.base import PAGES, PRICE, SUMMARY, BaseProvider

BLOCKSTREAM_BASE = "https://blockstream.info/api"
MEMPOOL_BASE = "https://mempool.space/api"

ESPLORA_PAGE_SIZE = 25


class EsploraProvider(BaseProvider):
    """Async client for an Esplora-compatible indexer."""

    base_url: str = ""
    page_size = ESPLORA_PAGE_SIZE
    capabilities = frozenset({SUMMARY, PAGES})

    async def fetch_summary(self, address: Address) -> WalletSummary:
        data = await self._get_json(
            f"{self.base_url}/address/{address.value}",
            timeout=self._timeouts.summary,
        )
        try:
            stats = data["chain_stats"]
            return WalletSummary(
                funded_sats=int(stats["funded_txo_sum"]),
                spent_sats=int(stats["spent_txo_sum"]),
                tx_count=int(stats["tx_count"]),
                source=self.name,
            )
        except (KeyError, ValueError, TypeError) as e:
            raise APIError(f"{self.name}: malformed address stats: {e}", provider=self.name) from e

    async def fetch_first_page(self, address: Address) -> TransactionPage:
        data = await self._get_json(
            f"{self.base_url}/address/{address.value}/txs",
            timeout=self._timeouts.first_page,
        )
        return self._parse_page(address, data)

    async def fetch_next_page(self, address: Address, cursor: TraversalCursor) -> TransactionPage:
        cursor.check_provider(self.name)
        data = await self._get_json(
            f"{self.base_url}/address/{address.value}/txs/chain/{cursor.before_txid}",
            timeout=self._timeouts.next_page,
            not_found=PageNotFoundError,
        )
        return self._parse_page(address, data)

    # ──────────────────────────────────────────────────────────────
    # Private helpers
    # ──────────────────────────────────────────────────────────────

    def _parse_page(self, address: Address, data: Any) -> TransactionPage:
        if not isinstance(data, list):
            raise APIError(f"{self.name}: expected a list of transactions", provider=self.name)
        try:
            records = tuple(self._parse_tx(raw) for raw in data)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise APIError(f"{self.name}: malformed transaction: {e}", provider=self.name) from e
        return TransactionPage(address=address.value, records=records, provider=self.name)

    @staticmethod
    def _parse_tx(raw: dict[str, Any]) -> TxRecord:
        """Parse an Esplora transaction. Unconfirmed txns have no block_time."""
        status = raw.get("status") or {}
        block_time = status.get("block_time") if status.get("confirmed", True) else None

        inputs = []
        for vin in raw.get("vin", []):
            prevout = vin.get("prevout") or {}
            inputs.append(
                TxInput(
                    source_address=prevout.get("scriptpubkey_address"),
                    value_sats=int(prevout.get("value", 0)),
                )
            )

        outputs = tuple(
            TxOutput(address=v.get("scriptpubkey_address"), value_sats=int(v.get("value", 0)))
            for v in raw.get("vout", [])
        )

        return TxRecord(
            txid=raw["txid"],
            timestamp=int(block_time) if block_time is not None else None,
            inputs=tuple(inputs),
            outputs=outputs,
        )


class BlockstreamProvider(EsploraProvider):
    """Blockstream.info Esplora instance."""

    name = "blockstream"
    base_url = BLOCKSTREAM_BASE


class MempoolProvider(EsploraProvider):
    """Mempool.space Esplora instance, with price ticker."""

    name = "mempool"
    base_url = MEMPOOL_BASE
    capabilities = frozenset({SUMMARY, PAGES, PRICE})

    async def fetch_price(self) -> Decimal:
        data = await self._get_json(f"{self.base_url}/v1/prices", timeout=self._timeouts.price)
        try:
            price = Decimal(str(data["USD"]))
        except (KeyError, TypeError, ArithmeticError) as e:
            raise APIError(f"{self.name}: malformed price response", provider=self.name) from e
        if not price.is_finite() or price <= 0:
            raise APIError(f"{self.name}: unusable price {price}", provider=self.name)
        return price
