"""Output format routing for hodlcheck.

Converts result dicts to the requested format: json or table.

Design rules:
- JSON: 2-space indent, deterministic key order, utf-8
- Table: Rich-formatted, green=never sold, red=sold

All functions return strings. The caller writes to stdout.
"""

from __future__ import annotations

import io
import json
from decimal import Decimal
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

VALID_FORMATS = {"json", "table"}


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal values."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


def format_output(data: Any, fmt: str, color: bool = True) -> str:
    """
    Format data for stdout output.

    Args:
        data: Result dict, list, or any JSON-serialisable value.
        fmt: "json" | "table"
        color: Emit ANSI styles in table output.

    Raises:
        ValueError: If fmt is not a recognised format.
    """
    fmt = fmt.lower()
    if fmt not in VALID_FORMATS:
        raise ValueError(f"Unknown format {fmt!r}. Valid: {sorted(VALID_FORMATS)}")

    if fmt == "table":
        return format_table(data, color=color)
    return format_json(data)


# ── JSON ─────────────────────────────────────────────────────────────────────


def format_json(data: Any) -> str:
    """Pretty-print data as JSON (2-space indent)."""
    return json.dumps(data, indent=2, cls=DecimalEncoder, ensure_ascii=False)


# ── Table ────────────────────────────────────────────────────────────────────


def format_table(data: Any, color: bool = True) -> str:
    """
    Format as a Rich terminal table.

    Handles:
    - Lookup results (dict with 'hold_days')
    - Provider listings (dict with 'providers')
    - Generic dict fallback
    """
    buf = io.StringIO()
    console = Console(
        file=buf,
        highlight=False,
        markup=True,
        width=100,
        force_terminal=color,
        no_color=not color,
    )

    if isinstance(data, dict) and "hold_days" in data:
        _render_lookup_table(console, data)
    elif isinstance(data, dict) and "providers" in data:
        _render_providers_table(console, data)
    else:
        console.print_json(json.dumps(data, cls=DecimalEncoder))

    return buf.getvalue()


def _btc(value: Any) -> str:
    return f"{Decimal(str(value)):,.8f} BTC"


def _render_lookup_table(console: Console, data: dict[str, Any]) -> None:
    address = data.get("address", "")
    table = Table(title=f"HODL check — {address}", show_header=True, header_style="bold blue")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")

    first_receive = str(data.get("first_receive", ""))[:19]
    if data.get("first_receive_approximate"):
        first_receive = f"≤ {first_receive} (approx.)"

    ever_sold = bool(data.get("ever_sold"))
    sold_text = Text("yes", style="red") if ever_sold else Text("never", style="green")

    table.add_row("Hold days", Text(str(data.get("hold_days", 0)), style="bold"))
    table.add_row("First receive", first_receive)
    table.add_row("Last activity", str(data.get("last_activity", ""))[:19])
    table.add_row("Ever sold", sold_text)
    if ever_sold:
        table.add_row("Last outgoing", str(data.get("last_outgoing") or "unavailable")[:19])
    table.add_row("Total received", _btc(data.get("total_received", 0)))
    table.add_row("Total sent", _btc(data.get("total_sent", 0)))
    table.add_row("Balance", _btc(data.get("current_balance", 0)))
    table.add_row("Transactions", str(data.get("tx_count", 0)))

    price = Decimal(str(data.get("btc_price", 0)))
    balance = Decimal(str(data.get("current_balance", 0)))
    table.add_row("BTC price", f"${price:,.2f}")
    table.add_row("Balance value", f"${balance * price:,.2f}")

    console.print(table)
    sources = data.get("sources") or {}
    if sources:
        console.print(
            "Sources: " + ", ".join(f"{k}=[bold]{v}[/bold]" for k, v in sorted(sources.items()))
        )


def _render_providers_table(console: Console, data: dict[str, Any]) -> None:
    table = Table(title="Indexing providers", header_style="bold blue")
    table.add_column("Provider", style="cyan")
    table.add_column("Summary", justify="center")
    table.add_column("Pages", justify="center")
    table.add_column("First seen", justify="center")
    table.add_column("Price", justify="center")

    for p in data.get("providers", []):
        caps = set(p.get("capabilities", []))
        table.add_row(
            p.get("name", ""),
            *("✅" if cap in caps else "—" for cap in ("summary", "pages", "first_seen", "price")),
        )
    console.print(table)
