"""Tests for hodlcheck/cli.py — Click CLI entry point."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner
from conftest import GENESIS_ADDR, SEGWIT_ADDR

from hodlcheck.cli import cli
from hodlcheck.exceptions import HistoryUnresolvedError, NoTransactionsError
from hodlcheck.models import LookupResult


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def sample_result(**overrides) -> LookupResult:
    fields = dict(
        address=SEGWIT_ADDR,
        first_receive=1_700_000_000,
        last_activity=1_700_000_000,
        total_received=Decimal("1.5"),
        total_sent=Decimal("0"),
        current_balance=Decimal("1.5"),
        tx_count=3,
        ever_sold=False,
        btc_price=Decimal("97000"),
        hold_days=778,
        sources={"summary": "blockstream", "first_receive": "blockchair", "price": "mempool"},
    )
    fields.update(overrides)
    return LookupResult(**fields)


# ── version ───────────────────────────────────────────────────────────────────


def test_cli_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


# ── lookup ────────────────────────────────────────────────────────────────────


def test_lookup_json(runner: CliRunner) -> None:
    with patch("hodlcheck.cli.lookup_wallet", new=AsyncMock(return_value=sample_result())) as mock:
        result = runner.invoke(cli, ["lookup", SEGWIT_ADDR])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["address"] == SEGWIT_ADDR
    assert data["hold_days"] == 778
    assert data["total_received"] == 1.5
    assert data["first_receive"] == "2023-11-14T22:13:20+00:00"
    assert data["last_outgoing"] is None
    assert mock.await_args.args[0] == SEGWIT_ADDR


def test_lookup_table(runner: CliRunner) -> None:
    with patch("hodlcheck.cli.lookup_wallet", new=AsyncMock(return_value=sample_result())):
        result = runner.invoke(cli, ["--format", "table", "lookup", SEGWIT_ADDR])

    assert result.exit_code == 0, result.output
    assert "Hold days" in result.output
    assert "778" in result.output
    assert "never" in result.output


def test_lookup_page_budget_option(runner: CliRunner) -> None:
    mock = AsyncMock(return_value=sample_result())
    with patch("hodlcheck.cli.lookup_wallet", new=mock):
        result = runner.invoke(cli, ["lookup", SEGWIT_ADDR, "--page-budget", "2"])
    assert result.exit_code == 0, result.output
    assert mock.await_args.kwargs["config"].traversal.page_budget == 2


def test_lookup_page_budget_out_of_range(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["lookup", SEGWIT_ADDR, "--page-budget", "500"])
    assert result.exit_code == 2


def test_lookup_invalid_address(runner: CliRunner) -> None:
    """Malformed addresses fail locally with the data-error exit code."""
    result = runner.invoke(cli, ["lookup", "not-an-address"])
    assert result.exit_code == 4
    assert "invalid_address" in result.output


def test_lookup_not_found(runner: CliRunner) -> None:
    err = NoTransactionsError("Address has no transactions")
    with patch("hodlcheck.cli.lookup_wallet", new=AsyncMock(side_effect=err)):
        result = runner.invoke(cli, ["lookup", GENESIS_ADDR])
    assert result.exit_code == 4
    assert "not_found" in result.output


def test_lookup_history_unresolved(runner: CliRunner) -> None:
    err = HistoryUnresolvedError("Could not determine when this address first received BTC. Try again.")
    with patch("hodlcheck.cli.lookup_wallet", new=AsyncMock(side_effect=err)):
        result = runner.invoke(cli, ["lookup", SEGWIT_ADDR])
    assert result.exit_code == 3
    assert "history_unresolved" in result.output


# ── validate ──────────────────────────────────────────────────────────────────


def test_validate_ok(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["validate", SEGWIT_ADDR.upper()])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data == {"valid": True, "address": SEGWIT_ADDR, "kind": "segwit"}


def test_validate_bad(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["validate", "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"])
    assert result.exit_code == 4


# ── providers ─────────────────────────────────────────────────────────────────


def test_providers_json(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["providers"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    names = [p["name"] for p in data["providers"]]
    assert names == ["blockstream", "mempool", "blockchair", "blockchain_info"]
    mempool = data["providers"][1]
    assert mempool["capabilities"] == ["summary", "pages", "price"]
    assert data["order"]["first_seen"] == ["blockchair", "blockchain_info"]


def test_providers_table(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["providers", "--format", "table"])
    assert result.exit_code == 0
    assert "blockchair" in result.output


# ── config commands ───────────────────────────────────────────────────────────


def test_config_init(runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    result = runner.invoke(cli, ["--config", str(config_path), "config", "init"])
    assert result.exit_code == 0
    assert json.loads(result.output)["status"] == "initialized"
    assert config_path.exists()


def test_config_init_existing_without_force(runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("[traversal]\npage_budget = 3\n")
    result = runner.invoke(cli, ["--config", str(config_path), "config", "init"])
    assert json.loads(result.output)["status"] == "already_exists"


def test_config_init_force_backs_up(runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("[traversal]\npage_budget = 3\n")
    result = runner.invoke(cli, ["--config", str(config_path), "config", "init", "--force"])
    data = json.loads(result.output)
    assert data["status"] == "reinitialized"
    assert Path(data["backup"]).read_text() == "[traversal]\npage_budget = 3\n"


def test_config_set_and_show(runner: CliRunner, tmp_path: Path) -> None:
    config_path = str(tmp_path / "config.toml")
    result = runner.invoke(cli, ["--config", config_path, "config", "set", "traversal.page_budget", "4"])
    assert result.exit_code == 0
    assert json.loads(result.output) == {"status": "updated", "key": "traversal.page_budget", "value": 4}

    result = runner.invoke(cli, ["--config", config_path, "config", "set", "providers.price", "mempool"])
    assert result.exit_code == 0

    result = runner.invoke(cli, ["--config", config_path, "config", "show"])
    data = json.loads(result.output)
    assert data["traversal"]["page_budget"] == 4
    assert data["providers"]["price"] == ["mempool"]


def test_config_set_unknown_key(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(
        cli, ["--config", str(tmp_path / "c.toml"), "config", "set", "api.etherscan_key", "x"]
    )
    assert result.exit_code == 5


def test_config_set_invalid_value(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(
        cli, ["--config", str(tmp_path / "c.toml"), "config", "set", "output.default_format", "csv"]
    )
    assert result.exit_code == 5


def test_broken_config_falls_back_to_defaults(runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("not [valid")
    result = runner.invoke(cli, ["--config", str(config_path), "validate", SEGWIT_ADDR])
    assert result.exit_code == 0
