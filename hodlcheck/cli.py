"""Click CLI entry point for hodlcheck.

All commands are thin orchestration wrappers — business logic lives in
config, validator, providers, orchestrator, walker, scanner, reconciler
and engine modules.

Exit codes:
  0 — success
  1 — internal error
  3 — upstream unavailable / timed out / history unresolved
  4 — data error (invalid address, address has no transactions)
  5 — config error
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import sys
from pathlib import Path
from typing import Any

import click

from hodlcheck import __version__
from hodlcheck.config import (
    HodlcheckConfig,
    config_to_dict,
    get_default_config_path,
    load_config,
    save_config,
    validate_config,
)
from hodlcheck.engine import lookup_wallet
from hodlcheck.exceptions import ConfigInvalidError, HodlcheckError
from hodlcheck.output import format_output
from hodlcheck.providers import CAPABILITIES, SUPPORTED_PROVIDERS, get_provider
from hodlcheck.validator import validate_address

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


# ── Error handler ─────────────────────────────────────────────────────────────


def _output_error(err: HodlcheckError | Exception) -> None:
    """Write error JSON to stderr."""
    if isinstance(err, HodlcheckError):
        payload = err.to_dict()
        exit_code = err.exit_code
    else:
        payload = {"error": "unknown_error", "status": "internal", "message": str(err), "details": {}}
        exit_code = 1
    sys.stderr.write(json.dumps(payload) + "\n")
    sys.stderr.flush()
    sys.exit(exit_code)


def _configure_logging(level: str) -> None:
    """Route log records to stderr so stdout stays machine-readable."""
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


# ── Root group ────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    envvar="HODLCHECK_CONFIG",
    default=None,
    help="Config file path (default: ~/.hodlcheck/config.toml)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "table"]),
    default=None,
    help="Output format (overrides config default)",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging to stderr")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str | None,
    output_format: str | None,
    verbose: bool,
) -> None:
    """hodlcheck — how long has a Bitcoin wallet held without selling?"""
    ctx.ensure_object(dict)
    config_error: HodlcheckError | None = None
    try:
        config = load_config(config_path)
    except HodlcheckError as e:
        # On config errors, use defaults (so config init still works)
        config = HodlcheckConfig()
        config_error = e

    _configure_logging("DEBUG" if verbose else config.logging.level)
    if config_error is not None:
        logger.warning("Ignoring config: %s", config_error.message)

    ctx.obj["config"] = config
    ctx.obj["format"] = output_format or config.output.default_format
    ctx.obj["config_path"] = config_path


# ── Lookup ────────────────────────────────────────────────────────────────────


@cli.command("lookup")
@click.argument("address")
@click.option("--format", "fmt", type=click.Choice(["json", "table"]), default=None)
@click.option(
    "--page-budget",
    type=click.IntRange(0, 100),
    default=None,
    help="Max older pages to walk when no direct first-seen lookup answers",
)
@click.pass_context
def lookup_command(
    ctx: click.Context,
    address: str,
    fmt: str | None,
    page_budget: int | None,
) -> None:
    """Resolve hold time and history summary for a Bitcoin ADDRESS."""
    config: HodlcheckConfig = ctx.obj["config"]
    fmt = fmt or ctx.obj.get("format", "json")
    if page_budget is not None:
        config.traversal.page_budget = page_budget

    try:
        result = asyncio.run(lookup_wallet(address, config=config))
    except HodlcheckError as e:
        _output_error(e)
        return

    click.echo(format_output(result.to_dict(), fmt, color=config.output.color))


@cli.command("validate")
@click.argument("address")
def validate_command(address: str) -> None:
    """Check ADDRESS format locally (no network)."""
    try:
        parsed = validate_address(address)
    except HodlcheckError as e:
        _output_error(e)
        return
    click.echo(json.dumps({"valid": True, "address": parsed.value, "kind": parsed.kind}))


@cli.command("providers")
@click.option("--format", "fmt", type=click.Choice(["json", "table"]), default=None)
@click.pass_context
def providers_command(ctx: click.Context, fmt: str | None) -> None:
    """List indexing providers, their capabilities and fallback order."""
    config: HodlcheckConfig = ctx.obj["config"]
    fmt = fmt or ctx.obj.get("format", "json")

    async def _run() -> list[dict[str, Any]]:
        rows = []
        for name in SUPPORTED_PROVIDERS:
            provider = get_provider(name)
            rows.append(
                {
                    "name": provider.name,
                    "capabilities": [c for c in CAPABILITIES if provider.supports(c)],
                }
            )
            await provider.close()
        return rows

    result = {
        "providers": asyncio.run(_run()),
        "order": {cap: list(getattr(config.providers, cap)) for cap in CAPABILITIES},
    }
    click.echo(format_output(result, fmt, color=config.output.color))


# ── Config commands ───────────────────────────────────────────────────────────


@cli.group("config")
def config_group() -> None:
    """Manage hodlcheck configuration."""


@config_group.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing config")
@click.pass_context
def config_init(ctx: click.Context, force: bool) -> None:
    """Initialize default config at ~/.hodlcheck/config.toml."""
    provided = ctx.obj.get("config_path")
    config_path = Path(provided) if provided else get_default_config_path()

    if config_path.exists() and not force:
        click.echo(
            json.dumps(
                {
                    "status": "already_exists",
                    "config_path": str(config_path),
                    "hint": "Use --force to reinitialize",
                }
            )
        )
        return

    status = "initialized"
    backup = None

    if config_path.exists() and force:
        backup = str(config_path) + ".bak"
        shutil.copy2(config_path, backup)
        status = "reinitialized"

    save_config(HodlcheckConfig(), str(config_path))

    result: dict[str, Any] = {
        "status": status,
        "config_path": str(config_path),
    }
    if backup:
        result["backup"] = backup
    click.echo(json.dumps(result))


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a config value by dotted key path (e.g. traversal.page_budget)."""
    config_path = ctx.obj.get("config_path")
    config: HodlcheckConfig = ctx.obj["config"]

    try:
        typed_value = _set_config_value(config, key, value)
        validate_config(config)
    except HodlcheckError as e:
        _output_error(e)
        return

    save_config(config, config_path)
    click.echo(json.dumps({"status": "updated", "key": key, "value": typed_value}))


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    config: HodlcheckConfig = ctx.obj["config"]
    provided = ctx.obj.get("config_path")

    result = {
        "config_path": str(Path(provided) if provided else get_default_config_path()),
        **config_to_dict(config),
    }
    click.echo(format_output(result, "json"))


# ── Helpers ───────────────────────────────────────────────────────────────────


def _set_config_value(config: HodlcheckConfig, key: str, value: str) -> Any:
    """Type-coerce `value` to the current type at `key` and assign it."""
    parts = key.split(".", 1)
    if len(parts) != 2:
        raise ConfigInvalidError(f"Key must be in form section.key, got: {key!r}")

    section_name, field_name = parts
    section = getattr(config, section_name, None)
    if section is None or not hasattr(section, field_name):
        raise ConfigInvalidError(f"Unknown config key: {key!r}")

    current = getattr(section, field_name)
    try:
        if isinstance(current, bool):
            typed_value: Any = value.lower() in ("1", "true", "yes")
        elif isinstance(current, int):
            typed_value = int(value)
        elif isinstance(current, float):
            typed_value = float(value)
        elif isinstance(current, list):
            typed_value = [item.strip() for item in value.split(",") if item.strip()]
        else:
            typed_value = value
    except (ValueError, TypeError) as e:
        raise ConfigInvalidError(f"Invalid value for {key}: {e}") from e

    setattr(section, field_name, typed_value)
    return typed_value


if __name__ == "__main__":
    cli()
