"""
Custom exception hierarchy for hodlcheck.

Each exception maps to a CLI exit code, a JSON error_code field and a
status category that a surrounding service layer can map onto HTTP.
cli.py catches all HodlcheckError subclasses and formats them as JSON output.

Exit code mapping:
  1 — HodlcheckError / InternalError (unexpected failure)
  2 — ProviderError (never surfaced by a lookup; swallowed by fallback)
  3 — UpstreamUnavailableError, LookupTimeoutError
  4 — InvalidAddressError, NoTransactionsError
  5 — ConfigError (missing/malformed config)

Status categories:
  invalid_format | not_found | upstream_unavailable | timeout | internal
"""


class HodlcheckError(Exception):
    """Base exception for all hodlcheck errors."""

    exit_code: int = 1
    error_code: str = "unknown_error"
    status: str = "internal"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "status": self.status,
            "message": self.message,
            "details": self.details,
        }


class InternalError(HodlcheckError):
    """Unexpected failure inside the lookup pipeline."""

    error_code = "internal_error"


# ── Client errors ─────────────────────────────────────────────────────────────


class DataError(HodlcheckError):
    """Data validation or not-found error."""

    exit_code = 4
    error_code = "data_error"
    status = "invalid_format"


class InvalidAddressError(DataError):
    """Address is empty, not a string, or matches no known address shape."""

    error_code = "invalid_address"


class NoTransactionsError(DataError):
    """Address is well-formed but has never appeared on chain."""

    error_code = "no_transactions"
    status = "not_found"


# ── Provider errors (swallowed by the orchestrator) ───────────────────────────


class ProviderError(HodlcheckError):
    """A single upstream provider failed a single capability."""

    exit_code = 2
    error_code = "provider_error"
    status = "upstream_unavailable"

    def __init__(self, message: str, provider: str = "", details: dict | None = None) -> None:
        details = dict(details or {})
        if provider:
            details.setdefault("provider", provider)
        super().__init__(message, details=details)
        self.provider = provider


class APIError(ProviderError):
    """Upstream API returned an error status or an unparseable body."""

    error_code = "api_error"


class UnsupportedError(ProviderError):
    """Provider does not offer this capability (or not for this address)."""

    error_code = "unsupported"


class PageNotFoundError(ProviderError):
    """Pagination cursor transaction no longer resolves on the provider."""

    error_code = "page_not_found"


class NetworkError(ProviderError):
    """Network connectivity issue — timeout or connection failure."""

    error_code = "network_error"


class NetworkTimeoutError(NetworkError):
    """Request exceeded its deadline."""

    error_code = "network_timeout"
    status = "timeout"


class ConnectionFailedError(NetworkError):
    """Could not connect to the provider endpoint."""

    error_code = "connection_failed"


# ── Terminal lookup errors ────────────────────────────────────────────────────


class UpstreamUnavailableError(HodlcheckError):
    """Every provider failed a mandatory capability."""

    exit_code = 3
    error_code = "upstream_unavailable"
    status = "upstream_unavailable"


class HistoryUnresolvedError(UpstreamUnavailableError):
    """No strategy could determine the address's earliest transaction."""

    error_code = "history_unresolved"


class LookupTimeoutError(UpstreamUnavailableError):
    """Mandatory calls timed out on every provider."""

    error_code = "timeout"
    status = "timeout"


# ── Config ────────────────────────────────────────────────────────────────────


class ConfigError(HodlcheckError):
    """Config file or environment override is malformed."""

    exit_code = 5
    error_code = "config_error"


class ConfigInvalidError(ConfigError):
    """Config file exists but contains invalid TOML or invalid values."""

    error_code = "config_invalid"
