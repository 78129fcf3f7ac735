"""
Bitcoin address format validation.

Pure local checks, no network calls. Produces an Address that downstream
components trust without re-validating.

Accepts:
- Legacy P2PKH (1...) and P2SH (3...) base58 addresses
- Bech32 / Bech32m SegWit addresses (bc1q..., bc1p...), single-case
"""

from __future__ import annotations

import re

from hodlcheck.exceptions import InvalidAddressError
from hodlcheck.models import ADDRESS_KIND_LEGACY, ADDRESS_KIND_SEGWIT, Address

# Base58 excludes 0, O, I and l
_LEGACY_RE = re.compile(r"^[13][a-km-zA-HJ-NP-Z1-9]{25,34}$")
# Bech32 charset excludes 1, b, i and o after the separator
_BECH32_RE = re.compile(r"^bc1[ac-hj-np-z02-9]{6,87}$")


def validate_address(raw: object) -> Address:
    """
    Validate and normalise a raw address string.

    Surrounding whitespace is stripped. An all-uppercase bech32 address is
    lowercased (bech32 is case-insensitive but never mixed-case).

    Raises:
        InvalidAddressError: empty, non-string, or matches neither shape.
    """
    if not isinstance(raw, str):
        raise InvalidAddressError(
            "Invalid address: expected a string",
            details={"type": type(raw).__name__},
        )

    cleaned = raw.strip()
    if not cleaned:
        raise InvalidAddressError("Invalid address: empty string")

    if _LEGACY_RE.match(cleaned):
        return Address(value=cleaned, kind=ADDRESS_KIND_LEGACY)

    if cleaned.isupper() or cleaned.islower():
        lowered = cleaned.lower()
        if _BECH32_RE.match(lowered):
            return Address(value=lowered, kind=ADDRESS_KIND_SEGWIT)

    raise InvalidAddressError(
        f"Invalid Bitcoin address format: {cleaned!r}",
        details={"address": cleaned},
    )


def is_valid_address(raw: object) -> bool:
    """Boolean form of validate_address()."""
    try:
        validate_address(raw)
    except InvalidAddressError:
        return False
    return True
