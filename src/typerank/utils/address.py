"""Player address helpers."""

from __future__ import annotations

import re

from typerank.core.errors import ValidationError

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_address(value: str | None) -> bool:
    return bool(value) and ADDRESS_RE.match(value) is not None


def normalize_address(value: str | None) -> str:
    """Lower-case a 20-byte hex address, rejecting anything else."""
    if not is_address(value):
        raise ValidationError(f"Invalid player address: {value!r}")
    assert value is not None
    return value.lower()
