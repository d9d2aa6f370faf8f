"""
Masking for UPI payer details.

Payer handles (VPAs) and UTRs are stored in full but never leave the
service unmasked. Masking is idempotent: values that already contain the
mask character are returned as-is.

    mask_vpa("rahul.sharma@okaxis")  -> "ra**********@okaxis"
    mask_utr("412345678901")         -> "********8901"
"""

from __future__ import annotations

MASK_CHARACTER = "*"


def _normalize(value: str | None) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def mask_vpa(value: str | None) -> str | None:
    """Keep the first two characters of the local part and the domain."""
    normalized = _normalize(value)
    if normalized is None or MASK_CHARACTER in normalized:
        return normalized

    local, _, domain = normalized.partition("@")
    visible = local[:2]
    masked = f"{visible}{MASK_CHARACTER * max(len(local) - len(visible), 3)}"
    return f"{masked}@{domain}" if domain else masked


def mask_utr(value: str | None) -> str | None:
    """Keep the last four characters; short values are masked entirely."""
    normalized = _normalize(value)
    if normalized is None or MASK_CHARACTER in normalized:
        return normalized

    if len(normalized) <= 4:
        return MASK_CHARACTER * len(normalized)
    suffix = normalized[-4:]
    return f"{MASK_CHARACTER * max(len(normalized) - 4, 4)}{suffix}"
