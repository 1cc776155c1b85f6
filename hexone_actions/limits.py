from __future__ import annotations

from typing import Optional

# Protocol rates are expressed in per-mille (1000 == 100%)
FEE_RATE_DENOMINATOR = 1000


def parse_int(token: str) -> Optional[int]:
    token = token.strip()
    if not token or token.startswith("$"):
        return None
    try:
        if token.startswith("0x") or token.startswith("0X"):
            return int(token, 16)
        sanitized = token.replace("_", "")
        return int(sanitized, 10)
    except ValueError:
        return None


def check_fee_rate(value: int) -> Optional[str]:
    if value < 0 or value > FEE_RATE_DENOMINATOR:
        return f"fee rate {value} outside 0..{FEE_RATE_DENOMINATOR} (per-mille)"
    return None


def check_positive(name: str, value: int) -> Optional[str]:
    if value <= 0:
        return f"{name} must be positive, got {value}"
    return None


def check_non_negative(name: str, value: int) -> Optional[str]:
    if value < 0:
        return f"{name} must not be negative, got {value}"
    return None
