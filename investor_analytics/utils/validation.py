from __future__ import annotations

from collections.abc import Iterable


def validate_currency(code: str | None, default: str = "USD") -> str:
    clean = (code or "").strip().upper()
    if not clean:
        return default
    if not (clean.isalpha() and len(clean) == 3):
        raise ValueError("Currency must be a three-letter ISO code")
    return clean


def allowed_ids(requested: Iterable[str] | None, allowed: Iterable[str]) -> list[str]:
    allow = set(allowed)
    out: list[str] = []
    for item in requested or []:
        clean = str(item).strip()
        if clean in allow and clean not in out:
            out.append(clean)
    return out
