"""Vault: placeholder → original mapping of a masked document.

Design goals:
  - Read-only after masking: the reconciliation engine never re-masks
  - Rehydration-safe: longest placeholder first, so "[PARTY_A]" is never
    eaten by a shorter placeholder that happens to be its prefix
"""

from __future__ import annotations


def unmask(text: str, placeholder_map: dict[str, str]) -> str:
    """Replace every placeholder in text with its original value."""
    result = text
    for placeholder in sorted(placeholder_map, key=len, reverse=True):
        if placeholder and placeholder in result:
            result = result.replace(placeholder, placeholder_map[placeholder])
    return result


class PlaceholderVault:
    """Placeholder store handed from the masking step to a review."""

    __slots__ = ("_map",)

    def __init__(self, placeholder_map: dict[str, str] | None = None) -> None:
        self._map: dict[str, str] = dict(placeholder_map or {})

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def unmask(self, text: str) -> str:
        return unmask(text, self._map)

    def lookup(self, placeholder: str) -> str | None:
        """Look up the original value for a placeholder."""
        return self._map.get(placeholder)

    def placeholders_in(self, text: str) -> list[str]:
        """Placeholders that still appear in text, longest first."""
        return [p for p in sorted(self._map, key=len, reverse=True) if p and p in text]

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return bool(self._map)

    @property
    def size(self) -> int:
        return len(self._map)

    def dump(self) -> dict[str, str]:
        """Return a copy of the placeholder→original mapping."""
        return dict(self._map)
