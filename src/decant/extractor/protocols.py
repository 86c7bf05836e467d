"""
Protocols for pluggable conditional-cleaning strategies.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ConditionalCleaner(Protocol):
    """Markup-to-markup strategy that drops blocks which look like clutter."""

    name: str

    def clean(self, html: str) -> str:
        """Remove low-value blocks from an article fragment.

        Args:
            html: Serialized article fragment

        Returns:
            The fragment with clutter blocks removed
        """
        ...
