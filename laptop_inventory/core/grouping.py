"""Grouping-key helpers for laptop units.

Units that describe the same laptop model (brand, model, processor, RAM and
storage) share a single grouping key. The key decides which units appear
together in de-duplicated listings and which units share one product image.
"""

from __future__ import annotations

import re

__all__ = ["GROUPING_FIELDS", "derive_grouping_key", "grouping_key_for", "normalize_attribute"]


GROUPING_FIELDS = ("brand", "model", "processor", "ram", "storage")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_attribute(value: str | None) -> str:
    """Lower-case a descriptive attribute and drop every whitespace character.

    ``None`` normalizes to the empty string so a missing attribute still keeps
    its position inside the key.
    """

    if value is None:
        return ""
    return _WHITESPACE_RE.sub("", str(value).lower()).strip()


def derive_grouping_key(
    brand: str | None,
    model: str | None,
    processor: str | None,
    ram: str | None,
    storage: str | None,
) -> str:
    """Return the canonical grouping key for the five descriptive attributes.

    The mapping is deliberately lossy: ``"Elite Book"`` and ``"elitebook"``
    collapse to the same segment.
    """

    parts = (brand, model, processor, ram, storage)
    return "-".join(normalize_attribute(part) for part in parts)


def grouping_key_for(data: dict) -> str:
    """Derive the grouping key from a mapping holding the descriptive fields."""

    return derive_grouping_key(*(data.get(field) for field in GROUPING_FIELDS))
