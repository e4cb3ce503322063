"""Label normalization helpers shared by the struggle-topic ledger."""

from __future__ import annotations

from collections.abc import Iterable


def normalize_label(label: str) -> str:
    """Trim and lowercase a single label."""
    return label.strip().lower()


def normalize_labels(labels: Iterable[str]) -> list[str]:
    """Normalize, drop empties, deduplicate and sort.

    The result is deterministic for any input order, which keeps stored
    ledgers stable across repeated analyses.
    """
    return sorted({n for n in (normalize_label(label) for label in labels if label) if n})


def parse_label_list(raw: str) -> list[str]:
    """Split a comma-separated LLM answer into normalized labels."""
    if not raw:
        return []
    return normalize_labels(raw.split(","))
