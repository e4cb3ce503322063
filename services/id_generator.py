"""Deterministic 12-hex-character IDs for flags and course materials.

IDs are a 48-bit hash of a descriptive input string: two independent
32-bit multiply/xor-shift lanes, the low 32 bits from lane one and 16
bits from lane two.  The same input always yields the same ID, so a
retried submission maps onto the record it already created.
"""

from __future__ import annotations

from datetime import datetime

_MASK32 = 0xFFFFFFFF


def _iso_millis(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def hash48hex(text: str) -> str:
    h1 = 0x9E3779B9
    h2 = 0x85EBCA6B

    for b in text.encode("utf-8"):
        h1 ^= b
        h1 = (h1 * 0x85EBCA6B) & _MASK32
        h1 ^= h1 >> 13
        h1 = (h1 * 0xC2B2AE35) & _MASK32
        h1 ^= h1 >> 16

        x = (h2 ^ ((b + 0x9E3779B9) & _MASK32)) & _MASK32
        x = (x * 0x27D4EB2D) & _MASK32
        x ^= x >> 15
        x = (x * 0x165667B1) & _MASK32
        x ^= x >> 17
        h2 = x

    value = ((h2 & 0xFFFF) << 32) | h1
    return f"{value:012x}"


def flag_id(user_id: int | str, course_name: str, date: datetime, content: str = "") -> str:
    """Flag ID from reporter, course, timestamp and the first ten words reported."""
    hash_input = f"flag_{user_id}-{course_name}-{_iso_millis(date)}"
    if content:
        hash_input += "-" + " ".join(content.split(" ")[:10])
    return hash48hex(hash_input)


def document_id(
    name: str,
    item_title: str,
    topic_or_week_title: str,
    course_name: str,
    date: datetime,
) -> str:
    return hash48hex(
        f"{name}-{item_title}-{topic_or_week_title}-{course_name}-{_iso_millis(date)}"
    )
