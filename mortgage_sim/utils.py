"""Utility functions for the mortgage simulator.

This module provides helpers for turning user input into numbers. Amounts
may be typed in European (``1.000,50``) or US (``1,000.50``) notation, with
spaces as thousands separators or with ``k``/``m`` shorthand suffixes.
"""

from __future__ import annotations

import re
from typing import List

_LIST_SEPARATORS = re.compile(r"[;\n]+|,\s+")


def parse_number(value: str) -> float:
    """Parse a number written in European or US notation.

    A single separator followed by one or two digits is taken as the decimal
    separator; otherwise it is a thousands separator. When both ``,`` and
    ``.`` are present, the one that appears last is the decimal separator.
    Empty input yields ``0.0``.

    Raises
    ------
    ValueError
        If the cleaned string is not a number.
    """
    if value is None:
        return 0.0
    cleaned = re.sub(r"\s", "", str(value))
    if not cleaned:
        return 0.0

    has_comma = "," in cleaned
    has_period = "." in cleaned
    if has_comma and has_period:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif has_comma:
        parts = cleaned.split(",")
        if len(parts) == 2 and len(parts[1]) <= 2:
            cleaned = cleaned.replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif has_period:
        parts = cleaned.split(".")
        if not (len(parts) == 2 and parts[1] and len(parts[1]) <= 2):
            cleaned = cleaned.replace(".", "")

    try:
        return float(cleaned)
    except ValueError as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def parse_amount(value: str) -> float:
    """Parse an amount with an optional ``k`` or ``m`` suffix ("500k")."""
    text = str(value).strip().lower()
    factor = 1.0
    if text.endswith("k"):
        factor = 1_000.0
        text = text[:-1]
    elif text.endswith("m"):
        factor = 1_000_000.0
        text = text[:-1]
    return parse_number(text) * factor


def parse_number_list(value: str) -> List[float]:
    """Parse a list of amounts such as ``"0; 10k; 20.000"``.

    Entries are separated by semicolons, newlines, or a comma followed by
    whitespace (a bare comma is a decimal or thousands separator).
    """
    if not value:
        return []
    items = [p.strip() for p in _LIST_SEPARATORS.split(value)]
    return [parse_amount(p) for p in items if p]


def format_plain_number(value: float) -> str:
    """Render a number without a trailing ``.0`` for whole values."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)
