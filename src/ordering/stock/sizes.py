"""Bottle size vocabulary and stock-map parsing.

Every size label accepted anywhere in the system is canonicalized to one of
``SIZE_KEYS``. Stock maps arrive in several shapes (admin forms, JSON
strings, legacy arrays of objects) and are reduced here to a plain
``{SizeKey: int}`` dict. Everything in this module is pure.
"""

import json
import math
import re
from collections.abc import Mapping

from protean.exceptions import ValidationError

SIZE_KEYS = ("1.5LTR", "1LTR", "75CL", "70CL", "35CL", "20CL", "10CL", "5CL")

_SIZE_ALIASES = {
    "1.5LTR": ("1.5L", "1.5LT", "1_5LTR", "1_5_LTR", "1_5L", "1500ML", "150CL"),
    "1LTR": ("1L", "1LT", "1.0L", "1.0LTR", "1000ML", "100CL"),
    "75CL": ("750ML", "0.75L", "0.75LTR", "75CLS"),
    "70CL": ("700ML", "0.7L", "0.7LTR", "70CLS"),
    "35CL": ("350ML", "0.35L", "35CLS"),
    "20CL": ("200ML", "0.2L", "20CLS"),
    "10CL": ("100ML", "0.1L", "10CLS"),
    "5CL": ("50ML", "0.05L", "5CLS"),
}

_ALIAS_LOOKUP = {alias: key for key, aliases in _SIZE_ALIASES.items() for alias in aliases}

_KEY_FIELDS = ("key", "size", "label", "name", "id")
_QUANTITY_FIELDS = ("quantity", "qty", "value", "stock", "amount")

_UNIT_SPELLINGS = re.compile(r"LIT(?:RE|ER)S?")
_DECIMAL_POINT = re.compile(r"(?<=\d)\.(?=\d)")
_SEPARATORS = re.compile(r"[-,/_.]+")


def normalize_size_label(raw) -> str | None:
    """Map a free-form size label to its canonical key.

    Returns ``None`` for anything outside the vocabulary; call sites decide
    whether that is an error.
    """
    if raw is None:
        return None

    text = re.sub(r"\s+", "", str(raw).upper())
    if not text:
        return None

    text = _UNIT_SPELLINGS.sub("LTR", text)
    # Keep decimal points between digits, unify every other separator
    text = _DECIMAL_POINT.sub("#", text)
    text = _SEPARATORS.sub("_", text).strip("_").replace("#", ".")

    compact = text.replace("_", "")
    for candidate in (text, compact):
        if candidate in SIZE_KEYS:
            return candidate
        if candidate in _ALIAS_LOOKUP:
            return _ALIAS_LOOKUP[candidate]
    return None


def empty_stock_map() -> dict[str, int]:
    return {key: 0 for key in SIZE_KEYS}


def parse_stock_map(
    value,
    reject_unknown: bool = True,
    fill_missing: bool = True,
    coercion: str = "strict",
) -> dict[str, int]:
    """Parse a stock map in any accepted shape.

    Args:
        value: mapping, JSON string, list of ``[key, qty]`` pairs, or list of
            objects carrying a key field and a quantity field.
        reject_unknown: raise on labels outside the vocabulary instead of
            dropping them.
        fill_missing: include every vocabulary key, defaulting to zero.
        coercion: ``"strict"`` raises on non-numeric or negative quantities,
            ``"soft"`` turns them into zero.

    Quantities are floored. Labels that normalize to the same key are summed.
    """
    if coercion not in ("strict", "soft"):
        raise ValueError(f"Unknown coercion mode: {coercion}")

    parsed: dict[str, int] = {}
    for raw_key, raw_quantity in _entries(value):
        if raw_key is None or str(raw_key).strip() == "":
            continue

        key = normalize_size_label(raw_key)
        if key is None:
            if reject_unknown:
                raise ValidationError({"size_stocks": [f"Invalid size: {raw_key}"]})
            continue

        parsed[key] = parsed.get(key, 0) + _coerce_quantity(raw_quantity, key, coercion)

    if fill_missing:
        return {key: parsed.get(key, 0) for key in SIZE_KEYS}
    return {key: parsed[key] for key in SIZE_KEYS if key in parsed}


def compute_total_stock(stock_map: Mapping | None) -> int:
    """Sum of the vocabulary quantities; absent keys count as zero."""
    if not stock_map:
        return 0
    return sum(int(stock_map.get(key) or 0) for key in SIZE_KEYS)


def _entries(value) -> list[tuple]:
    if value is None:
        return []

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        try:
            return _entries(json.loads(text))
        except json.JSONDecodeError as exc:
            raise ValidationError({"size_stocks": ["Size stocks must be a JSON object or array"]}) from exc

    if isinstance(value, Mapping):
        return list(value.items())

    if isinstance(value, (list, tuple)):
        entries = []
        for item in value:
            if not item:
                continue
            if isinstance(item, (list, tuple)) and len(item) >= 2:
                entries.append((item[0], item[1]))
            elif isinstance(item, Mapping):
                key = next((item[f] for f in _KEY_FIELDS if item.get(f) is not None), None)
                quantity = next((item[f] for f in _QUANTITY_FIELDS if item.get(f) is not None), None)
                if key is not None and quantity is not None:
                    entries.append((key, quantity))
        return entries

    raise ValidationError({"size_stocks": ["Size stocks must be a JSON object or array"]})


def _coerce_quantity(value, key: str, coercion: str) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan

    if isinstance(value, bool) or not math.isfinite(number) or number < 0:
        if coercion == "soft":
            return 0
        raise ValidationError({"size_stocks": [f"Invalid stock value for {key}: must be a non-negative integer"]})

    return math.floor(number)
