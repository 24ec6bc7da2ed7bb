"""
Query condition builder.

Turns the listing filter triples (`sizeOp`/`sizeVal`, `priceOp`/`priceVal`,
`roomsOp`/`roomsVal`) into a document-store predicate, and AND-combines
predicates such as a role scope with a user filter.

Predicates use the Mongo operator vocabulary so the same dict works for
every storage backend:

    {"floor_area_size": {"$gt": 90}, "number_of_rooms": {"$eq": 3}}
"""

from __future__ import annotations

from typing import Any

from rentals.core.schemas import ApartmentFilter

Condition = dict[str, Any]

OPERATORS: dict[str, str] = {
    "gt": "$gt",
    "lt": "$lt",
    "eq": "$eq",
}

# filter prefix -> stored field
FILTER_FIELDS: dict[str, str] = {
    "size": "floor_area_size",
    "price": "price_per_month",
    "rooms": "number_of_rooms",
}


def build_condition(filters: ApartmentFilter) -> Condition:
    """
    Build a predicate from validated listing filters.

    A triple applies only when both its operator and value are present;
    a missing half imposes no constraint on that field.
    """
    condition: Condition = {}

    for prefix, field in FILTER_FIELDS.items():
        op = getattr(filters, f"{prefix}_op")
        value = getattr(filters, f"{prefix}_val")
        if op is None or value is None:
            continue
        condition[field] = {OPERATORS[op]: value}

    return condition


def combine(*conditions: Condition | None) -> Condition:
    """
    AND-combine predicates.

    Disjoint predicates are merged into one dict. If two predicates
    constrain the same field, the result is an explicit `$and` so that
    neither constraint silently overwrites the other.
    """
    parts = [c for c in conditions if c]
    if not parts:
        return {}
    if len(parts) == 1:
        return dict(parts[0])

    merged: Condition = {}
    for part in parts:
        if merged.keys() & part.keys():
            return {"$and": [dict(p) for p in parts]}
        merged.update(part)
    return merged
