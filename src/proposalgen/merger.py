from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .categories import CategoryDescriptor
from .dimensions import mean, round_up_to_multiple
from .models import UNIT_COLUMNS, ExtractedAttributes, Group, Item, Row, Subsection

LOGGER = logging.getLogger(__name__)

NUMERIC_FIELDS = (
    "diameter",
    "thickness",
    "height_feet",
    "embedment_feet",
    "rock_socket_feet",
    "width_feet",
    "length_feet",
    "weight_per_ft",
)
TEXT_FIELDS = ("wire_mesh_spec", "shape", "floor")

_CITATION_RE = re.compile(r"\s*\b(?:as per|see)\b.*$", re.IGNORECASE)


def item_body(text: str) -> str:
    """Item text without its trailing drawing citation."""
    return _CITATION_RE.sub("", text or "").strip(" ,;-")


def _key_value(item: Item, field_name: str, descriptor: CategoryDescriptor):
    if field_name == "text":
        return re.sub(r"\s+", " ", item_body(item.text)).lower() or None
    value = item.attributes.get(field_name)
    if value is None or field_name not in NUMERIC_FIELDS:
        return value
    if field_name in descriptor.rounded_fields:
        return round_up_to_multiple(value, 5)
    return round(value, 3)


def identity_key(item: Item, descriptor: CategoryDescriptor) -> Tuple:
    """Category-specific key; items missing a required field get their own."""
    singleton = (descriptor.name, "__item__", item.sheet_row)
    if descriptor.key_fields is None:
        return singleton
    values = tuple(_key_value(item, name, descriptor) for name in descriptor.key_fields)
    required = descriptor.key_required or descriptor.key_fields
    for name in required:
        position = descriptor.key_fields.index(name) if name in descriptor.key_fields else None
        value = values[position] if position is not None else item.attributes.get(name)
        if value is None:
            LOGGER.debug("merger: row %d lacks %s, kept on its own", item.sheet_row, name)
            return singleton
    return (descriptor.name,) + values


def aggregate_attributes(items: Sequence[Item], descriptor: CategoryDescriptor) -> ExtractedAttributes:
    """Mean for dimensions; fields in ``rounded_fields`` go up to the next 5 ft."""
    values: Dict[str, object] = {}
    for field_name in NUMERIC_FIELDS:
        averaged = mean(item.attributes.get(field_name) for item in items)
        if averaged is not None and field_name in descriptor.rounded_fields:
            averaged = round_up_to_multiple(averaged, 5)
        values[field_name] = averaged
    for field_name in TEXT_FIELDS:
        values[field_name] = next(
            (item.attributes.get(field_name) for item in items if item.attributes.get(field_name)),
            None,
        )
    refs: List[str] = []
    for item in items:
        for ref in item.attributes.page_refs:
            if ref not in refs:
                refs.append(ref)
    values["page_refs"] = tuple(refs)
    return ExtractedAttributes(**values)


def column_totals(rows: Sequence[Row]) -> Dict[str, float]:
    totals = {column: 0.0 for column in UNIT_COLUMNS.values()}
    totals["takeoff"] = 0.0
    for row in rows:
        for column in totals:
            totals[column] += float(getattr(row, column) or 0.0)
    return totals


def _build_group(key: Tuple, items: List[Item], descriptor: CategoryDescriptor, sum_row: Optional[Row]) -> Group:
    return Group(
        key=key,
        items=tuple(items),
        quantity=sum(item.takeoff for item in items),
        attributes=aggregate_attributes(items, descriptor),
        totals=column_totals([item.row for item in items]),
        sum_row=sum_row,
    )


def merge_items(
    subsection: Subsection,
    categorize: Callable[[Item], CategoryDescriptor],
) -> List[Tuple[CategoryDescriptor, Group]]:
    """Group a subsection's items in first-seen order.

    The quantity summed over the returned groups always equals the summed
    takeoff of the subsection's items.
    """
    order: List[Tuple] = []
    buckets: Dict[Tuple, List[Item]] = {}
    descriptors: Dict[Tuple, CategoryDescriptor] = {}
    for item in subsection.items:
        descriptor = categorize(item)
        key = identity_key(item, descriptor)
        if key not in buckets:
            order.append(key)
            buckets[key] = []
            descriptors[key] = descriptor
        buckets[key].append(item)

    whole = len(order) == 1
    groups = []
    for key in order:
        sum_row = subsection.sum_row if whole else None
        groups.append((descriptors[key], _build_group(key, buckets[key], descriptors[key], sum_row)))
    LOGGER.debug("merger: %s %d items -> %d groups", subsection.name, len(subsection.items), len(groups))
    return groups


def sum_row_group(subsection: Subsection) -> Group:
    """Group standing in for a subsection that has a sum row but no items."""
    row = subsection.sum_row
    totals = column_totals([row]) if row is not None else column_totals([])
    return Group(
        key=("__sum__", row.sheet_row if row is not None else None),
        items=(),
        quantity=totals["takeoff"],
        attributes=ExtractedAttributes(),
        totals=totals,
        sum_row=row,
    )


__all__ = [
    "aggregate_attributes",
    "column_totals",
    "identity_key",
    "item_body",
    "merge_items",
    "sum_row_group",
]
