from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from openpyxl.utils import get_column_letter

from .categories import CategoryDescriptor
from .dimensions import (
    PLACEHOLDER,
    format_feet_inches,
    format_floor,
    format_inches,
    format_number,
    format_page_list,
)
from .extractor import DEFAULT_WALL_THICKNESS, weight_per_foot
from .merger import item_body
from .models import UNIT_COLUMNS, Group, Section, Subsection, SynthesizedLine
from .worksheet import COLUMN_FIELDS, DEFAULT_SHEET, DrawingReferences

LOGGER = logging.getLogger(__name__)

DEFAULT_COLUMNS: Dict[str, int] = {name: position for position, name in enumerate(COLUMN_FIELDS)}


class _Placeholders(dict):
    def __init__(self, values: Mapping[str, str], token: str):
        super().__init__(values)
        self.token = token

    def __missing__(self, key: str) -> str:
        return self.token


def quote_sheet(sheet: str) -> str:
    return "'" + sheet.replace("'", "''") + "'"


def source_formula(sheet: str, column: str, rows: Sequence[int]) -> str:
    """``'Sheet'!I12`` for one row, ``SUM(...)`` for a range or a list."""
    prefix = quote_sheet(sheet) + "!"
    ordered = sorted(set(rows))
    if len(ordered) == 1:
        return f"{prefix}{column}{ordered[0]}"
    if ordered == list(range(ordered[0], ordered[-1] + 1)):
        return f"SUM({prefix}{column}{ordered[0]}:{column}{ordered[-1]})"
    return "SUM(" + ",".join(f"{prefix}{column}{row}" for row in ordered) + ")"


class TemplateSynthesizer:
    """Render a group into a :class:`SynthesizedLine`.

    Present values are formatted per type; absent ones become the
    placeholder token so the line can still be emitted and edited.
    """

    def __init__(
        self,
        placeholder: str = PLACEHOLDER,
        references: Optional[DrawingReferences] = None,
        columns: Optional[Mapping[str, int]] = None,
        sheet_name: str = DEFAULT_SHEET,
    ):
        self.placeholder = placeholder
        self.references = references or DrawingReferences()
        self.columns = dict(columns or DEFAULT_COLUMNS)
        self.sheet_name = sheet_name

    def synthesize(
        self,
        section: Section,
        subsection: Subsection,
        descriptor: CategoryDescriptor,
        group: Group,
    ) -> SynthesizedLine:
        placeholders = self.placeholders(subsection, group, descriptor.height_allowance)
        description = descriptor.template.format_map(_Placeholders(placeholders, self.placeholder))
        description = re.sub(r"\s+", " ", description).strip()
        missing = sorted(name for name in descriptor.required if self.placeholder in placeholders.get(name, self.placeholder))
        if missing:
            LOGGER.debug("synthesizer: %r rendered with placeholders for %s", description, ", ".join(missing))
        values, sources = self.unit_values(descriptor, group)
        return SynthesizedLine(
            description=description,
            section=section.name,
            subsection=subsection.name,
            category=descriptor.name,
            values=values,
            sources=sources,
            source_rows=group.sheet_rows,
            rate_key=descriptor.rate_key or description,
        )

    def page_refs(self, subsection: Subsection, group: Group) -> Tuple[str, ...]:
        refs: List[str] = list(group.attributes.page_refs)
        lookups = [item.row.particulars for item in group.items] or [subsection.name]
        for text in lookups:
            for ref in self.references.lookup(text):
                if ref not in refs:
                    refs.append(ref)
        return tuple(refs)

    def placeholders(self, subsection: Subsection, group: Group, height_allowance: float = 0.0) -> Dict[str, str]:
        attrs = group.attributes
        height = attrs.height_feet + height_allowance if attrs.height_feet is not None else None
        token = self.placeholder
        quantity = group.quantity or group.totals.get("qty_total") or None
        if attrs.rock_socket_feet is not None:
            depth = f"{format_feet_inches(attrs.rock_socket_feet, token)} rock socket"
        else:
            depth = f"{format_feet_inches(attrs.embedment_feet, token)} embedment"
        name = subsection.name or ""
        subject = re.sub(r"^demo(lition)?\s+", "", name.strip(), flags=re.IGNORECASE).lower()
        body = item_body(group.text) if group.items else name
        # "Foundation wall (1'-0"x10'-0")" -> "foundation wall"
        element = body.split("(", 1)[0].strip().lower()
        return {
            "qty": format_number(quantity, token),
            "diameter": format_inches(attrs.diameter, token),
            "thickness": format_inches(attrs.thickness, token),
            "height": format_feet_inches(height, token),
            "embedment": format_feet_inches(attrs.embedment_feet, token),
            "rock_socket": format_feet_inches(attrs.rock_socket_feet, token),
            "depth": depth,
            "width": format_feet_inches(attrs.width_feet, token),
            "length": format_feet_inches(attrs.length_feet, token),
            "wire_mesh": attrs.wire_mesh_spec or token,
            "floor": format_floor(attrs.floor, token),
            "shape": attrs.shape or token,
            "pages": format_page_list(self.page_refs(subsection, group), token),
            "subject": subject or body or token,
            "body": body or token,
            "element": element or token,
        }

    def _letter(self, field_name: str) -> str:
        return get_column_letter(self.columns.get(field_name, DEFAULT_COLUMNS[field_name]) + 1)

    def _reference(self, group: Group, field_name: str, total: float) -> str:
        sum_row = group.sum_row
        if sum_row is not None and abs(float(getattr(sum_row, field_name) or 0.0) - total) < 1e-9:
            return source_formula(self.sheet_name, self._letter(field_name), [sum_row.sheet_row])
        rows = [item.sheet_row for item in group.items] or list(group.sheet_rows)
        return source_formula(self.sheet_name, self._letter(field_name), rows)

    def unit_values(self, descriptor: CategoryDescriptor, group: Group) -> Tuple[Dict[str, float], Dict[str, str]]:
        values: Dict[str, float] = {}
        sources: Dict[str, str] = {}
        for unit in descriptor.units:
            if unit == "LS":
                values[unit] = 1.0
                continue
            field_name = UNIT_COLUMNS[unit]
            total = float(group.totals.get(field_name, 0.0))
            if unit == "QTY" and not total and group.items:
                field_name, total = "takeoff", float(group.quantity)
            if unit == "LBS" and not total and descriptor.weight_fallback:
                weight = self._pile_weight(group)
                if weight:
                    values[unit] = weight
                continue
            if not total:
                continue
            values[unit] = total
            sources[unit] = self._reference(group, field_name, total)
        return values, sources

    @staticmethod
    def _pile_weight(group: Group) -> Optional[float]:
        attrs = group.attributes
        weight_per_ft = attrs.weight_per_ft or weight_per_foot(
            attrs.shape, attrs.diameter, attrs.thickness or DEFAULT_WALL_THICKNESS
        )
        if not weight_per_ft or not attrs.height_feet:
            return None
        length = attrs.height_feet + (attrs.rock_socket_feet or 0.0)
        return round(weight_per_ft * length * group.quantity, 2)


__all__ = ["TemplateSynthesizer", "quote_sheet", "source_formula"]
