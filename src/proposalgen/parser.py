"""Single-pass section tree parser for the calculation worksheet."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .extractor import extract_attributes, prepare_text
from .models import Item, Row, Section, Subsection
from .worksheet import normalize_name, section_for_marker

LOGGER = logging.getLogger(__name__)


class RowKind(enum.Enum):
    BLANK = "blank"
    SECTION = "section"
    UNKNOWN_MARKER = "unknown_marker"
    SUBSECTION = "subsection"
    ITEM = "item"
    SUM = "sum"
    STRAY = "stray"


class SubsectionState(enum.Enum):
    AWAITING_HEADER = "awaiting_header"
    COLLECTING_ITEMS = "collecting_items"
    SUM_ROW_SEEN = "sum_row_seen"
    NEXT_HEADER_SEEN = "next_header_seen"
    CLOSED = "closed"


def classify_row(row: Row) -> RowKind:
    """Decide what a row is from its content alone.

    A row whose particulars are empty but which carries an aggregate is a
    sum row; a particulars line ending in ``:`` is a subsection header.
    """
    if row.is_blank:
        return RowKind.BLANK
    if row.marker:
        if section_for_marker(row.marker):
            return RowKind.SECTION
        return RowKind.UNKNOWN_MARKER
    text = (row.particulars or "").strip()
    if text:
        if text.endswith(":"):
            return RowKind.SUBSECTION
        if not row.takeoff and not row.has_aggregate and section_for_marker(text):
            return RowKind.SECTION
        return RowKind.ITEM
    if row.has_aggregate:
        return RowKind.SUM
    return RowKind.STRAY


class ParserListener:
    """Receives close events; the default implementation ignores them."""

    def section_opened(self, section: Section) -> None:
        pass

    def subsection_closed(self, section: Section, subsection: Subsection) -> None:
        pass

    def section_closed(self, section: Section) -> None:
        pass


@dataclass
class ParseResult:
    sections: List[Section] = field(default_factory=list)
    unused_rows: List[Row] = field(default_factory=list)


class SectionTreeParser:
    """Consume rows once, building Section -> Subsection -> Item.

    Every subsection moves through ``AWAITING_HEADER -> COLLECTING_ITEMS ->
    (SUM_ROW_SEEN | NEXT_HEADER_SEEN) -> CLOSED``. Items arriving after a
    subsection's sum row start a continuation subsection with the same name,
    so a sum row always follows every item it totals.
    """

    def __init__(self, listener: Optional[ParserListener] = None):
        self.listener = listener or ParserListener()
        self.result = ParseResult()
        self.section: Optional[Section] = None
        self.subsection: Optional[Subsection] = None
        self.state = SubsectionState.AWAITING_HEADER
        self._last_closed: Optional[Subsection] = None

    def parse(self, rows: Iterable[Row]) -> ParseResult:
        for row in rows:
            self.feed(row)
        self.finish()
        return self.result

    def feed(self, row: Row) -> None:
        kind = classify_row(row)
        handler = getattr(self, f"_on_{kind.value}")
        handler(row)

    def finish(self) -> None:
        self._close_section()

    def _on_blank(self, row: Row) -> None:
        return None

    def _on_section(self, row: Row) -> None:
        self._close_section()
        name = section_for_marker(row.marker or row.particulars)
        self.section = Section(name=name, header_row=row)
        self.result.sections.append(self.section)
        LOGGER.debug("parser: row %d opens section %s", row.sheet_row, name)
        self.listener.section_opened(self.section)

    def _on_unknown_marker(self, row: Row) -> None:
        LOGGER.debug("parser: row %d unknown marker %r closes section", row.sheet_row, row.marker)
        self._close_section()

    def _on_subsection(self, row: Row) -> None:
        if self.section is None:
            self._unused(row, "subsection header outside a section")
            return
        if self.subsection is not None:
            self.state = SubsectionState.NEXT_HEADER_SEEN
        self._close_subsection()
        name = (row.particulars or "").strip().rstrip(":").strip()
        self._open_subsection(name, row)

    def _on_item(self, row: Row) -> None:
        if self.section is None:
            self._unused(row, "item outside a section")
            return
        if self.subsection is None:
            if self._last_closed is None:
                self._unused(row, "item outside a subsection")
                return
            # continuation run after a sum row
            self._open_subsection(self._last_closed.name, self._last_closed.header_row)
        text = prepare_text(row.particulars)
        attributes = extract_attributes(row.particulars, height_column=row.height or None)
        self.subsection.items.append(Item(row=row, text=text, attributes=attributes))
        self.state = SubsectionState.COLLECTING_ITEMS

    def _on_sum(self, row: Row) -> None:
        if self.subsection is None:
            if self._last_closed is not None and self.section is not None:
                LOGGER.debug("parser: row %d extra aggregate after %s", row.sheet_row, self._last_closed.name)
                return
            self._unused(row, "aggregate outside a subsection")
            return
        self.subsection.sum_row = row
        self.state = SubsectionState.SUM_ROW_SEEN
        self._close_subsection()

    def _on_stray(self, row: Row) -> None:
        self._unused(row, "no particulars and no aggregate")

    def _open_subsection(self, name: str, header_row: Optional[Row]) -> None:
        self.subsection = Subsection(name=name, key=normalize_name(name), header_row=header_row)
        self.section.subsections.append(self.subsection)
        self.state = SubsectionState.COLLECTING_ITEMS

    def _close_subsection(self) -> None:
        if self.subsection is None:
            return
        subsection = self.subsection
        self.state = SubsectionState.CLOSED
        self.subsection = None
        self._last_closed = subsection
        self.listener.subsection_closed(self.section, subsection)
        self.state = SubsectionState.AWAITING_HEADER

    def _close_section(self) -> None:
        if self.section is None:
            return
        if self.subsection is not None:
            self.state = SubsectionState.NEXT_HEADER_SEEN
        self._close_subsection()
        section = self.section
        self.section = None
        self._last_closed = None
        self.listener.section_closed(section)

    def _unused(self, row: Row, reason: str) -> None:
        LOGGER.debug("parser: row %d unused (%s)", row.sheet_row, reason)
        self.result.unused_rows.append(row)


def parse_rows(rows: Iterable[Row], listener: Optional[ParserListener] = None) -> ParseResult:
    return SectionTreeParser(listener).parse(rows)


__all__ = [
    "ParseResult",
    "ParserListener",
    "RowKind",
    "SectionTreeParser",
    "SubsectionState",
    "classify_row",
    "parse_rows",
]
