"""Parser -> extractor -> merger -> synthesizer -> resolver -> emitter."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional

from .categories import CategoryDescriptor, categorize
from .dimensions import PLACEHOLDER
from .emitter import ProposalEmitter
from .merger import merge_items, sum_row_group
from .models import Item, ProposalResult, Section, Subsection, SynthesizedLine
from .parser import ParserListener, SectionTreeParser
from .rates import RateCatalog, RateResolver
from .synthesizer import TemplateSynthesizer
from .worksheet import DrawingReferences, Worksheet

LOGGER = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Running state of one proposal build, passed explicitly between stages."""

    worksheet: Worksheet
    synthesizer: TemplateSynthesizer
    resolver: RateResolver
    emitter: ProposalEmitter
    lines: List[SynthesizedLine] = field(default_factory=list)
    stage: int = 0

    def log_stage(self, message: str) -> None:
        self.stage += 1
        LOGGER.info("[pipeline:%02d] %s", self.stage, message)

    @staticmethod
    def log_detail(message: str) -> None:
        LOGGER.info("           %s", message)


class _SubsectionProcessor(ParserListener):
    """Turns each closed subsection into lines before the parser moves on."""

    def __init__(self, context: PipelineContext):
        self.context = context

    def subsection_closed(self, section: Section, subsection: Subsection) -> None:
        for line in synthesize_subsection(self.context, section, subsection):
            self.context.lines.append(line)
            self.context.emitter.emit_line(line)

    def section_closed(self, section: Section) -> None:
        emitter = self.context.emitter
        if emitter.current is not None and emitter.current.section == section.name:
            emitter.close_section()


def synthesize_subsection(context: PipelineContext, section: Section, subsection: Subsection) -> List[SynthesizedLine]:
    def _categorize(item: Item) -> CategoryDescriptor:
        return categorize(section.name, subsection.key, item.text)

    if subsection.items:
        pairs = merge_items(subsection, _categorize)
    elif subsection.sum_row is not None:
        descriptor = categorize(section.name, subsection.key, subsection.key)
        pairs = [(descriptor, sum_row_group(subsection))]
    else:
        LOGGER.debug("pipeline: %s / %s has no items", section.name, subsection.name)
        return []

    lines = []
    for descriptor, group in pairs:
        line = context.synthesizer.synthesize(section, subsection, descriptor, group)
        entry = context.resolver.resolve(line.description, descriptor.rate_key)
        lines.append(replace(line, rate=entry, rate_key=entry.description if entry else line.rate_key))
    return lines


def build_proposal(
    worksheet: Worksheet,
    catalog: Optional[RateCatalog] = None,
    references: Optional[DrawingReferences] = None,
    placeholder: str = PLACEHOLDER,
) -> ProposalResult:
    """Run every stage over an in-memory worksheet snapshot.

    Never raises on content: unreadable values become zero, unknown scope
    falls back to the generic template and unmatched rates leave the line
    unpriced.
    """
    catalog = catalog or RateCatalog()
    context = PipelineContext(
        worksheet=worksheet,
        synthesizer=TemplateSynthesizer(
            placeholder=placeholder,
            references=references,
            columns=worksheet.columns,
            sheet_name=worksheet.name,
        ),
        resolver=RateResolver(catalog),
        emitter=ProposalEmitter(labels=catalog.labels, calc_sheet=worksheet.name),
    )

    context.log_stage("Copying calculation worksheet snapshot")
    context.log_detail(f"rows={len(worksheet.rows):,} | catalog_entries={len(catalog):,}")
    context.emitter.start(worksheet)

    context.log_stage("Parsing sections and synthesizing proposal lines")
    parsed = SectionTreeParser(_SubsectionProcessor(context)).parse(worksheet.rows)
    context.log_detail(
        f"sections={len(parsed.sections)} | subsections={sum(len(s.subsections) for s in parsed.sections)} "
        f"| lines={len(context.lines)}"
    )

    context.log_stage("Writing section subtotals and grand total")
    grand_total_row = context.emitter.finish()
    priced = sum(1 for line in context.lines if line.priced)
    context.log_detail(f"priced_lines={priced} | unpriced_lines={len(context.lines) - priced}")
    if parsed.unused_rows:
        context.log_detail(
            "unused_rows=" + ",".join(str(row.sheet_row) for row in parsed.unused_rows)
        )

    return ProposalResult(
        sections=parsed.sections,
        lines=list(context.lines),
        section_totals=list(context.emitter.section_totals),
        unused_rows=list(parsed.unused_rows),
        grand_total_row=grand_total_row,
        workbook=context.emitter.workbook,
    )


__all__ = ["PipelineContext", "build_proposal", "synthesize_subsection"]
