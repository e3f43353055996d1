"""Domain shorthand expansion applied to particulars before extraction."""
from __future__ import annotations

import re
from typing import List, Tuple

# (abbreviation, expansion, case_sensitive). Order only matters between
# entries of equal length; longer abbreviations are always tried first.
ABBREVIATIONS: List[Tuple[str, str, bool]] = [
    ("W.W.M.", "welded wire mesh", False),
    ("W.W.M", "welded wire mesh", False),
    ("WWM", "welded wire mesh", False),
    ("SOG", "Slab on grade", True),
    ("ROG", "Ramp on grade", True),
    ("SOMD", "Slab on metal deck", True),
    ("Exc", "Excavation", False),
    ("Exist", "Existing", False),
    ("Conc", "Concrete", False),
    ("Fdn", "Foundation", False),
    ("Ftg", "Footing", False),
    ("Bsmt", "Basement", False),
    ("SF", "Strip footing", True),
    ("FW", "Foundation wall", True),
    ("RW", "Retaining wall", True),
    ("Ht", "Height", False),
    ("H", "Height", True),
]

# Extra lookahead per abbreviation; "H-pile" names a steel section.
NOT_FOLLOWED_BY = {"H": "-"}


def _compile(entries: List[Tuple[str, str, bool]]):
    ordered = sorted(enumerate(entries), key=lambda pair: (-len(pair[1][0]), pair[0]))
    parts = []
    replacements = {}
    for position, (abbreviation, expansion, case_sensitive) in ordered:
        name = f"a{position}"
        body = re.escape(abbreviation)
        if not case_sensitive:
            # "Exc." and "Exc" both expand
            if not abbreviation.endswith("."):
                body += r"\.?"
            body = f"(?i:{body})"
        if abbreviation in NOT_FOLLOWED_BY:
            body += f"(?!{re.escape(NOT_FOLLOWED_BY[abbreviation])})"
        parts.append(f"(?P<{name}>{body})")
        replacements[name] = expansion
    pattern = re.compile(r"(?<![\w.])(?:" + "|".join(parts) + r")(?!\w)")
    return pattern, replacements


_PATTERN, _REPLACEMENTS = _compile(ABBREVIATIONS)


def normalize_text(text: str) -> str:
    """Expand shorthand in a single left-to-right pass.

    >>> normalize_text('(4" thick) SOG w/6x6 W.W.M. @ cellar FL')
    '(4" thick) Slab on grade w/6x6 welded wire mesh @ cellar FL'
    """
    if not text:
        return ""
    return _PATTERN.sub(lambda match: _REPLACEMENTS[match.lastgroup], text)


__all__ = ["ABBREVIATIONS", "normalize_text"]
