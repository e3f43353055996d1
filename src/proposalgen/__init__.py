"""Cost proposal generation from a construction calculation worksheet."""

from .models import ProposalResult, SynthesizedLine
from .pipeline import build_proposal
from .rates import RateCatalog, RateResolver
from .worksheet import DrawingReferences, load_worksheet

__all__ = [
    "DrawingReferences",
    "ProposalResult",
    "RateCatalog",
    "RateResolver",
    "SynthesizedLine",
    "build_proposal",
    "load_worksheet",
]
