from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .config import load_config
from .cli import run as run_pipeline


@dataclass
class ProposalOptions:
    worksheet: Optional[Path] = None
    sheet: Optional[str] = None
    rates: Optional[Path] = None
    references: Optional[Path] = None
    output_dir: Optional[Path] = None
    placeholder: Optional[str] = None


def generate_proposal(options: ProposalOptions) -> Dict[str, Path]:
    """Programmatic interface to build the proposal and return artifact paths.

    Returns a dict with keys: xlsx, audit_csv.
    """
    import os

    env = dict(os.environ)
    if options.worksheet:
        env["PROPOSAL_WORKSHEET"] = str(options.worksheet)
    if options.sheet:
        env["PROPOSAL_WORKSHEET_SHEET"] = options.sheet
    if options.rates:
        env["PROPOSAL_RATES"] = str(options.rates)
    if options.references:
        env["PROPOSAL_REFERENCES"] = str(options.references)
    if options.output_dir:
        env["PROPOSAL_OUTPUT_DIR"] = str(options.output_dir)
    if options.placeholder:
        env["PROPOSAL_PLACEHOLDER"] = options.placeholder

    cfg = load_config(env, None)
    rc = run_pipeline(runtime_config=cfg)
    if rc != 0:
        raise RuntimeError(f"Proposal run failed with code {rc}")
    return {
        "xlsx": cfg.output_xlsx,
        "audit_csv": cfg.output_audit,
    }
