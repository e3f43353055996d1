from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Mapping, Optional

from .dimensions import PLACEHOLDER
from .worksheet import DEFAULT_SHEET


_BOOLEAN_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Runtime configuration assembled from environment variables and CLI options."""

    base_dir: Path
    worksheet_path: Optional[Path]
    worksheet_sheet: str
    rates_path: Optional[Path]
    references_path: Optional[Path]
    output_dir: Path
    output_xlsx: Path
    output_audit: Path
    placeholder: str = PLACEHOLDER
    verbose: bool = False


def _to_path(value: object | None) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value.expanduser().resolve()
    text = str(value).strip()
    if not text:
        return None
    return Path(text).expanduser().resolve()


def _flag(value: object | None) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _BOOLEAN_TRUE


def _text(value: object | None) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _namespace(cli_args: object | None) -> SimpleNamespace:
    if cli_args is None:
        return SimpleNamespace()
    if isinstance(cli_args, SimpleNamespace):
        return cli_args
    if hasattr(cli_args, "__dict__"):
        return SimpleNamespace(**{k: v for k, v in vars(cli_args).items()})
    return SimpleNamespace()


def load_config(env: Mapping[str, str], cli_args: object | None = None) -> Config:
    """Build a runtime :class:`Config` from environment variables and CLI options."""

    base_dir = Path(__file__).resolve().parents[2]
    default_output_dir = (base_dir / "outputs").resolve()

    worksheet_path = _to_path(env.get("PROPOSAL_WORKSHEET"))
    worksheet_sheet = _text(env.get("PROPOSAL_WORKSHEET_SHEET")) or DEFAULT_SHEET
    rates_path = _to_path(env.get("PROPOSAL_RATES"))
    references_path = _to_path(env.get("PROPOSAL_REFERENCES"))
    output_dir = _to_path(env.get("PROPOSAL_OUTPUT_DIR")) or default_output_dir
    output_xlsx = _to_path(env.get("PROPOSAL_OUTPUT_XLSX")) or (output_dir / "Proposal.xlsx").resolve()
    output_audit = _to_path(env.get("PROPOSAL_OUTPUT_AUDIT")) or (output_dir / "Proposal_Audit.csv").resolve()
    placeholder = _text(env.get("PROPOSAL_PLACEHOLDER")) or PLACEHOLDER
    verbose = _flag(env.get("PROPOSAL_VERBOSE"))

    cli_ns = _namespace(cli_args)
    if getattr(cli_ns, "worksheet", None):
        worksheet_path = _to_path(cli_ns.worksheet) or worksheet_path
    if getattr(cli_ns, "sheet", None):
        worksheet_sheet = _text(cli_ns.sheet) or worksheet_sheet
    if getattr(cli_ns, "rates", None):
        rates_path = _to_path(cli_ns.rates)
    if getattr(cli_ns, "references", None):
        references_path = _to_path(cli_ns.references)
    if getattr(cli_ns, "output_dir", None):
        output_dir = _to_path(cli_ns.output_dir) or output_dir
        output_xlsx = (output_dir / "Proposal.xlsx").resolve()
        output_audit = (output_dir / "Proposal_Audit.csv").resolve()
    if getattr(cli_ns, "placeholder", None):
        placeholder = _text(cli_ns.placeholder) or placeholder
    if getattr(cli_ns, "verbose", False):
        verbose = bool(cli_ns.verbose)

    return Config(
        base_dir=base_dir,
        worksheet_path=worksheet_path,
        worksheet_sheet=worksheet_sheet,
        rates_path=rates_path,
        references_path=references_path,
        output_dir=output_dir,
        output_xlsx=output_xlsx,
        output_audit=output_audit,
        placeholder=placeholder,
        verbose=verbose,
    )


def config_from_env() -> Config:
    return load_config(os.environ, None)


__all__ = ["Config", "config_from_env", "load_config"]
