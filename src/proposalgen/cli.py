import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .config import Config
from .config import load_config as load_runtime_config
from .pipeline import build_proposal
from .rates import RateCatalog
from .reporting import make_summary_text, write_audit
from .worksheet import DrawingReferences, load_worksheet

BASE_DIR = Path(__file__).resolve().parents[2]

load_dotenv(BASE_DIR / ".env")

logger = logging.getLogger(__name__)


def run(runtime_config: Optional[Config] = None) -> int:
    runtime_cfg = runtime_config or load_runtime_config(os.environ, None)

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    def log_detail(message: str) -> None:
        logger.info("           %s", message)

    if runtime_cfg.worksheet_path is None:
        logger.error("No calculation worksheet configured (set PROPOSAL_WORKSHEET or pass --worksheet)")
        return 2

    log_detail(f"worksheet={runtime_cfg.worksheet_path} | sheet={runtime_cfg.worksheet_sheet}")
    log_detail(f"python_version={sys.version.split()[0]} | cwd={Path.cwd()}")
    worksheet = load_worksheet(runtime_cfg.worksheet_path, runtime_cfg.worksheet_sheet)

    catalog = RateCatalog()
    if runtime_cfg.rates_path is not None:
        catalog = RateCatalog.from_path(runtime_cfg.rates_path)
    else:
        log_detail("no rate catalog configured; every line will be unpriced")

    references = None
    if runtime_cfg.references_path is not None:
        references = DrawingReferences.from_path(runtime_cfg.references_path)
        log_detail(f"drawing_references={len(references.entries):,}")

    result = build_proposal(
        worksheet,
        catalog=catalog,
        references=references,
        placeholder=runtime_cfg.placeholder,
    )

    runtime_cfg.output_xlsx.parent.mkdir(parents=True, exist_ok=True)
    result.workbook.save(runtime_cfg.output_xlsx)
    write_audit(result, runtime_cfg.output_audit)
    log_detail(f"xlsx={runtime_cfg.output_xlsx}")
    log_detail(f"audit_csv={runtime_cfg.output_audit}")

    for row in result.unused_rows:
        logger.debug("unused row %d: %s", row.sheet_row, row.particulars or row.marker or "")

    print(make_summary_text(result))
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a cost proposal from a calculation worksheet")
    parser.add_argument("--worksheet", help="Path to the calculation worksheet (.xlsx or .csv)")
    parser.add_argument("--sheet", help="Worksheet tab name inside the workbook")
    parser.add_argument("--rates", help="Rate catalog CSV/XLSX")
    parser.add_argument("--references", help="Drawing reference table CSV/XLSX")
    parser.add_argument("--output-dir", help="Directory for generated outputs")
    parser.add_argument("--placeholder", help="Token written where a value is missing")
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase logging verbosity")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    runtime_cfg = load_runtime_config(os.environ, args)
    log_level = logging.DEBUG if runtime_cfg.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")
    try:
        return run(runtime_config=runtime_cfg)
    except Exception:  # pragma: no cover - defensive
        logger.exception("Fatal error during proposal generation")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
