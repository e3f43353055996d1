from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

from proposalgen.config import config_from_env, load_config
from pytest import MonkeyPatch


def test_defaults_without_env_or_cli() -> None:
    cfg = load_config({}, None)

    assert cfg.worksheet_path is None
    assert cfg.rates_path is None
    assert cfg.worksheet_sheet == "Calculations Sheet"
    assert cfg.placeholder == "##"
    assert cfg.verbose is False
    assert cfg.output_dir == (cfg.base_dir / "outputs").resolve()
    assert cfg.output_xlsx.name == "Proposal.xlsx"
    assert cfg.output_audit.name == "Proposal_Audit.csv"


def test_env_values_are_read(tmp_path: Path) -> None:
    env = {
        "PROPOSAL_WORKSHEET": str(tmp_path / "calc.xlsx"),
        "PROPOSAL_WORKSHEET_SHEET": "Takeoff",
        "PROPOSAL_RATES": str(tmp_path / "rates.csv"),
        "PROPOSAL_OUTPUT_DIR": str(tmp_path / "out"),
        "PROPOSAL_OUTPUT_AUDIT": str(tmp_path / "audit.csv"),
        "PROPOSAL_PLACEHOLDER": "TBD",
        "PROPOSAL_VERBOSE": "yes",
    }
    cfg = load_config(env, None)

    assert cfg.worksheet_path == (tmp_path / "calc.xlsx").resolve()
    assert cfg.worksheet_sheet == "Takeoff"
    assert cfg.rates_path == (tmp_path / "rates.csv").resolve()
    assert cfg.output_xlsx == (tmp_path / "out" / "Proposal.xlsx").resolve()
    assert cfg.output_audit == (tmp_path / "audit.csv").resolve()
    assert cfg.placeholder == "TBD"
    assert cfg.verbose is True


def test_cli_overrides_env(tmp_path: Path) -> None:
    env = {
        "PROPOSAL_WORKSHEET": str(tmp_path / "env.xlsx"),
        "PROPOSAL_OUTPUT_AUDIT": str(tmp_path / "audit.csv"),
    }
    args = SimpleNamespace(
        worksheet=str(tmp_path / "cli.csv"),
        sheet=None,
        rates=None,
        references=str(tmp_path / "refs.csv"),
        output_dir=str(tmp_path / "cli-out"),
        placeholder="??",
        verbose=True,
    )
    cfg = load_config(env, args)

    assert cfg.worksheet_path == (tmp_path / "cli.csv").resolve()
    assert cfg.references_path == (tmp_path / "refs.csv").resolve()
    assert cfg.output_dir == (tmp_path / "cli-out").resolve()
    assert cfg.output_audit == (tmp_path / "cli-out" / "Proposal_Audit.csv").resolve()
    assert cfg.placeholder == "??"
    assert cfg.verbose is True


def test_blank_env_values_fall_back(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("PROPOSAL_WORKSHEET", "  ")
    monkeypatch.setenv("PROPOSAL_PLACEHOLDER", "")
    monkeypatch.delenv("PROPOSAL_WORKSHEET_SHEET", raising=False)
    cfg = config_from_env()

    assert cfg.worksheet_path is None
    assert cfg.placeholder == "##"
    assert cfg.worksheet_sheet == "Calculations Sheet"
