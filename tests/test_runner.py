"""Tests for the command-line batch runner."""

import json

import pytest

from src.overuse.exceptions import ConfigurationError
from src.clients.batch import runner
from src.clients.batch.controller import BatchRunController
from src.clients.batch.runner import ExitCode, exit_code_for, load_properties, main
from src.clients.batch.schemas import RunStatus, RunSummary
from src.clients.reconciliation.engine import ReconciliationEngine
from src.clients.reconciliation.periods import parse_period
from src.overuse.sessions.orchestrator import SessionOrchestrator


def _summary(status=RunStatus.COMPLETED, processed=0, succeeded=0):
    return RunSummary(
        run_id="r",
        period="Jul-Aug",
        status=status,
        processed=processed,
        succeeded=succeeded,
        failed=processed - succeeded,
    )


def test_load_properties_list_and_wrapped(tmp_path):
    flat = tmp_path / "props.json"
    flat.write_text(json.dumps([{"name": "Aribau 10", "rooms": 2, "unitCode": "A-10"}]), encoding="utf-8")
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"properties": [{"name": "Llull 2"}]}), encoding="utf-8")

    props = load_properties(flat)
    assert props[0].room_count == 2
    assert props[0].unit_code == "A-10"
    assert [p.name for p in load_properties(wrapped)] == ["Llull 2"]


def test_load_properties_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_properties(tmp_path / "missing.json")
    empty = tmp_path / "empty.json"
    empty.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_properties(empty)


@pytest.mark.parametrize(
    "summary,expected",
    [
        (_summary(processed=2, succeeded=2), ExitCode.SUCCESS),
        (_summary(processed=0), ExitCode.SUCCESS),
        (_summary(processed=3, succeeded=2), ExitCode.PARTIAL_FAILURE),
        (_summary(RunStatus.STOPPED_EARLY, processed=1, succeeded=1), ExitCode.PARTIAL_FAILURE),
        (_summary(processed=2, succeeded=0), ExitCode.TOTAL_FAILURE),
        (_summary(RunStatus.FAILED), ExitCode.TOTAL_FAILURE),
    ],
)
def test_exit_code_for(summary, expected):
    assert exit_code_for(summary) == expected


def test_main_bad_period_is_usage_error(tmp_path, capsys):
    props = tmp_path / "props.json"
    props.write_text(json.dumps([{"name": "Aribau 10"}]), encoding="utf-8")
    assert main(["--properties", str(props), "--period", "Jul-Sep", "--log-level", "WARNING"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_main_missing_file_is_usage_error(tmp_path):
    assert main(["-p", str(tmp_path / "nope.json"), "--period", "Jul-Aug", "--log-level", "WARNING"]) == 1


def test_run_requires_dashboard_access(monkeypatch):
    from src.overuse.config import OveruseSettings

    monkeypatch.setattr(runner, "get_settings", lambda: OveruseSettings(_env_file=None, DASHBOARD_EMAIL=""))
    with pytest.raises(ConfigurationError):
        runner.run([], parse_period("Jul-Aug"))


def test_main_writes_summary(tmp_path, monkeypatch, settings, fake_factory_cls, fake_extractor_cls,
                             recording_sleep, july_august_bills):
    props = tmp_path / "props.json"
    props.write_text(json.dumps([{"name": "Aribau 10", "rooms": 1}]), encoding="utf-8")
    out = tmp_path / "summary.json"
    controller = BatchRunController(
        SessionOrchestrator(fake_factory_cls()),
        fake_extractor_cls({"Aribau 10": [july_august_bills]}),
        ReconciliationEngine(),
        sleep=recording_sleep,
    )
    monkeypatch.setattr(runner, "get_settings", lambda: settings)
    monkeypatch.setattr(runner, "build_controller", lambda s: controller)

    code = main(["-p", str(props), "--period", "Jul-Aug", "-o", str(out), "--log-level", "WARNING"])

    assert code == ExitCode.SUCCESS
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["status"] == "completed"
    assert data["outcomes"][0]["overuse_amount"] == 75.75
