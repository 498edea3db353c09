import json

from software_updater.core.models import (
    ExecutionResult,
    ExitStatus,
    FamilyUpdateReport,
    ReportStatus,
)
from software_updater.reporting import exit_code, export_json, print_table, reports_to_json


def _result(code, output=None):
    return ExecutionResult(
        program="paru",
        command=["/usr/bin/paru", "-Sua"],
        returncode=code,
        status=ExitStatus.SUCCESS if code == 0 else ExitStatus.FAILURE,
        output=output,
        started_at="2026-01-01T00:00:00Z",
        finished_at="2026-01-01T00:00:01Z",
    )


def _reports():
    return [
        FamilyUpdateReport(
            family="aur", display_name="AUR", status=ReportStatus.SUCCESS,
            programs=["paru"], results=[_result(0, b"ok\n\xff")],
        ),
        FamilyUpdateReport(
            family="snap", display_name="Snap", status=ReportStatus.SKIPPED,
        ),
    ]


def test_exit_code():
    reports = _reports()
    assert exit_code(reports) == 0

    reports.append(
        FamilyUpdateReport(
            family="deb", display_name="Debian", status=ReportStatus.NO_PROGRAM,
            error="no available apt package manager",
        )
    )
    assert exit_code(reports) == 1


def test_exit_code_of_empty_run():
    assert exit_code([]) == 0


def test_print_table(capsys):
    print_table(_reports())
    lines = capsys.readouterr().out.splitlines()

    assert lines[0].split(" | ")[0].strip() == "Family"
    assert "AUR" in lines[2] and "paru" in lines[2] and "success" in lines[2]
    assert "skipped" in lines[3]


def test_reports_to_json_decodes_output():
    data = reports_to_json(_reports())
    assert data["ok"] is True
    first = data["families"][0]
    assert first["status"] == "success"
    assert first["results"][0]["output"] == "ok\n�"
    assert first["results"][0]["status"] == "success"


def test_export_json(tmp_path):
    target = tmp_path / "out" / "report.json"
    export_json(_reports(), target)
    data = json.loads(target.read_text())
    assert [f["family"] for f in data["families"]] == ["aur", "snap"]
