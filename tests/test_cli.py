from __future__ import annotations

from pathlib import Path

import allure
from click.testing import CliRunner

from outreach_queue.main import outreach_queue

pytestmark = [
    allure.epic("Task Service"),
    allure.feature("CLI"),
]


def _invoke(runner: CliRunner, *args: str) -> str:
    result = runner.invoke(outreach_queue, list(args))
    assert result.exit_code == 0, result.output
    return result.output


def _seeded(tmp_path: Path) -> tuple[CliRunner, str]:
    runner = CliRunner()
    db_path = str(tmp_path / "cli.db")
    _invoke(runner, "db", "init", "--db-path", db_path)
    output = _invoke(
        runner,
        "demo",
        "seed",
        "--db-path",
        db_path,
        "--tasks-per-language",
        "4",
    )
    assert "tasks=16" in output
    return runner, db_path


def test_cli_allocate_work_and_submit(tmp_path: Path) -> None:
    runner, db_path = _seeded(tmp_path)

    output = _invoke(
        runner,
        "tasks",
        "allocate",
        "--db-path",
        db_path,
        "--as-user",
        "demo-lead",
        "--language",
        "Hindi",
        "--bu",
        "No Such BU",
    )
    assert "matched=0 allocated=0" in output

    output = _invoke(
        runner,
        "tasks",
        "allocate",
        "--db-path",
        db_path,
        "--as-user",
        "demo-lead",
        "--language",
        "Hindi",
    )
    assert "matched=4 allocated=4" in output

    output = _invoke(runner, "tasks", "next", "--db-path", db_path, "--as-user", "demo-agent-1")
    assert "Status: in_progress" in output
    task_id = output.splitlines()[0].removeprefix("Task: ").strip()

    output = _invoke(
        runner,
        "tasks",
        "submit",
        "--db-path",
        db_path,
        "--as-user",
        "demo-agent-1",
        "--task-id",
        task_id,
        "--call-status",
        "Not Reachable",
    )
    assert "status=not_reachable" in output
    assert "outcome=Unsuccessful" in output

    output = _invoke(
        runner,
        "tasks",
        "show",
        "--db-path",
        db_path,
        "--as-user",
        "demo-lead",
        "--task-id",
        task_id,
    )
    assert "Call log: Not Reachable" in output
    assert "History: 3" in output

    output = _invoke(runner, "tasks", "stats", "--db-path", db_path, "--as-user", "demo-admin")
    assert "Tasks: 16" in output
    assert "Not Reachable: 1" in output


def test_cli_overview_and_bulk_status(tmp_path: Path) -> None:
    runner, db_path = _seeded(tmp_path)
    output = _invoke(
        runner,
        "tasks",
        "allocate",
        "--db-path",
        db_path,
        "--as-user",
        "demo-lead",
        "--language",
        "all",
        "--count",
        "6",
    )
    # Kannada has no capable demo agent; its round-robin share is skipped.
    assert "matched=6 allocated=4" in output
    assert "skipped language=kannada tasks=2" in output

    output = _invoke(runner, "tasks", "overview", "--db-path", db_path, "--as-user", "demo-lead")
    assert "Unassigned: 12" in output
    assert "Kannada: 4" in output

    output = _invoke(
        runner,
        "tasks",
        "bulk-status",
        "--db-path",
        db_path,
        "--as-user",
        "demo-lead",
        "--task-id",
        "demo-farmer-hindi-1-call",
        "--task-id",
        "demo-farmer-missing-call",
        "--status",
        "completed",
    )
    assert "successful=1 failed=1" in output
    assert "code=not_found" in output


def test_cli_reports_task_errors(tmp_path: Path) -> None:
    runner, db_path = _seeded(tmp_path)

    result = runner.invoke(
        outreach_queue,
        [
            "tasks",
            "allocate",
            "--db-path",
            db_path,
            "--as-user",
            "demo-agent-1",
            "--language",
            "Hindi",
        ],
    )

    assert result.exit_code != 0
    assert "forbidden" in result.output

    result = runner.invoke(
        outreach_queue,
        ["tasks", "show", "--db-path", db_path, "--task-id", "bulk", "--as-user", "demo-lead"],
    )
    assert result.exit_code != 0
