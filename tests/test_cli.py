"""Tests for the click CLI."""

import json
import sys
import textwrap

import pytest
from click.testing import CliRunner

from matrixci.cli import cli, find_workflow_files

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="workflows use POSIX shell commands")

PASSING = """
name: demo
jobs:
  check:
    strategy:
      matrix:
        os: [linux, mac]
        channel: [stable, nightly]
    steps:
      - name: Build on ${{ matrix.os }}
        run: echo build ${{ matrix.os }} ${{ matrix.channel }}
      - run: echo lint
"""

FAILING = """
name: demo
jobs:
  check:
    strategy:
      matrix:
        os: [linux, mac]
    steps:
      - run: test "${{ matrix.os }}" != mac
      - run: echo after
"""


def _write(name, text):
    with open(name, "w", encoding="utf-8") as f:
        f.write(textwrap.dedent(text))


@pytest.fixture
def runner(monkeypatch):
    for var in ("MATRIXCI_WORKERS", "MATRIXCI_WORKDIR", "MATRIXCI_TIMEOUT", "MATRIXCI_DEBUG"):
        monkeypatch.delenv(var, raising=False)
    return CliRunner()


def test_run_success(runner):
    with runner.isolated_filesystem():
        _write("matrixci.yml", PASSING)
        result = runner.invoke(cli, ["run"])

    assert result.exit_code == 0, result.output
    assert "Job instances: 4" in result.output
    assert "check (mac, nightly): SUCCESS" in result.output
    assert "PIPELINE: SUCCESS" in result.output


def test_run_failure_writes_report(runner):
    with runner.isolated_filesystem():
        _write("ci.yml", FAILING)
        result = runner.invoke(cli, ["run", "--workflow", "ci.yml", "--workers", "1", "--json-report", "out/report.json"])
        with open("out/report.json", encoding="utf-8") as f:
            report = json.load(f)

    assert result.exit_code == 1, result.output
    assert "PIPELINE: FAILURE" in result.output

    assert report["status"] == "failure"
    by_label = {j["label"]: j for j in report["jobs"]}
    assert by_label["check (linux)"]["status"] == "success"
    assert [s["status"] for s in by_label["check (mac)"]["steps"]] == ["failure", "skipped"]


def test_invalid_workflow_exits_2(runner):
    with runner.isolated_filesystem():
        _write("ci.yml", "jobs:\n  j:\n    strategy:\n      matrix:\n        os: []\n    steps:\n      - run: x\n")
        result = runner.invoke(cli, ["run", "--workflow", "ci.yml"])

    assert result.exit_code == 2
    assert "Invalid workflow" in result.output


def test_python_job_without_steps_exits_2(runner):
    with runner.isolated_filesystem():
        _write("x_workflow.py", "from matrixci import job, wf\n\ndef workflow():\n    return wf(job(\"a\"))\n")
        result = runner.invoke(cli, ["validate"])

    assert result.exit_code == 2, result.output
    assert "Invalid workflow" in result.output
    assert "at least one step" in result.output


def test_no_workflow_found(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["run"])

    assert result.exit_code == 1
    assert "No workflow file found" in result.output


def test_multiple_workflows_found(runner):
    with runner.isolated_filesystem():
        _write("matrixci.yml", PASSING)
        _write("other_workflow.py", "JOBS = []\n")
        result = runner.invoke(cli, ["validate"])

    assert result.exit_code == 1
    assert "Multiple workflow files found" in result.output


def test_plan_lists_instances_in_order(runner):
    with runner.isolated_filesystem():
        _write("matrixci.yml", PASSING)
        result = runner.invoke(cli, ["plan"])

    assert result.exit_code == 0, result.output
    lines = [l.strip() for l in result.output.splitlines() if l.strip()[:1].isdigit()]
    assert lines == [
        "1. check (linux, stable)",
        "2. check (linux, nightly)",
        "3. check (mac, stable)",
        "4. check (mac, nightly)",
    ]


def test_validate(runner):
    with runner.isolated_filesystem():
        _write("matrixci.yml", PASSING)
        result = runner.invoke(cli, ["validate"])

    assert result.exit_code == 0
    assert "matrixci.yml: OK (1 job(s), 4 instance(s))" in result.output


def test_bad_env_config_exits_2(runner, monkeypatch):
    monkeypatch.setenv("MATRIXCI_WORKERS", "many")
    with runner.isolated_filesystem():
        _write("matrixci.yml", PASSING)
        result = runner.invoke(cli, ["validate"])

    assert result.exit_code == 2
    assert "MATRIXCI_WORKERS must be an integer" in result.output


def test_find_workflow_files(tmp_path):
    (tmp_path / "matrixci.yaml").write_text("")
    (tmp_path / "nightly_workflow.py").write_text("")
    (tmp_path / "notes.py").write_text("")

    assert [p.name for p in find_workflow_files(tmp_path)] == ["matrixci.yaml", "nightly_workflow.py"]
