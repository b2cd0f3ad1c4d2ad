# matrixci_workflow.py
# Workflow for checking matrixci itself across Python versions.
from __future__ import annotations

from matrixci import job, matrix, sh, step, wf


def workflow():
    return wf(
        job(
            "check",
            step("Checkout", "checkout"),
            step("Python ${{ matrix.python }}", "tool", tool="python${{ matrix.python }}"),
            sh("Install package", "python${{ matrix.python }} -m pip install -e '.[test]'"),
            step("Ruff check", "lint", tool="ruff", args="check", files="src/ tests/"),
            step("Ruff format check", "lint", tool="ruff", args="format --check", files="src/ tests/"),
            sh("Run pytest", "python${{ matrix.python }} -m pytest -q"),
            matrix=matrix(python=["3.11", "3.12"]),
        ),
        name="matrixci",
    )
