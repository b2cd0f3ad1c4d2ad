"""Tests for matrix expansion, validation and interpolation."""

import itertools
import types

import pytest

from matrixci.dsl import job, matrix, sh, step
from matrixci.errors import ConfigError
from matrixci.matrix import (
    count,
    expand,
    expand_pipeline,
    plan,
    render,
    render_params,
    validate_pipeline,
)
from matrixci.model import Axis, JobDefinition, JobInstance, Matrix, Pipeline


def _job(m, name="j"):
    return job(name, sh("noop", "true"), matrix=m)


# =============================================================================
# EXPANSION
# =============================================================================


def test_expansion_is_cartesian_product_in_declaration_order(ci_job):
    instances = list(expand(ci_job))

    assert [i.values for i in instances] == [
        ("A", "stable"),
        ("A", "nightly"),
        ("B", "stable"),
        ("B", "nightly"),
    ]
    assert [i.index for i in instances] == [0, 1, 2, 3]
    assert instances[0].assignment == (("os", "A"), ("toolchain", "stable"))
    assert instances[3].key == ("check", "B", "nightly")
    assert instances[3].label == "check (B, nightly)"


@pytest.mark.parametrize("sizes", [(1,), (3,), (2, 3), (2, 1, 4), (3, 3, 2, 2)])
def test_instance_count_is_product_of_axis_sizes(sizes):
    m = matrix(**{f"ax{n}": [f"v{k}" for k in range(size)] for n, size in enumerate(sizes)})
    j = _job(m)
    instances = list(expand(j))

    expected = 1
    for size in sizes:
        expected *= size
    assert len(instances) == expected
    assert len({i.key for i in instances}) == expected
    assert count(j) == expected


def test_expansion_is_deterministic_and_restartable(ci_job):
    first = list(expand(ci_job))
    second = list(expand(ci_job))
    assert first == second


def test_expand_is_lazy():
    # 10^10 combinations: only works if nothing is materialized
    m = matrix(**{f"ax{n}": [str(k) for k in range(10)] for n in range(10)})
    j = _job(m)

    gen = expand(j)
    assert isinstance(gen, types.GeneratorType)
    head = list(itertools.islice(gen, 3))
    assert [i.values[-1] for i in head] == ["0", "1", "2"]
    assert count(j) == 10 ** 10


def test_job_without_matrix_runs_once():
    instances = list(expand(_job(Matrix())))
    assert len(instances) == 1
    assert instances[0].assignment == ()
    assert instances[0].label == "j"


def test_exclude_drops_matching_combinations():
    m = matrix(os=["A", "B"], toolchain=["stable", "nightly"], exclude=[{"os": "B", "toolchain": "nightly"}])
    j = _job(m)

    assert [i.values for i in expand(j)] == [("A", "stable"), ("A", "nightly"), ("B", "stable")]
    assert count(j) == 3


def test_partial_exclude_drops_every_match():
    m = matrix(os=["A", "B"], toolchain=["stable", "nightly"], exclude=[{"os": "A"}])
    assert [i.values for i in expand(_job(m))] == [("B", "stable"), ("B", "nightly")]


def test_pipeline_indices_continue_across_jobs():
    p = Pipeline(
        name="p",
        jobs=(
            _job(matrix(os=["A", "B"]), name="first"),
            _job(matrix(py=["3.11", "3.12", "3.13"]), name="second"),
        ),
    )
    instances = list(expand_pipeline(p))

    assert [(i.job, i.index) for i in instances] == [
        ("first", 0),
        ("first", 1),
        ("second", 2),
        ("second", 3),
        ("second", 4),
    ]


# =============================================================================
# VALIDATION
# =============================================================================


def test_empty_axis_is_config_error():
    with pytest.raises(ConfigError, match="has no values"):
        list(expand(_job(Matrix(axes=(Axis("os", ()),)))))


def test_duplicate_axis_names_is_config_error():
    m = Matrix(axes=(Axis("os", ("A",)), Axis("os", ("B",))))
    with pytest.raises(ConfigError, match="Duplicate matrix axis"):
        list(expand(_job(m)))


def test_duplicate_values_is_config_error():
    m = Matrix(axes=(Axis("os", ("A", "A")),))
    with pytest.raises(ConfigError) as exc:
        list(expand(_job(m)))
    assert exc.value.details["duplicates"] == ["A"]


def test_exclude_with_unknown_axis_is_config_error():
    m = Matrix(axes=(Axis("os", ("A",)),), exclude=({"arch": "x86"},))
    with pytest.raises(ConfigError, match="unknown axis"):
        list(expand(_job(m)))


def test_exclude_with_unknown_value_is_config_error():
    m = Matrix(axes=(Axis("os", ("A",)),), exclude=({"os": "Z"},))
    with pytest.raises(ConfigError, match="is not a value"):
        list(expand(_job(m)))


def test_empty_step_list_is_config_error():
    p = Pipeline(name="p", jobs=(JobDefinition(name="empty", steps=()),))
    with pytest.raises(ConfigError, match="has no steps"):
        validate_pipeline(p)


def test_job_helper_without_steps_is_config_error():
    with pytest.raises(ConfigError, match="at least one step"):
        job("empty")


def test_exclude_removing_every_combination_is_config_error():
    m = matrix(os=["A", "B"], exclude=[{"os": "A"}, {"os": "B"}])
    with pytest.raises(ConfigError, match="excludes every combination"):
        validate_pipeline(Pipeline(name="p", jobs=(_job(m),)))


def test_pipeline_without_jobs_is_config_error():
    with pytest.raises(ConfigError, match="defines no jobs"):
        validate_pipeline(Pipeline(name="p", jobs=()))


def test_duplicate_job_names_is_config_error():
    p = Pipeline(name="p", jobs=(_job(Matrix(), "x"), _job(Matrix(), "x")))
    with pytest.raises(ConfigError, match="Duplicate job names"):
        validate_pipeline(p)


def test_unknown_matrix_reference_is_config_error():
    j = job("j", step("Build", "run", run="make ${{ matrix.arch }}"), matrix=matrix(os=["A"]))
    with pytest.raises(ConfigError) as exc:
        plan(Pipeline(name="p", jobs=(j,)))
    assert "matrix.arch" in exc.value.message
    assert exc.value.step == "Build"


# =============================================================================
# INTERPOLATION
# =============================================================================


def test_render_substitutes_axis_values():
    inst = JobInstance(job="j", assignment=(("os", "ubuntu"), ("rust", "nightly")))

    assert render("runs on ${{ matrix.os }}", inst) == "runs on ubuntu"
    assert render("${{matrix.rust}}", inst) == "nightly"
    assert render("no refs", inst) == "no refs"
    assert render_params({"toolchain": "${{ matrix.rust }}", "x": "1"}, inst) == {
        "toolchain": "nightly",
        "x": "1",
    }
