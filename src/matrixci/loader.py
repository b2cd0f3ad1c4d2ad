# loader.py
from __future__ import annotations

import runpy
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .errors import ConfigError
from .matrix import validate_pipeline
from .model import JobDefinition, Pipeline
from .schema import WorkflowDoc


# ----------------------------------------------------------------------
# YAML documents
# ----------------------------------------------------------------------

def parse_document(data: Any, name: str = "pipeline") -> Pipeline:
    """Validate an already-parsed document (dict) and build a Pipeline."""
    if not isinstance(data, dict):
        raise ConfigError("Pipeline document must be a mapping", details={"source": name})

    # YAML 1.1 reads a bare `on:` key as True; keys are irrelevant unless they're ours.
    data = {str(k): v for k, v in data.items()}

    try:
        doc = WorkflowDoc.model_validate(data)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigError(
            "Invalid pipeline document",
            details={"source": name, "errors": "; ".join(problems)},
        ) from e

    pipeline = doc.to_pipeline(default_name=name)
    validate_pipeline(pipeline)
    return pipeline


def load_yaml(path: str | Path) -> Pipeline:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse YAML: {path}", details={"error": str(e)}) from e
    return parse_document(data, name=path.stem)


# ----------------------------------------------------------------------
# Python workflow files
# ----------------------------------------------------------------------

def _as_pipeline(obj: Any, name: str) -> Pipeline:
    if isinstance(obj, Pipeline):
        return obj
    if isinstance(obj, (list, tuple)) and all(isinstance(j, JobDefinition) for j in obj):
        return Pipeline(name=name, jobs=tuple(obj))
    raise ConfigError(
        "Workflow must return/define a Pipeline or a list of jobs. "
        "Define workflow() -> wf(job(...), ...) or JOBS = [job(...), ...].",
        details={"got": type(obj).__name__},
    )


def _workflow_error(path: Path, exc: Exception) -> ConfigError:
    return ConfigError(
        f"Error while executing {path.name}",
        details={"source": str(path), "error": f"{type(exc).__name__}: {exc}"},
    )


def load_python(path: str | Path) -> Pipeline:
    """
    Load a workflow from a python file path.

    The file must define either:
      - workflow() -> Pipeline | List[JobDefinition]
      - JOBS = [JobDefinition, ...]
    """
    path = Path(path)
    module_name = f"matrixci_workflow_{path.stem}"
    try:
        globals_dict = runpy.run_path(str(path), run_name=module_name)
    except ConfigError:
        raise
    except Exception as e:
        raise _workflow_error(path, e) from e

    if "workflow" in globals_dict and callable(globals_dict["workflow"]):
        try:
            obj = globals_dict["workflow"]()
        except ConfigError:
            raise
        except TypeError as e:
            if "positional argument" in str(e):
                raise ConfigError(
                    "Your workflow() is being called with arguments (name collision with the helper). "
                    "Use the 'wf' helper instead: `from matrixci import wf, job, sh` then "
                    "`def workflow(): return wf(job(...), job(...))`"
                ) from e
            raise _workflow_error(path, e) from e
        except Exception as e:
            raise _workflow_error(path, e) from e
    elif "JOBS" in globals_dict:
        obj = globals_dict["JOBS"]
    else:
        raise ConfigError(
            f"{path.name} defines neither workflow() nor JOBS",
            details={"source": str(path)},
        )

    pipeline = _as_pipeline(obj, name=path.stem)
    validate_pipeline(pipeline)
    return pipeline


def load_workflow(path: str | Path) -> Pipeline:
    """Load and validate a .py, .yml or .yaml workflow."""
    wf_path = Path(path).expanduser().resolve()
    if not wf_path.exists():
        raise ConfigError(f"Workflow file not found: {wf_path}")

    if wf_path.suffix == ".py":
        return load_python(wf_path)
    if wf_path.suffix in (".yml", ".yaml"):
        return load_yaml(wf_path)
    raise ConfigError(f"Workflow must be a .py, .yml or .yaml file, got: {wf_path.name}")
