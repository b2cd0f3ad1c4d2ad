from .executor import execute_job
from .loader import load_workflow
from .matrix import expand, expand_pipeline
from .model import JobDefinition, Pipeline, PipelineResult, Step
from .runner import run_pipeline

# Imported last: binding the `matrix` DSL function after the `.matrix`
# submodule is loaded keeps the submodule from shadowing it.
from .dsl import job, sh, step, matrix, wf

__all__ = [
    "job", "sh", "step", "matrix", "wf",
    "execute_job", "expand", "expand_pipeline", "load_workflow", "run_pipeline",
    "JobDefinition", "Pipeline", "PipelineResult", "Step",
]
