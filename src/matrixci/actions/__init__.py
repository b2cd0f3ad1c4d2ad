from .builtin import default_registry
from .registry import ActionContext, ActionRegistry, LocalStepRunner, normalize

__all__ = ["ActionContext", "ActionRegistry", "LocalStepRunner", "default_registry", "normalize"]
