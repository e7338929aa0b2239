"""codeagent - apply model-proposed file operations inside a sandboxed directory."""

from .agent import AgentResult, CodeAgent
from .applier import apply_operations, apply_operations_async
from .operations import CreateOperation, EditOperation, validate_operation
from .safe_paths import safe_resolve
from .store import SandboxedStore
from .types import ApplyReport, FileOutcome, InvalidOperation, StoreError

__version__ = "0.1.0"

__all__ = [
    "AgentResult",
    "ApplyReport",
    "CodeAgent",
    "CreateOperation",
    "EditOperation",
    "FileOutcome",
    "InvalidOperation",
    "SandboxedStore",
    "StoreError",
    "apply_operations",
    "apply_operations_async",
    "safe_resolve",
    "validate_operation",
]
