"""
Unified error system for Conductor.

Every orchestration failure is expressed as a ``ConductorException`` subclass
carrying an ``ErrorContext`` (id, timestamp, severity, category, details).
Executors never let agent or routing failures escape: they are converted into
failed ``AgentResult`` objects via ``error_type_of``.  Only faults in the
orchestration logic itself propagate to callers.

Taxonomy:
- DependencyUnmet        a workflow step's predecessor is missing or failed
- UnknownTaskType        task type has no route
- UnknownAgentType       agent type is not one of the closed set
- UnknownOperation       agent does not expose the requested operation
- AgentExecutionError    the agent operation raised or reported failure
- ValidationError        page-context / allow-list mismatch, bad input
"""

import logging
import traceback
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


# ============================================================================
# Enums
# ============================================================================

class ErrorSeverity(Enum):
    """Error severity levels."""
    CRITICAL = "critical"      # Orchestration failure, run aborted
    ERROR = "error"            # Operation failure, result degraded
    WARNING = "warning"        # Rejected input or fallback taken
    INFO = "info"              # Informational, no action needed


class ErrorCategory(Enum):
    """Error categories for classification and routing."""
    VALIDATION = "validation"      # Input / page-context validation failure
    ROUTING = "routing"            # Task, agent or operation could not be resolved
    DEPENDENCY = "dependency"      # Workflow dependency gating
    EXECUTION = "execution"        # Agent operation failure
    TIMEOUT = "timeout"            # Operation exceeded its budget
    INTERNAL = "internal"          # Orchestration fault


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ErrorContext:
    """Rich error context with metadata."""
    error_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    severity: ErrorSeverity = ErrorSeverity.ERROR
    category: ErrorCategory = ErrorCategory.INTERNAL
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None
    is_recoverable: bool = True
    http_status: int = 500

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (excludes stack trace)."""
        return {
            "error_id": self.error_id,
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.value,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
            "is_recoverable": self.is_recoverable,
            "http_status": self.http_status,
        }


# ============================================================================
# Exception Hierarchy
# ============================================================================

class ConductorException(Exception):
    """Base exception for all Conductor errors with rich context."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: Optional[Dict[str, Any]] = None,
        is_recoverable: bool = True,
        http_status: int = 500,
    ):
        self.message = message
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.is_recoverable = is_recoverable
        self.http_status = http_status
        self.context = ErrorContext(
            severity=severity,
            category=category,
            message=message,
            details=self.details,
            stack_trace=traceback.format_exc(),
            is_recoverable=is_recoverable,
            http_status=http_status,
        )
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    @property
    def error_type(self) -> str:
        """Taxonomy name recorded on failed results."""
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        data = self.context.to_dict()
        data["error_type"] = self.error_type
        return data


# ----------------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------------

class ValidationError(ConductorException):
    """Validation error (page-context allow-list mismatch, malformed input)."""
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        kwargs.setdefault("severity", ErrorSeverity.WARNING)
        kwargs.setdefault("http_status", 400)
        super().__init__(message, **kwargs)


class WorkflowValidationError(ValidationError):
    """Workflow definition is structurally invalid."""
    pass


class CycleDetectedError(WorkflowValidationError):
    """Raised when workflow dependencies form a cycle or a self-reference."""

    def __init__(self, cycle: List[str], **kwargs):
        self.cycle = cycle
        path = " -> ".join(cycle)
        kwargs.setdefault("details", {"cycle": list(cycle)})
        super().__init__(f"Dependency cycle detected: {path}", **kwargs)


class ConfigurationError(ValidationError):
    """Invalid runtime configuration."""
    pass


# ----------------------------------------------------------------------------
# Routing
# ----------------------------------------------------------------------------

class RoutingError(ConductorException):
    """Base routing error: resolved without invoking any agent."""
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.ROUTING)
        kwargs.setdefault("severity", ErrorSeverity.WARNING)
        kwargs.setdefault("http_status", 400)
        kwargs.setdefault("is_recoverable", False)
        super().__init__(message, **kwargs)


class UnknownTaskType(RoutingError):
    """Task type has no entry in the dispatch table."""
    def __init__(self, task_type: str, **kwargs):
        self.task_type = task_type
        super().__init__(f"Unknown task type: {task_type}", **kwargs)


class UnknownAgentType(RoutingError):
    """Agent type is not part of the closed agent set."""
    def __init__(self, agent_type: str, **kwargs):
        self.agent_type = agent_type
        super().__init__(f"Unknown agent type: {agent_type}", **kwargs)


class UnknownOperation(RoutingError):
    """Agent does not expose the requested operation."""
    def __init__(self, agent_type: str, operation: str, **kwargs):
        self.agent_type = agent_type
        self.operation = operation
        super().__init__(f"Unknown {agent_type} operation: {operation}", **kwargs)


class AgentUnavailableError(RoutingError):
    """Registry could not produce any usable agent (fallback failed too)."""
    def __init__(self, agent_type: str, **kwargs):
        self.agent_type = agent_type
        kwargs.setdefault("http_status", 503)
        super().__init__(f"No agent available for type: {agent_type}", **kwargs)


# ----------------------------------------------------------------------------
# Execution
# ----------------------------------------------------------------------------

class DependencyUnmet(ConductorException):
    """A workflow step's declared dependency is missing or unsuccessful."""
    def __init__(self, operation: str, missing: Optional[List[str]] = None, **kwargs):
        self.operation = operation
        self.missing = list(missing or [])
        kwargs.setdefault("category", ErrorCategory.DEPENDENCY)
        kwargs.setdefault("details", {"missing": self.missing})
        super().__init__(f"Dependencies not met for step: {operation}", **kwargs)


class AgentExecutionError(ConductorException):
    """The agent operation raised or returned an unsuccessful result."""
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.EXECUTION)
        kwargs.setdefault("http_status", 502)
        super().__init__(message, **kwargs)


# ============================================================================
# Utilities
# ============================================================================

def error_type_of(error: BaseException) -> str:
    """Return the taxonomy name to record for *error* on a failed result."""
    if isinstance(error, ConductorException):
        return error.error_type
    return AgentExecutionError.__name__


def error_message_of(error: BaseException) -> str:
    """Plain message for *error*, falling back to its class name."""
    text = str(error)
    return text if text else type(error).__name__


def get_exception_hierarchy() -> Dict[str, List[str]]:
    """Map each exception class name to its direct subclasses."""
    hierarchy: Dict[str, List[str]] = {}

    def _walk(cls: type) -> None:
        children = sorted(sub.__name__ for sub in cls.__subclasses__())
        hierarchy[cls.__name__] = children
        for sub in cls.__subclasses__():
            _walk(sub)

    _walk(ConductorException)
    return hierarchy
