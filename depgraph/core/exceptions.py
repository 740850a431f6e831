"""
Structured Exception System for the dependency graph engine
===========================================================

Exception hierarchy with severity, category, context and causation data.
Every exception logs itself once on construction under
``depgraph.errors.<category>`` so failures are visible even when a caller
decides to swallow them.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(str, Enum):
    """Error severity levels for categorization."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error categories for classification."""
    CONFIGURATION = "configuration"
    DEPENDENCY = "dependency"
    PROCESSING = "processing"
    VALIDATION = "validation"
    TIMEOUT = "timeout"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for errors."""
    component: str
    operation: str
    start_time: float = field(default_factory=time.time)
    artifact_key: Optional[str] = None
    context_data: Dict[str, Any] = field(default_factory=dict)

    def add_diagnostic_data(self, key: str, value: Any) -> None:
        """Add diagnostic data to the context."""
        self.context_data[key] = value

    def add_context_data(self, data: Dict[str, Any]) -> None:
        """Add multiple context data items."""
        self.context_data.update(data)

    def get_duration(self) -> float:
        """Get the duration since context creation."""
        return time.time() - self.start_time


class DependencyGraphException(Exception):
    """
    Base exception class for the dependency graph engine.

    Carries a category, severity, optional context and the causing exception.
    """

    default_category = ErrorCategory.SYSTEM
    default_severity = ErrorSeverity.MEDIUM

    def __init__(
        self,
        message: str,
        severity: Optional[ErrorSeverity] = None,
        category: Optional[ErrorCategory] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
        recoverable: bool = True,
        component: Optional[str] = None,
    ):
        super().__init__(message)

        self.error_id = str(uuid.uuid4())
        self.message = message
        self.severity = severity or self.default_severity
        self.category = category or self.default_category
        self.timestamp = time.time()

        self.component = component or (context.component if context else "depgraph")
        self.context = context or ErrorContext(component=self.component, operation="unknown")
        self.cause = cause
        self.recoverable = recoverable

        if cause is not None:
            self.__cause__ = cause

        self._log_error()

    @property
    def error_code(self) -> str:
        return f"{self.category.value.upper()}_{type(self).__name__}"

    def _log_error(self):
        """Log the error with structured information."""
        logger = logging.getLogger(f"depgraph.errors.{self.category.value}")

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "component": self.context.component,
            "operation": self.context.operation,
            "recoverable": self.recoverable,
        }
        if self.context.artifact_key:
            log_data["artifact_key"] = self.context.artifact_key
        if self.cause is not None:
            log_data["cause"] = repr(self.cause)

        # Recoverable failures are routine during resolution
        level = logging.WARNING if self.recoverable else logging.ERROR
        logger.log(level, self.message, extra={"extra_fields": log_data})

    def add_context_data(self, data: Dict[str, Any]) -> None:
        self.context.add_context_data(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_id": self.error_id,
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "timestamp": self.timestamp,
            "recoverable": self.recoverable,
            "context": {
                "component": self.context.component,
                "operation": self.context.operation,
                "artifact_key": self.context.artifact_key,
                "duration": self.context.get_duration(),
                "context_data": self.context.context_data,
            },
            "cause": str(self.cause) if self.cause else None,
        }


class ModelLoadError(DependencyGraphException):
    """The model loader failed for a referenced coordinate."""

    default_category = ErrorCategory.DEPENDENCY

    def __init__(self, message: str, ref: Any = None, **kwargs):
        self.ref = ref
        if ref is not None and "context" not in kwargs:
            kwargs["context"] = ErrorContext(
                component=kwargs.pop("component", "model_loader"),
                operation="load_model",
                artifact_key=str(ref),
            )
        super().__init__(message, **kwargs)


class ResolutionError(DependencyGraphException):
    """Resolution of a graph could not complete."""

    default_category = ErrorCategory.PROCESSING
    default_severity = ErrorSeverity.HIGH

    def __init__(self, message: str, cancelled: bool = False, graph: Any = None, **kwargs):
        self.cancelled = cancelled
        self.graph = graph
        if cancelled and "category" not in kwargs:
            kwargs["category"] = ErrorCategory.TIMEOUT
        kwargs.setdefault("recoverable", False)
        super().__init__(message, **kwargs)


class GraphInvariantError(DependencyGraphException):
    """A graph operation was asked to act on a node or edge that is not present."""

    default_category = ErrorCategory.VALIDATION
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", False)
        super().__init__(message, **kwargs)


class GraphTaskException(DependencyGraphException):
    """Failure inside a graph task, carrying the graph as it was at the time."""

    default_category = ErrorCategory.PROCESSING

    def __init__(self, message: str, graph: Any = None, task_id: Optional[str] = None, **kwargs):
        self.graph = graph
        self.task_id = task_id
        super().__init__(message, **kwargs)
