"""Exception hierarchy for persistence kernel computations.

Categories:
- ParameterError: malformed scalar parameters, detected before any work starts
- DiagramValidationError: diagrams failing structural checks
- ComputationError: failures inside distance, kernel or decomposition code
- ResourceError: worker pool acquisition failures
"""

from typing import Any, Dict, Optional


class PersistenceKernelError(Exception):
    """Base exception for all persistence kernel errors.

    Attributes:
        message: Error message
        context: Additional context information
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (Context: {context_str})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ParameterError(PersistenceKernelError, ValueError):
    """A scalar parameter has the wrong type, cardinality or range."""

    def __init__(self, message: str, parameter: Optional[str] = None,
                 value: Any = None):
        context = {}
        if parameter is not None:
            context["parameter"] = parameter
            context["value"] = repr(value)
        super().__init__(message, context)
        self.parameter = parameter


class DiagramValidationError(PersistenceKernelError, ValueError):
    """A persistence diagram fails its structural invariants."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message, {"index": index} if index is not None else None)
        self.index = index


class ComputationError(PersistenceKernelError, RuntimeError):
    """Distance, kernel or decomposition computation failed."""


class ResourceError(PersistenceKernelError, RuntimeError):
    """The worker pool could not be acquired."""
