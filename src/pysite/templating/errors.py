"""
Template error types.

Rendering never raises for problems in template source. Every problem is
recorded as a TemplateError on the render's error list and rendering carries
on from the end of the offending tag.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Conditions signalled while rendering a template"""
    UNCLOSED_OPENING = "unclosed-opening"
    EMPTY_TAG = "empty-tag"
    UNKNOWN_TAG = "unknown-tag"
    UNKNOWN_VARIABLE = "unknown-variable"
    UNKNOWN_PATH = "unknown-path"
    UNKNOWN_FILTER = "unknown-filter"
    UNCLOSED_TAG = "unclosed-tag"
    STRAY_END = "stray-end"
    NON_ITERABLE = "non-iterable"
    TEMPLATE_NOT_FOUND = "template-not-found"
    FILTER_ERROR = "filter-error"
    SYNTAX_ERROR = "syntax-error"
    INVALID_ASSIGNMENT = "invalid-assignment"


class TemplateError(Exception):
    """A single problem found while rendering"""

    def __init__(self, kind: ErrorKind, message: str, position: Optional[int] = None):
        self.kind = kind
        self.message = message
        self.position = position
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.position is None:
            return f"{self.kind.value}: {self.message}"
        return f"{self.kind.value}: {self.message} (at {self.position})"

    def __repr__(self) -> str:
        return f"TemplateError({self.kind.value!r}, {self.message!r}, position={self.position!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, TemplateError):
            return NotImplemented
        return (self.kind, self.message, self.position) == (other.kind, other.message, other.position)

    def __hash__(self) -> int:
        return hash((self.kind, self.message, self.position))


class AdapterConflictError(ValueError):
    """Raised when two data adapters claim the same path prefix"""

    def __init__(self, prefix: str):
        self.prefix = prefix
        super().__init__(f"Data adapter for prefix '{prefix}' is already registered")
