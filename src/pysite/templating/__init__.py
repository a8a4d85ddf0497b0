"""
Streaming template engine.

Templates are plain text with ``{{ … }}`` tags for interpolation, filter
pipelines, assignments and control flow. Rendering never raises for errors
in the template itself; it returns the output together with the list of
problems found.
"""

from .adapters import AdapterRegistry, CallableAdapter, DataAdapter, MappingAdapter
from .engine import Engine, EngineConfig, RenderResult, RenderState
from .errors import AdapterConflictError, ErrorKind, TemplateError
from .filters import BUILTIN_FILTERS, FilterError, FilterRegistry
from .sanitizer import NoopSanitizer, Sanitizer, make_sanitizer
from .tags import BUILTIN_TAGS, TemplateTag

__all__ = [
    'Engine',
    'EngineConfig',
    'RenderResult',
    'RenderState',
    'TemplateError',
    'ErrorKind',
    'AdapterConflictError',
    'DataAdapter',
    'MappingAdapter',
    'CallableAdapter',
    'AdapterRegistry',
    'FilterRegistry',
    'FilterError',
    'BUILTIN_FILTERS',
    'TemplateTag',
    'BUILTIN_TAGS',
    'Sanitizer',
    'NoopSanitizer',
    'make_sanitizer',
]
