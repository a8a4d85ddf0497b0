"""HTTP request and response types."""

from .request import Request, normalize_host
from .response import Response

__all__ = ['Request', 'Response', 'normalize_host']
