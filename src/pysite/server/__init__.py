"""ASGI application and hypercorn server."""

from .application import Application
from .server import Server

__all__ = ['Application', 'Server']
