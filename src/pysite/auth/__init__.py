"""Tenant user authentication."""

from .passwords import hash_password, needs_rehash, verify_password
from .sessions import SessionStore, authenticate_request
from .users import User, UserRepository

__all__ = [
    'hash_password', 'verify_password', 'needs_rehash',
    'User', 'UserRepository', 'SessionStore', 'authenticate_request',
]
