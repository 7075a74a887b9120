"""
Core synchronization layer for HavenMind.

Mediates between UI surfaces and the HavenMind API.

Exports:
- SyncClient: cached reads plus mutation controllers, gated on auth state
- ResourceClient: one accessor per resource, mock or live
- Settings / load_settings: configuration resolved once at startup
- InMemoryQueryCache / QueryCache: shared query cache and its interface
- reconstruct: chat sessions to a flat message sequence
- Error types
"""

from .accessors import ResourceClient, UploadFile
from .cache import InMemoryQueryCache, QueryCache
from .client import AuthState, StaticAuth, SyncClient
from .config import Settings, load_settings
from .exceptions import (
    ConfigurationError,
    NotAuthenticatedError,
    PayloadError,
    SoftUnavailable,
    SyncError,
    TransportError,
)
from .sessions import reconstruct

__all__ = [
    "AuthState",
    "ConfigurationError",
    "InMemoryQueryCache",
    "NotAuthenticatedError",
    "PayloadError",
    "QueryCache",
    "ResourceClient",
    "Settings",
    "SoftUnavailable",
    "StaticAuth",
    "SyncClient",
    "SyncError",
    "TransportError",
    "UploadFile",
    "load_settings",
    "reconstruct",
]
