"""
havensync: client-side data synchronization for the HavenMind assistant.

Unifies the mock dataset and the live HavenMind API behind one set of
resource accessors, rebuilds chat history from server sessions, and merges
uploads and chat sends into a shared query cache.
"""

__version__ = "0.1.0"

# Re-export core components for convenience
from .core import Settings, SyncClient, load_settings

__all__ = [
    "Settings",
    "SyncClient",
    "load_settings",
]
