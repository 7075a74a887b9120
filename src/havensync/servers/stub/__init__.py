"""Development stand-in for the HavenMind API."""

from .server import StubBackend

__all__ = ["StubBackend"]
