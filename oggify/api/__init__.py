"""
Remote Session Layer.

This package defines the boundary to the remote streaming service and how
a concrete session implementation is loaded.
"""

from .session import RemoteSession, create_session, load_session_factory, remote_call

__all__ = ["RemoteSession", "create_session", "load_session_factory", "remote_call"]
