"""
Data management infrastructure for session records and recorded answers.
"""

from .profile_store import ProfileStore, JsonProfileStore, InMemoryProfileStore, SessionNotFoundError
from .workspace import SessionWorkspace

__all__ = [
    'ProfileStore',
    'JsonProfileStore',
    'InMemoryProfileStore',
    'SessionNotFoundError',
    'SessionWorkspace'
]
