"""
NoteKeep Backend — Repository Layer
=====================================

What:  Storage access behind small abstract interfaces.
How:   `base.py` declares UserRepository / NoteRepository; the SQLAlchemy
       implementations wrap one AsyncSession each and are created per request
       by the dependencies in `app.dependencies`.

Every note query takes the owner id as an explicit predicate. Nothing in
this layer trusts an owner value coming from a request body.
"""

from app.repositories.base import NoteRepository, UserRepository
from app.repositories.note_repository import SQLAlchemyNoteRepository
from app.repositories.user_repository import SQLAlchemyUserRepository

__all__ = [
    "NoteRepository",
    "UserRepository",
    "SQLAlchemyNoteRepository",
    "SQLAlchemyUserRepository",
]
