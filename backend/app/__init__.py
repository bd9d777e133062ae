"""
NoteKeep Backend — Application Package Initializer
====================================================

What: The `app` package: a multi-user note-taking API with email/password
      and Google sign-in.
Who:  Imported by uvicorn (app.main:app), Alembic and pytest.

Architecture Note:

    ┌─────────────────────────────────────┐
    │     Routes + auth guard (API)       │  ← HTTP concerns, caller identity
    ├─────────────────────────────────────┤
    │      Services (Business Logic)      │  ← validation, transitions, tokens
    ├─────────────────────────────────────┤
    │   Repositories (owner-scoped SQL)   │  ← every query filters by user_id
    ├─────────────────────────────────────┤
    │  Models & Schemas / Database        │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
