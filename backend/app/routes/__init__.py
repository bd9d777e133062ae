# Routes package init
"""
NoteKeep Backend — API Routes Package
=======================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - auth.py:    /api/auth/register, /login, /google, /google/callback,
                  /google/failure, /me, /profile, /logout
    - notes.py:   /api/notes (list, create), /archived, /trash, /stats,
                  /api/notes/{id} (get, update, delete) and the
                  /archive, /unarchive, /trash, /restore transitions
    - health.py:  GET /health

Routes stay thin: pull the caller from get_current_user, call a service,
wrap the result in ApiResponse. Business rules live in app.services.
"""
