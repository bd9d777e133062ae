# Middleware package init
"""
NoteKeep Backend — Middleware Package
=======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [CORS] → Route Handler

    1. Rate Limit first: reject abusive clients before any processing
    2. Request ID: correlation ID for logs, error bodies and X-Request-ID
    3. Logging: method, path, status and duration with the request ID
    4. CORS: Starlette's CORSMiddleware (handles preflight)

Authentication is not middleware: protected routes declare the
`get_current_user` dependency from `app.dependencies`, so public routes
(register, login, Google redirects, health) never see it.
"""
