# Services package init
"""
NoteKeep Backend — Services Layer
===================================

What:  Business logic layer sitting between routes (HTTP) and repositories (persistence).
How:   Services accept repositories and plain values, apply business rules,
       and return ORM objects or schemas. Routes get them as module singletons.

Service Inventory:
    - CredentialService: bcrypt password hashing, JWT issue/verify
    - IdentityService: registration, password login, Google account resolution
    - GoogleOAuthService: consent URL, state signing, code exchange, userinfo
    - NoteService: owner-scoped note CRUD, transitions, listing, stats
"""
