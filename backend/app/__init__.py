"""
SealNote Backend — Application Package Initializer
====================================================

What: Marks the `app` directory as a Python package.
Who:  Imported by uvicorn (app.main:app), the purge job (python -m app.purge),
      Alembic and pytest.

Architecture Note:
    Notes are encrypted in the browser. Everything below only ever sees
    opaque ciphertext and an integrity tag.

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, expiry policy
    ├─────────────────────────────────────┤
    │      Services (Data Access Layer)   │  ← create/get/delete/expire
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async sessions, transactions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
