"""
SchoolDesk Backend — Application Package Initializer
====================================================

What: Marks the `schooldesk` directory as a Python package.
Who:  Imported by uvicorn (`schooldesk.main:app`), Alembic and pytest.

Architecture Note:
    The backend is layered the same way for every resource:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP status codes, query params
    ├─────────────────────────────────────┤
    │   Authorization scope + principal   │  ← who may do what, in which school
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← term lifecycle, school CRUD
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← one async session per request
    └─────────────────────────────────────┘

    Routes never touch role names directly; they ask the authorization layer.
    Services never look at HTTP; they receive a session and a partition.
"""

__version__ = "1.0.0"
