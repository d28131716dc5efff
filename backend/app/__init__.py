"""
TaskManager Backend — Application Package Initializer
=====================================================

What: Marks the `app` directory as a Python package.
Why:  Enables module imports like `from app.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← thin delete/restore boundary
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← cascade, inventory, transactions
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy engine
    └─────────────────────────────────────┘

    Routes never touch a session directly: each request hands exactly one
    unit of work to the TransactionCoordinator.
"""

__version__ = "1.0.0"
