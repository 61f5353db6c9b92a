"""
Hbook Backend — Application Package Initializer
================================================

What: Marks the `hbook` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Read Model + Writes)    │  ← Pager, projector, relations
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Every read endpoint is the same shape: resolve the viewer, let the
    projector add derived columns, let the pager run one bounded fetch.
"""

__version__ = "1.0.0"
