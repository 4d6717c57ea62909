"""
Ebook Shelf Backend — Application Package Initializer
=======================================================

Architecture Note:
    This backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Validation, orchestration
    ├─────────────────────────────────────┤
    │   Record Store   │   Image Store    │  ← SQLAlchemy  │  Cloudinary SDK
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
