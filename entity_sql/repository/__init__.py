"""Repository layer - DDD repository pattern."""

from __future__ import annotations

from entity_sql.repository.base import AsyncRepository, Repository

__all__ = [
    "Repository",
    "AsyncRepository",
]
