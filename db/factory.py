from __future__ import annotations

from db.base import Repository
from db.memory import MemoryRepository


def build_repository(backend: str) -> Repository:
    if backend == "memory":
        return MemoryRepository()
    if backend == "prisma":
        # Importing the Prisma client requires `prisma generate` to have run.
        from db.repo import PrismaRepository
        return PrismaRepository()
    raise ValueError(f"Unknown storage backend: {backend!r}")
