"""Repository adapters - Registrar storage implementations."""

from .memory import InMemoryRegistrarRepository
from .postgres import PostgresRegistrarRepository, run_migrations

__all__ = ["InMemoryRegistrarRepository", "PostgresRegistrarRepository", "run_migrations"]
