"""Repository adapters - Actor store implementations."""

from .memory import InMemoryOwnerRepository, InMemoryStaffRepository
from .postgres import PostgresOwnerRepository, PostgresStaffRepository, run_migrations

__all__ = [
    "InMemoryOwnerRepository",
    "InMemoryStaffRepository",
    "PostgresOwnerRepository",
    "PostgresStaffRepository",
    "run_migrations",
]
