"""Persistence provider: generic repositories and the unit of work."""

from app.repositories.base import Repository
from app.repositories.unit_of_work import UnitOfWork

__all__ = ["Repository", "UnitOfWork"]
