"""Repositories and storage adapters.

Functions:
    register_repository(name, adapter): Register an adapter under a name.
    unregister_repository(name): Remove a repository.
    clear_repositories(): Remove all repositories.
    get_repository(name=None): Look up a repository (ambient by default).
    repository(name=None): Context manager entering a repository.
"""

from patina.db.adapter import AbstractAdapter
from patina.db.memory import MemoryAdapter
from patina.db.repository import (
    DEFAULT_REPOSITORY_NAME,
    Repository,
    clear_repositories,
    current_repository_name,
    get_repository,
    register_repository,
    repository,
    unregister_repository,
)

__all__ = [
    "AbstractAdapter",
    "MemoryAdapter",
    "DEFAULT_REPOSITORY_NAME",
    "Repository",
    "register_repository",
    "unregister_repository",
    "clear_repositories",
    "current_repository_name",
    "get_repository",
    "repository",
]
