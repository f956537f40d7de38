"""Named repository contexts.

A repository pairs a name with the storage adapter serving it. Schema
lookups (field names, relationship tables) and storage operations all run
under one repository, either passed explicitly or taken from the ambient
context.

    register_repository("default", MemoryAdapter())
    register_repository("archive", MemoryAdapter())

    with repository("archive"):
        post.save()               # stored through the archive adapter

Ambient State:
    The stack of entered repository names lives in a ContextVar, so nested
    ``with repository(...)`` blocks restore the outer context on exit.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

from patina.exceptions import RepositoryError

if TYPE_CHECKING:
    from patina.db.adapter import AbstractAdapter

DEFAULT_REPOSITORY_NAME = "default"

_REPOSITORIES: dict[str, Repository] = {}
_CONTEXT_STACK: ContextVar[tuple[str, ...]] = ContextVar(
    "patina_repository_stack", default=()
)


class Repository:
    """A named storage scope."""

    def __init__(self, name: str, adapter: AbstractAdapter):
        self.name = name
        self.adapter = adapter

    def __repr__(self) -> str:
        return f"<Repository {self.name!r} adapter={type(self.adapter).__name__}>"


def register_repository(
    name: str, adapter: AbstractAdapter, *, overwrite: bool = False
) -> Repository:
    """Register an adapter under a repository name."""
    if name in _REPOSITORIES and not overwrite:
        raise ValueError(f"Repository '{name}' is already registered")
    adapter.name = name
    repo = Repository(name, adapter)
    _REPOSITORIES[name] = repo
    return repo


def unregister_repository(name: str) -> None:
    """Remove a repository if present."""
    _REPOSITORIES.pop(name, None)


def clear_repositories() -> None:
    """Remove all repositories (intended for tests)."""
    _REPOSITORIES.clear()


def current_repository_name() -> str | None:
    """Name of the innermost entered repository, or None outside any."""
    stack = _CONTEXT_STACK.get()
    return stack[-1] if stack else None


def get_repository(name: str | None = None) -> Repository:
    """Return a repository by name, defaulting to the ambient one."""
    if name is None:
        name = current_repository_name() or DEFAULT_REPOSITORY_NAME
    try:
        return _REPOSITORIES[name]
    except KeyError:
        raise RepositoryError(f"Repository '{name}' is not registered") from None


@contextmanager
def repository(name: str | None = None) -> Iterator[Repository]:
    """Enter a repository context for the duration of the block."""
    repo = get_repository(name)
    token = _CONTEXT_STACK.set(_CONTEXT_STACK.get() + (repo.name,))
    try:
        yield repo
    finally:
        _CONTEXT_STACK.reset(token)


__all__ = [
    "DEFAULT_REPOSITORY_NAME",
    "Repository",
    "register_repository",
    "unregister_repository",
    "clear_repositories",
    "current_repository_name",
    "get_repository",
    "repository",
]
