"""Exception hierarchy for Patina.

All Patina exceptions inherit from PatinaError, allowing catch-all handling:

    try:
        Post.property("title", list)
    except PatinaError as e:
        print(f"ORM error: {e}")

Exception hierarchy:
    PatinaError (base)
    ├── InvalidArgumentKind           - Wrong kind of argument at a call boundary
    │   └── TypeMismatchError         - Not a model instance (or not the right model)
    ├── InvalidPropertyDefinition     - Unsupported type, unknown option, bad visibility
    ├── InvalidRelationshipDefinition - Unknown option, unresolvable key mapping
    ├── TypeCoercionError             - Value cannot be parsed into a calendar type
    ├── UnresolvedConstantError       - Class reference names no known class
    ├── RepositoryError               - Unknown repository context
    └── PersistenceError              - Storage adapter failures
        └── NotFoundError             - get() found no record for the key

Declaration-time errors abort model loading. Runtime errors abort the
accessor call that triggered them. Nothing is retried or suppressed.
"""

from __future__ import annotations


class PatinaError(Exception):
    """Base exception for all Patina-related errors."""


class InvalidArgumentKind(PatinaError):
    """Raised when an argument is not of the structural kind required."""


class TypeMismatchError(InvalidArgumentKind):
    """Raised when an operation needs a model instance and gets something else."""


class InvalidPropertyDefinition(PatinaError):
    """Raised when a property declaration is invalid."""


class InvalidRelationshipDefinition(PatinaError):
    """Raised when a relationship declaration is invalid or cannot be resolved."""


class TypeCoercionError(PatinaError):
    """Raised when a value cannot be coerced into a date, time or datetime."""


class UnresolvedConstantError(PatinaError):
    """Raised when a class reference cannot be resolved to a class."""


class RepositoryError(PatinaError):
    """Raised when a repository context is unknown or misconfigured."""


class PersistenceError(PatinaError):
    """Raised for failures inside a storage adapter."""


class NotFoundError(PersistenceError):
    """Raised when a lookup expecting one record finds none."""


__all__ = [
    "PatinaError",
    "InvalidArgumentKind",
    "TypeMismatchError",
    "InvalidPropertyDefinition",
    "InvalidRelationshipDefinition",
    "TypeCoercionError",
    "UnresolvedConstantError",
    "RepositoryError",
    "PersistenceError",
    "NotFoundError",
]
