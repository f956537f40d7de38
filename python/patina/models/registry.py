"""Global registry of Model classes.

This module maintains a global dict mapping model keys to model classes.
Models are auto-registered when a Model subclass is defined.

Model Key Format:
    "{module}.{qualname}" e.g., "myapp.models.User"

This ensures unique identification even for models with same class names
in different modules.

Functions:
    register_model(model, overwrite=False):
        Add model to registry. Raises ValueError if already registered
        and overwrite=False.

    unregister_model(model):
        Remove model from registry (no-op if not registered). Used when a
        model declaration fails part way.

    registered_models() -> dict[str, type[Model]]:
        Return copy of registry.

    resolve_model(name, near=None) -> type[Model] | None:
        Find a model by key, qualname or class name.

    clear_registry():
        Remove all models (used in tests for cleanup).

    finalize_pending():
        Finalize relationships of pending models (child key creation).

    assert_no_pending_models():
        Fail-fast check that all models are finalized.

Finalization:
    A many-to-one relationship can name a parent model that is declared
    later. Models owning such relationships stay pending, and finalization
    is retried every time another model is declared.

    class Comment(Model):
        post = BelongsTo()      # Post not declared yet, Comment is pending

    class Post(Model):          # Comment.post_id gets created here
        id: int = Field(serial=True)

Declarations are expected to happen at import time, from one thread.
After that the registry is only read.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from patina.models.base import Model

logger = logging.getLogger(__name__)

_MODELS: dict[str, type[Model]] = {}
_PENDING_MODELS: set[type[Model]] = set()


def _model_key(model: type[Model]) -> str:
    return f"{model.__module__}.{model.__qualname__}"


def _finalize_model(model: type[Model]) -> bool:
    """Try to finalize every relationship declared on a model.

    Returns True if all relationships resolved their keys, False if any
    should be retried later.
    """
    finalized = True
    for relationship in model.__schema__.iter_relationships():
        if not relationship.finalize():
            finalized = False
    return finalized


def finalize_pending() -> None:
    """Finalize pending models.

    Called from Model.__init_subclass__ and after imperative relationship
    declarations. Models that can't be finalized (parent model not yet
    declared) stay in _PENDING_MODELS and are retried on the next call.
    """
    for model in list(_PENDING_MODELS):
        if _finalize_model(model):
            _PENDING_MODELS.discard(model)
            logger.debug("Finalized model %s", _model_key(model))


def mark_pending(model: type[Model]) -> None:
    """Queue a model for (re-)finalization."""
    _PENDING_MODELS.add(model)


def register_model(model: type[Model], *, overwrite: bool = False) -> None:
    """Register a model class."""
    key = _model_key(model)
    existing = _MODELS.get(key)
    if existing is model:
        return
    if existing is not None:
        if not overwrite:
            raise ValueError(f"Model '{key}' is already registered")
        _PENDING_MODELS.discard(existing)
    _MODELS[key] = model
    _PENDING_MODELS.add(model)


def unregister_model(model: type[Model]) -> None:
    """Remove a model from the registry if present."""
    _MODELS.pop(_model_key(model), None)
    _PENDING_MODELS.discard(model)


def registered_models() -> dict[str, type[Model]]:
    """Return a copy of the registered model mapping."""
    return dict(_MODELS)


def resolve_model(name: str, *, near: str | None = None) -> type[Model] | None:
    """Find a registered model by key, qualname or bare class name.

    When several models share a class name, one from the ``near`` module
    wins, otherwise the most recently registered one.
    """
    model = _MODELS.get(name)
    if model is not None:
        return model

    candidates = [
        model
        for model in _MODELS.values()
        if name in (model.__qualname__, model.__name__)
    ]
    if not candidates:
        return None
    if near is not None:
        for model in reversed(candidates):
            if model.__module__ == near:
                return model
    return candidates[-1]


def clear_registry() -> None:
    """Reset the registry (intended for tests)."""
    _MODELS.clear()
    _PENDING_MODELS.clear()


def assert_no_pending_models() -> None:
    """Verify all models are finalized. Call at startup after all imports.

    Raises RuntimeError if any models are still pending finalization.
    """
    finalize_pending()
    if _PENDING_MODELS:
        names = ", ".join(sorted(m.__name__ for m in _PENDING_MODELS))
        raise RuntimeError(f"Models not finalized (unresolved parent models?): {names}")


__all__ = [
    "register_model",
    "unregister_model",
    "registered_models",
    "resolve_model",
    "clear_registry",
    "mark_pending",
    "finalize_pending",
    "assert_no_pending_models",
]
