"""Explicit model registry; replaces process-wide model bookkeeping."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import structlog

from recordstore.config.schema import StoreConfig
from recordstore.errors import DuplicationError
from recordstore.model import Model
from recordstore.records.relationships import Relationship, RelationshipKind

_log = structlog.get_logger(__name__)


class ModelRegistry:
    """Name-unique collection of models sharing one ``StoreConfig``."""

    def __init__(self, *, config: StoreConfig | None = None) -> None:
        self._config = config if config is not None else StoreConfig()
        self._models: dict[str, Model] = {}

    @property
    def config(self) -> StoreConfig:
        return self._config

    def register(self, model: Model) -> Model:
        existing = self._models.get(model.name)
        if existing is model:
            return model
        if existing is not None:
            raise DuplicationError(f"A model named {model.name} already exists.")
        self._models[model.name] = model
        _log.debug("model_registered", model=model.name)
        return model

    def unregister(self, model: Model | str) -> bool:
        name = model.name if isinstance(model, Model) else model
        if self._models.pop(name, None) is None:
            _log.warning("missing_model", model=name)
            return False
        _log.debug("model_unregistered", model=name)
        return True

    def get(self, name: str) -> Model | None:
        return self._models.get(name)

    def __getitem__(self, name: str) -> Model:
        return self._models[name]

    def __contains__(self, name: object) -> bool:
        return name in self._models

    def __iter__(self) -> Iterator[Model]:
        return iter(tuple(self._models.values()))

    def __len__(self) -> int:
        return len(self._models)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._models)

    def clear(self) -> None:
        """Forget every registered model."""
        self._models.clear()

    def create_model(self, name: str, **options: Any) -> Model:
        """Build a model bound to this registry and its config."""
        options.setdefault("config", self._config)
        return Model(name, registry=self, **options)

    def relate(
        self,
        source: Model | str,
        target: Model | str,
        *,
        name: str,
        reverse_name: str,
        kind: RelationshipKind | str = RelationshipKind.MANY_TO_ONE,
    ) -> Relationship:
        """Install a relationship between two models, given as models or registered names."""
        source_model = self._resolve(source)
        target_model = self._resolve(target)
        relationship = Relationship(
            source=source_model,
            target=target_model,
            name=name,
            reverse_name=reverse_name,
            kind=kind,
        ).install()
        _log.debug(
            "relationship_installed",
            source=source_model.name,
            target=target_model.name,
            relationship=name,
            kind=relationship.kind.value,
        )
        return relationship

    def _resolve(self, model: Model | str) -> Model:
        if isinstance(model, Model):
            return model
        return self._models[model]


__all__ = ["ModelRegistry"]
