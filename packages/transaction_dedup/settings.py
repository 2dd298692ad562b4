"""Deduplication settings.

The scorer's tolerances, weights and thresholds live in one validated,
immutable pydantic model. Defaults reproduce the fixed constants of the
original scorer (0.01 amount tolerance, 24 hour window, 0.8 description
similarity, 70 point duplicate threshold). Hosts may override them per call
(``merged``) or through ``DEDUP_*`` environment variables (``from_env``).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

_ENV_PREFIX = "DEDUP_"
# Scalar fields that can be set from the environment.
_ENV_FIELDS: tuple[str, ...] = (
    "amount_tolerance",
    "date_window_hours",
    "description_threshold",
    "duplicate_threshold",
    "auto_merge_threshold",
    "amount_sign",
)
_NESTED_FIELDS: frozenset[str] = frozenset({"weights", "enabled"})


class CriteriaWeights(BaseModel):
    """Points contributed by each criterion when it fires."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    amount: int = Field(40, ge=0)
    date: int = Field(30, ge=0)
    description: int = Field(20, ge=0)
    account: int = Field(10, ge=0)
    provider_id: int = Field(50, ge=0)


class EnabledCriteria(BaseModel):
    """Per-criterion switches; a disabled criterion never fires."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    amount: bool = True
    date: bool = True
    description: bool = True
    account: bool = True
    provider_id: bool = True


class DeduplicationSettings(BaseModel):
    """Tolerances and thresholds used by the duplicate scorer.

    ``amount_sign`` controls how amounts are compared: ``"signed"`` (default)
    differences the values as given, ``"absolute"`` compares magnitudes so an
    expense stored as ``-25.50`` by one source and ``25.50`` by another still
    matches.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    amount_tolerance: Decimal = Field(Decimal("0.01"), ge=0)
    date_window_hours: float = Field(24.0, ge=0, le=720)
    description_threshold: float = Field(0.8, ge=0, le=1)
    duplicate_threshold: int = Field(70, ge=0)
    auto_merge_threshold: int | None = None
    amount_sign: Literal["signed", "absolute"] = "signed"
    weights: CriteriaWeights = Field(default_factory=CriteriaWeights)
    enabled: EnabledCriteria = Field(default_factory=EnabledCriteria)

    @model_validator(mode="after")
    def _auto_merge_not_below_duplicate(self) -> DeduplicationSettings:
        if (
            self.auto_merge_threshold is not None
            and self.auto_merge_threshold < self.duplicate_threshold
        ):
            raise ValueError("auto_merge_threshold must be >= duplicate_threshold")
        return self

    @property
    def date_window(self) -> timedelta:
        return timedelta(hours=self.date_window_hours)

    def merged(self, overrides: Mapping[str, Any] | None = None) -> DeduplicationSettings:
        """Return a copy with ``overrides`` applied and re-validated.

        Nested ``weights``/``enabled`` mappings merge key-by-key onto the
        current values instead of replacing them wholesale.
        """

        if not overrides:
            return self
        data = self.model_dump()
        for key, value in overrides.items():
            if key in _NESTED_FIELDS and isinstance(value, Mapping):
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        return DeduplicationSettings.model_validate(data)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DeduplicationSettings:
        """Build settings from ``DEDUP_*`` environment variables.

        Unset or blank variables keep their defaults. ``DEDUP_AUTO_MERGE_THRESHOLD``
        accepts ``none``/``off`` to disable auto-merging explicitly.
        """

        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for name in _ENV_FIELDS:
            raw = env.get(_ENV_PREFIX + name.upper())
            if raw is None or not raw.strip():
                continue
            raw = raw.strip()
            if name == "auto_merge_threshold" and raw.lower() in {"none", "off"}:
                values[name] = None
            elif name == "amount_sign":
                values[name] = raw.lower()
            else:
                values[name] = raw
        return cls.model_validate(values)


DEFAULT_SETTINGS = DeduplicationSettings()


__all__ = [
    "DEFAULT_SETTINGS",
    "CriteriaWeights",
    "DeduplicationSettings",
    "EnabledCriteria",
]
