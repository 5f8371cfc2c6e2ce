"""Canonical template content and the normalization applied at the boundary.

Remote services are loose about the shape of a template: sub-documents may be
missing entirely and ``order`` round-trips as a number on some versions and as
a numeric string on others. Everything that enters the reconciler goes through
:func:`normalize` once, so later comparisons are plain structural equality.
"""

from __future__ import annotations

import copy
import logging
import math
import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidTemplateContent

logger = logging.getLogger(__name__)

CANONICAL_FIELDS = ("aliases", "mappings", "settings", "template", "order")

_INT_PATTERN = re.compile(r"^[-+]?\d+$")
_FLOAT_PATTERN = re.compile(r"^[-+]?(?:\d+\.\d*|\.\d+|\d+(?=[eE]))(?:[eE][-+]?\d+)?$")


def coerce_order(value: Any) -> int:
    """Coerce a wire ``order`` value to an integer.

    Args:
        value: Integer, float, numeric string or None

    Returns:
        Integer order; fractional values are truncated toward zero
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError(f"order must be numeric, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"order must be finite, got {value!r}")
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if _INT_PATTERN.match(text):
            return int(text)
        if _FLOAT_PATTERN.match(text):
            return int(float(text))
    raise ValueError(f"order must be an integer or numeric string, got {value!r}")


class TemplateContent(BaseModel):
    """Normalized body of one index template."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    aliases: dict[str, Any] = Field(default_factory=dict)
    mappings: dict[str, Any] = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)
    template: Any = Field(
        default=None, description="Index name pattern(s), kept exactly as given"
    )
    order: int = Field(default=0, description="Precedence among matching templates")

    @field_validator("aliases", "mappings", "settings", mode="before")
    @classmethod
    def _mapping_or_empty(cls, value: Any) -> dict[str, Any]:
        if isinstance(value, Mapping):
            return dict(value)
        return {}

    @field_validator("order", mode="before")
    @classmethod
    def _coerce_order(cls, value: Any) -> int:
        return coerce_order(value)

    def to_document(self) -> dict[str, Any]:
        """Return the canonical write body for this content."""
        document: dict[str, Any] = {
            "order": self.order,
            "aliases": copy.deepcopy(self.aliases),
            "mappings": copy.deepcopy(self.mappings),
            "settings": copy.deepcopy(self.settings),
        }
        if self.template is not None:
            document["template"] = copy.deepcopy(self.template)
        return document


def normalize(raw: Mapping[str, Any] | TemplateContent | None) -> TemplateContent:
    """Normalize a raw remote or declared template document.

    Args:
        raw: Template document as decoded from JSON/YAML, or already normalized

    Returns:
        TemplateContent with every canonical field populated
    """
    if isinstance(raw, TemplateContent):
        return raw
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise InvalidTemplateContent(
            f"template content must be a mapping, got {type(raw).__name__}"
        )

    ignored = sorted(str(key) for key in raw if key not in CANONICAL_FIELDS)
    if ignored:
        logger.debug("Ignoring non-canonical template fields: %s", ", ".join(ignored))

    try:
        return TemplateContent.model_validate(dict(raw))
    except ValidationError as exc:
        raise InvalidTemplateContent(str(exc)) from exc
