"""Declared-template file loading and CLI value parsers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
import yaml
from pydantic import ValidationError

from ..core.errors import DeclarationError
from ..core.models import DeclaredTemplate


def parse_output_format(value: str) -> str:
    """Validate the --format option."""
    lowered = value.strip().lower()
    if lowered not in ("json", "yaml"):
        raise typer.BadParameter(f"Must be json or yaml, got: {value!r}")
    return lowered


def _load_source(source: str, base_dir: Path, name: str) -> dict[str, Any]:
    path = Path(source)
    if not path.is_absolute():
        path = base_dir / path
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise DeclarationError(f"Template {name!r}: source file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise DeclarationError(f"Template {name!r}: invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise DeclarationError(f"Template {name!r}: {path} must hold a JSON object")
    return data


def parse_declaration(name: str, entry: Any, base_dir: Path) -> DeclaredTemplate:
    """Build a DeclaredTemplate from one entry of the ``templates`` mapping."""
    if entry is None:
        entry = {}
    if not isinstance(entry, dict):
        raise DeclarationError(f"Template {name!r}: entry must be a mapping")

    unknown = sorted(set(entry) - {"ensure", "content", "source"})
    if unknown:
        raise DeclarationError(f"Template {name!r}: unknown keys {', '.join(unknown)}")
    if "content" in entry and "source" in entry:
        raise DeclarationError(f"Template {name!r}: use either content or source, not both")

    content = entry.get("content") or {}
    if "source" in entry:
        content = _load_source(str(entry["source"]), base_dir, name)

    try:
        return DeclaredTemplate(
            name=str(name),
            ensure=entry.get("ensure", "present"),
            content=content,
        )
    except ValidationError as e:
        raise DeclarationError(f"Template {name!r}: {e}") from e


def load_declarations(path: Path) -> list[DeclaredTemplate]:
    """Load the declared templates file.

    Args:
        path: YAML file with a top-level ``templates`` mapping

    Returns:
        Declared templates in file order
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise DeclarationError(f"Declarations file not found: {path}") from e
    except yaml.YAMLError as e:
        raise DeclarationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("templates"), dict):
        raise DeclarationError(f"{path} must contain a 'templates' mapping")

    return [
        parse_declaration(name, entry, path.parent)
        for name, entry in data["templates"].items()
    ]
