from __future__ import annotations

import json
from pathlib import Path

import pytest
import typer

from index_templates.cli.parsers import load_declarations, parse_output_format
from index_templates.core.errors import DeclarationError


def write_declarations(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "templates.yaml"
    path.write_text(content)
    return path


def test_inline_content_and_defaults(tmp_path: Path) -> None:
    path = write_declarations(
        tmp_path,
        """
templates:
  foo:
    content:
      template: "fooindex-*"
  old:
    ensure: absent
""".lstrip(),
    )

    declared = load_declarations(path)

    assert [d.name for d in declared] == ["foo", "old"]
    assert declared[0].content == {"template": "fooindex-*"}
    assert declared[0].ensure == "present"
    assert declared[1].ensure == "absent"
    assert declared[1].content == {}


def test_source_file_is_resolved_relative_to_declarations(tmp_path: Path) -> None:
    (tmp_path / "bar.json").write_text(json.dumps({"template": "bar-*", "order": "5"}))
    path = write_declarations(
        tmp_path,
        """
templates:
  bar:
    source: bar.json
""".lstrip(),
    )

    (bar,) = load_declarations(path)

    assert bar.desired().order == 5
    assert bar.desired().template == "bar-*"


@pytest.mark.parametrize(
    "content, message",
    [
        ("templates: []\n", "'templates' mapping"),
        ("other: {}\n", "'templates' mapping"),
        ("templates:\n  foo: [1]\n", "entry must be a mapping"),
        ("templates:\n  foo:\n    contents: {}\n", "unknown keys contents"),
        (
            "templates:\n  foo:\n    content: {}\n    source: foo.json\n",
            "either content or source",
        ),
        ("templates:\n  foo:\n    ensure: gone\n", "Template 'foo'"),
        ("templates:\n  foo:\n    content:\n      order: soon\n", "Template 'foo'"),
        ("templates:\n  foo:\n    source: missing.json\n", "source file not found"),
        ("templates: {foo: [\n", "Invalid YAML"),
    ],
)
def test_invalid_declarations(tmp_path: Path, content: str, message: str) -> None:
    path = write_declarations(tmp_path, content)

    with pytest.raises(DeclarationError, match=message):
        load_declarations(path)


def test_source_must_hold_an_object(tmp_path: Path) -> None:
    (tmp_path / "list.json").write_text("[]")
    path = write_declarations(tmp_path, "templates:\n  foo:\n    source: list.json\n")

    with pytest.raises(DeclarationError, match="JSON object"):
        load_declarations(path)


def test_missing_declarations_file(tmp_path: Path) -> None:
    with pytest.raises(DeclarationError, match="not found"):
        load_declarations(tmp_path / "absent.yaml")


def test_parse_output_format() -> None:
    assert parse_output_format("YAML") == "yaml"
    with pytest.raises(typer.BadParameter):
        parse_output_format("xml")
