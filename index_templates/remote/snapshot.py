"""Point-in-time, normalized view of the remote template directory."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from ..core.errors import InvalidTemplateContent
from ..core.models import TemplateState
from ..core.normalize import TemplateContent, normalize
from .client import TemplateClient

logger = logging.getLogger(__name__)


class DirectorySnapshot(Mapping[str, TemplateContent]):
    """Read-only mapping of template name to normalized content."""

    def __init__(
        self,
        entries: Mapping[str, TemplateContent] | None = None,
        unreadable: Iterable[str] = (),
    ) -> None:
        self._entries = MappingProxyType(dict(entries or {}))
        # names listed remotely whose documents could not be normalized
        self.unreadable = frozenset(unreadable)

    def __getitem__(self, name: str) -> TemplateContent:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"DirectorySnapshot({sorted(self._entries)!r})"

    def records(self) -> list[TemplateState]:
        return [
            TemplateState(name=name, ensure="present", content=content)
            for name, content in sorted(self._entries.items())
        ]


def build_snapshot(client: TemplateClient) -> DirectorySnapshot:
    """List the remote directory and normalize every entry.

    Args:
        client: Client bound to the target service

    Returns:
        DirectorySnapshot built from a single listing call
    """
    raw = client.list_all()
    entries: dict[str, TemplateContent] = {}
    unreadable: list[str] = []
    for name, document in raw.items():
        try:
            entries[name] = normalize(document)
        except InvalidTemplateContent as exc:
            logger.warning("Skipping remote template %s: %s", name, exc)
            unreadable.append(name)

    logger.info("Found %d remote template(s) at %s", len(raw), client.config.base_url)
    return DirectorySnapshot(entries, unreadable)


def instances(client: TemplateClient) -> list[TemplateState]:
    """Return every remote template as a present TemplateState."""
    return build_snapshot(client).records()
