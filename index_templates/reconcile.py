from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, Literal

from deepdiff import DeepDiff

from .core.errors import RemoteWriteFailed
from .core.models import DeclaredTemplate, TemplateState
from .core.normalize import TemplateContent
from .remote.client import TemplateClient
from .remote.snapshot import DirectorySnapshot, build_snapshot

logger = logging.getLogger(__name__)

Action = Literal["created", "updated", "deleted", "unchanged", "failed"]


@dataclass(frozen=True)
class TemplateOutcome:
    name: str
    action: Action
    state: TemplateState
    error: str | None = None


@dataclass(frozen=True)
class ConvergeReport:
    outcomes: tuple[TemplateOutcome, ...]
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return all(outcome.action != "failed" for outcome in self.outcomes)

    @property
    def changed(self) -> list[str]:
        return [
            outcome.name
            for outcome in self.outcomes
            if outcome.action in ("created", "updated", "deleted")
        ]

    def counts(self) -> dict[str, int]:
        return dict(Counter(outcome.action for outcome in self.outcomes))


def content_diff(
    before: TemplateContent | None, after: TemplateContent | None
) -> dict[str, Any]:
    """Structural difference between two normalized templates, JSON-friendly."""
    left = before.to_document() if before is not None else {}
    right = after.to_document() if after is not None else {}
    diff = DeepDiff(left, right)
    if not diff:
        return {}
    return json.loads(diff.to_json())


class TemplateReconciler:
    """Converges declared templates against one snapshot of the service.

    The snapshot is listed lazily, at most once per reconciler. If listing
    fails nothing is written: the error propagates before any write.
    """

    def __init__(
        self, client: TemplateClient, snapshot: DirectorySnapshot | None = None
    ) -> None:
        self._client = client
        self._snapshot = snapshot
        self._applied: dict[str, TemplateContent | None] = {}

    @property
    def snapshot(self) -> DirectorySnapshot:
        if self._snapshot is None:
            self._snapshot = build_snapshot(self._client)
        return self._snapshot

    def current(self, name: str) -> TemplateContent | None:
        if name in self._applied:
            return self._applied[name]
        return self.snapshot.get(name)

    def state(self, name: str) -> TemplateState:
        content = self.current(name)
        return TemplateState(
            name=name,
            ensure="present" if content is not None else "absent",
            content=content,
        )

    def plan(self, declared: DeclaredTemplate) -> Action:
        """Return the action a flush of ``declared`` would take."""
        current = self.current(declared.name)
        unreadable = (
            declared.name not in self._applied
            and declared.name in self.snapshot.unreadable
        )
        if declared.ensure == "absent":
            return "unchanged" if current is None and not unreadable else "deleted"
        if current is None:
            return "updated" if unreadable else "created"
        if current == declared.desired():
            return "unchanged"
        return "updated"

    def is_in_sync(self, declared: DeclaredTemplate) -> bool:
        return self.plan(declared) == "unchanged"

    def diff(self, declared: DeclaredTemplate) -> dict[str, Any]:
        after = declared.desired() if declared.ensure == "present" else None
        return content_diff(self.current(declared.name), after)

    def flush(self, declared: DeclaredTemplate) -> TemplateState:
        """Apply the minimal write for one declared template.

        Raises:
            RemoteUnavailable: the listing needed to decide could not be fetched
            MalformedResponse: the listing could not be decoded
            RemoteWriteFailed: the write or delete was rejected
        """
        name = declared.name
        action = self.plan(declared)
        if action == "unchanged":
            logger.debug("Template %s already in sync", name)
            return self.state(name)

        if action == "deleted":
            self._client.delete(name)
            self._applied[name] = None
            logger.info("Deleted template %s", name)
            return self.state(name)

        desired = declared.desired()
        if action == "updated":
            logger.info(
                "Template %s diverges:\n%s",
                name,
                json.dumps(self.diff(declared), indent=2, sort_keys=True),
            )
        self._client.write(name, desired.to_document())
        self._applied[name] = desired
        logger.info("%s template %s", action.capitalize(), name)
        return self.state(name)

    def converge(
        self, declared_templates: Iterable[DeclaredTemplate], *, dry_run: bool = False
    ) -> ConvergeReport:
        """Flush every declared template in turn.

        A write failure is recorded against its template and does not stop
        the others; a listing failure aborts before anything is written.
        """
        declared_list = list(declared_templates)
        snapshot = self.snapshot
        logger.info(
            "Reconciling %d declared template(s) against %d remote template(s)",
            len(declared_list),
            len(snapshot),
        )

        outcomes: list[TemplateOutcome] = []
        for declared in declared_list:
            action = self.plan(declared)
            if dry_run:
                outcomes.append(
                    TemplateOutcome(declared.name, action, _projected_state(declared))
                )
                if action != "unchanged":
                    logger.info("Would %s template %s", _VERBS[action], declared.name)
                continue
            try:
                state = self.flush(declared)
            except RemoteWriteFailed as exc:
                logger.error("Failed to converge template %s: %s", declared.name, exc)
                outcomes.append(
                    TemplateOutcome(
                        declared.name, "failed", self.state(declared.name), error=str(exc)
                    )
                )
                continue
            outcomes.append(TemplateOutcome(declared.name, action, state))

        report = ConvergeReport(tuple(outcomes), dry_run=dry_run)
        logger.info("Reconcile finished: %s", report.counts() or "nothing declared")
        return report


_VERBS = {"created": "create", "updated": "update", "deleted": "delete"}


def _projected_state(declared: DeclaredTemplate) -> TemplateState:
    if declared.ensure == "absent":
        return TemplateState(name=declared.name, ensure="absent")
    return TemplateState(name=declared.name, ensure="present", content=declared.desired())
