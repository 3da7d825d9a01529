"""Observe/commit change tracking for DID documents.

The tracker keeps a value snapshot of the document taken by
:meth:`MutationTracker.observe` and, on :meth:`MutationTracker.commit`,
diffs it against the current tree with RFC 6902 JSON Patch.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import jsonpatch

from .constants import DID_DOC_CONTEXTS, JSON_LD_PATCH_CONTEXT_URL
from .errors import NotObservingError
from .types import PatchDocument

LOGGER = logging.getLogger(__name__)

__all__ = [
    "DocumentMeta",
    "MutationTracker",
    "TrackerState",
    "apply_patch",
    "diff",
    "patch_context",
]


@dataclass(slots=True)
class DocumentMeta:
    """Out-of-band document metadata; ``sequence`` numbers committed patches."""

    sequence: int = 0


@dataclass(frozen=True, slots=True)
class TrackerState:
    """Saved tracker state used to roll back a commit."""

    baseline: dict[str, Any] | None
    sequence: int


def patch_context() -> list[Any]:
    """Return the ``@context`` of a patch document."""

    return [
        JSON_LD_PATCH_CONTEXT_URL,
        {"value": {"@id": "jldp:value", "@context": list(DID_DOC_CONTEXTS)}},
    ]


def diff(baseline: Mapping[str, Any], current: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Return the JSON Patch operations turning ``baseline`` into ``current``."""

    return list(jsonpatch.make_patch(dict(baseline), dict(current)).patch)


def apply_patch(
    baseline: Mapping[str, Any], patch: Sequence[Mapping[str, Any]]
) -> dict[str, Any]:
    """Replay ``patch`` over a copy of ``baseline``."""

    return jsonpatch.apply_patch(
        copy.deepcopy(dict(baseline)), [dict(op) for op in patch], in_place=True
    )


class MutationTracker:
    """Two-state (idle/observing) tracker over a document snapshot source.

    Args:
        snapshot: Callable returning the current document tree.
        meta: Metadata whose ``sequence`` is advanced by each commit.
        logger: Optional logger; defaults to the module logger.
    """

    def __init__(
        self,
        snapshot: Callable[[], Mapping[str, Any]],
        *,
        meta: DocumentMeta | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._snapshot = snapshot
        self.meta = meta if meta is not None else DocumentMeta()
        self._baseline: dict[str, Any] | None = None
        self._logger = logger or LOGGER

    @property
    def is_observing(self) -> bool:
        return self._baseline is not None

    def observe(self) -> None:
        """Start tracking; an active window is discarded and restarted."""

        if self.is_observing:
            self.unobserve()
        self._baseline = copy.deepcopy(dict(self._snapshot()))

    def unobserve(self) -> None:
        """Stop tracking without producing a patch."""

        if self._baseline is None:
            raise NotObservingError("Not observing changes.")
        self._baseline = None

    def commit(self) -> PatchDocument:
        """Stop tracking and return the sequenced patch.

        ``sequence`` in the result is the value before this commit; the
        metadata counter advances by one even when the patch is empty.
        """

        if self._baseline is None:
            raise NotObservingError("Not observing changes.")
        current = copy.deepcopy(dict(self._snapshot()))
        operations = diff(self._baseline, current)
        sequence = self.meta.sequence
        self.meta.sequence += 1
        self._baseline = None
        self._logger.debug(
            "Committed document changes",
            extra={
                "target": current.get("id"),
                "sequence": sequence,
                "operations": len(operations),
            },
        )
        return {
            "@context": patch_context(),
            "patch": operations,
            "sequence": sequence,
            "target": current.get("id"),
        }

    def save_state(self) -> TrackerState:
        return TrackerState(
            baseline=copy.deepcopy(self._baseline), sequence=self.meta.sequence
        )

    def restore_state(self, state: TrackerState) -> None:
        """Return to a state captured by :meth:`save_state`."""

        self._baseline = copy.deepcopy(state.baseline)
        self.meta.sequence = state.sequence
