import logging
from dataclasses import dataclass, field

from version_plane.base import Blob
from version_plane.commit import Commit

logger = logging.getLogger(__name__)

CONFLICT_START = b"<<<<<<< HEAD\n"
CONFLICT_SEPARATOR = b"=======\n"
CONFLICT_END = b">>>>>>>\n"

NO_OP = "no_op"
FAST_FORWARD = "fast_forward"
THREE_WAY = "three_way"
CONFLICT = "conflict"

_MESSAGES = {
    NO_OP: "Given branch is an ancestor of the current branch.",
    FAST_FORWARD: "Current branch fast-forwarded.",
    CONFLICT: "Encountered a merge conflict.",
}


@dataclass(frozen=True)
class MergePlan:
    """File-level outcome of comparing current and given against the split point.

    Attributes:
        take: Files whose given version replaces the current one (filename -> blob id).
        drop: Files removed on the given side and untouched on the current side.
        conflicts: Files changed differently on both sides
            (filename -> (current blob id, given blob id), None when deleted).
    """

    take: dict[str, str] = field(default_factory=dict)
    drop: tuple[str, ...] = ()
    conflicts: dict[str, tuple[str | None, str | None]] = field(default_factory=dict)

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0


@dataclass(frozen=True)
class MergeResult:
    """Result of a merge operation."""

    strategy: str  # "no_op", "fast_forward", "three_way", "conflict"
    commit: str | None = None
    taken: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.strategy != CONFLICT

    @property
    def message(self) -> str | None:
        return _MESSAGES.get(self.strategy)


def merge_message(current_branch: str, given_branch: str) -> str:
    return f"Merged {current_branch} with {given_branch}."


def plan_merge(split: Commit, current: Commit, given: Commit) -> MergePlan:
    """Classify every file tracked by current or given.

    A file is compared by blob id across the three snapshots:

    - unchanged in current, changed in given: take the given version
      (or drop the file if given removed it);
    - unchanged in given, or changed identically on both sides: keep current;
    - changed differently on both sides: conflict.
    """
    take: dict[str, str] = {}
    drop: list[str] = []
    conflicts: dict[str, tuple[str | None, str | None]] = {}

    for filename in sorted(set(current.tracked) | set(given.tracked)):
        base = split.blob_id(filename)
        ours = current.blob_id(filename)
        theirs = given.blob_id(filename)

        if theirs == base or ours == theirs:
            continue
        if ours == base:
            if theirs is None:
                drop.append(filename)
            else:
                take[filename] = theirs
        else:
            conflicts[filename] = (ours, theirs)

    logger.debug(
        "Merge plan: %d taken, %d dropped, %d conflicting",
        len(take),
        len(drop),
        len(conflicts),
    )
    return MergePlan(take=take, drop=tuple(drop), conflicts=conflicts)


def conflict_contents(current: Blob | None, given: Blob | None) -> Blob:
    """Render both versions of a conflicting file between conflict markers.

    A side that deleted the file contributes empty content.
    """
    return b"".join(
        [
            CONFLICT_START,
            current or b"",
            CONFLICT_SEPARATOR,
            given or b"",
            CONFLICT_END,
        ]
    )
