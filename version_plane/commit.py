import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from version_plane.base import Blob, ObjectStore
from version_plane.errors import EmptyCommit, RepoError

if TYPE_CHECKING:
    from version_plane.stage import StagingArea

logger = logging.getLogger(__name__)

INITIAL_MESSAGE = "initial commit"
LOG_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Smallest step a child commit's timestamp is ahead of its parent.
TICK = timedelta(microseconds=1)


def blob_digest(data: Blob) -> str:
    return hashlib.sha1(data).hexdigest()


def commit_digest(
    message: str,
    timestamp: datetime,
    parent_id: str | None,
    tracked: dict[str, str],
) -> str:
    """Compute a content-addressable commit id.

    Hashes the message, timestamp, parent pointer and the sorted
    filename -> blob id map, so identical inputs always yield the same id.
    """
    h = hashlib.sha1()
    for part in (message, timestamp.isoformat(), parent_id or ""):
        h.update(part.encode("utf-8"))
        h.update(b"\0")
    for name in sorted(tracked):
        h.update(name.encode("utf-8"))
        h.update(b"\0")
        h.update(tracked[name].encode("ascii"))
        h.update(b"\0")
    return h.hexdigest()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def stamp_after(parent: "Commit | None", now: datetime) -> datetime:
    """Return a timestamp for a child of parent that is strictly later than it."""
    if parent is not None and now <= parent.timestamp:
        return parent.timestamp + TICK
    return now


@dataclass(frozen=True)
class Commit:
    """
    Immutable snapshot of tracked files plus message, timestamp and parent.
    """

    id: str
    message: str
    timestamp: datetime
    parent_id: str | None
    tracked: dict[str, str] = field(default_factory=dict, hash=False)

    @classmethod
    def create(
        cls,
        message: str,
        timestamp: datetime,
        parent_id: str | None,
        tracked: dict[str, str],
    ) -> "Commit":
        tracked = dict(tracked)
        return cls(
            id=commit_digest(message, timestamp, parent_id, tracked),
            message=message,
            timestamp=timestamp,
            parent_id=parent_id,
            tracked=tracked,
        )

    def _repr_pretty_(self, p: Any, cycle: bool) -> None:
        if cycle:
            p.text("Commit(...)")
        else:
            with p.group(4, "Commit(", ")"):
                p.breakable()
                p.text(f"id={self.id[:7]},")
                p.breakable()
                p.text(f"message={self.message!r},")
                p.breakable()
                p.text("tracked=")
                p.pretty(self.tracked)
                p.breakable()

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def is_tracking(self, filename: str) -> bool:
        return filename in self.tracked

    def blob_id(self, filename: str) -> str | None:
        return self.tracked.get(filename)

    def filenames(self) -> list[str]:
        return sorted(self.tracked)

    def formatted_time(self) -> str:
        return self.timestamp.strftime(LOG_TIME_FORMAT)


def initial_commit(timestamp: datetime) -> Commit:
    return Commit.create(INITIAL_MESSAGE, timestamp, None, {})


def build_commit(
    message: str,
    timestamp: datetime,
    parent: Commit,
    stage: "StagingArea",
    objects: ObjectStore,
    allow_empty: bool = False,
) -> Commit:
    """Snapshot the staging area on top of parent and persist the result.

    Every staged blob is written to the object store before the commit
    record. Advancing the branch head and clearing the stage is left to
    the caller.
    """
    if not message:
        raise RepoError("Please enter a commit message.")
    if not stage.is_dirty() and not allow_empty:
        raise EmptyCommit()

    tracked = stage.apply(parent.tracked, objects)
    commit = Commit.create(message, timestamp, parent.id, tracked)
    objects.put_commit(commit)

    logger.debug(
        "Created commit %s on top of %s (%d files)",
        commit.id[:7],
        parent.id[:7],
        len(tracked),
    )
    return commit
