from typing import Any

from version_plane.base import Blob, ObjectStore


class StagingArea:
    """
    Pending changes that are not yet committed to the head snapshot.

    A filename is either staged for addition or marked for removal, never
    both: whichever operation happened last wins.
    """

    def __init__(
        self,
        added: dict[str, Blob] | None = None,
        removed: set[str] | None = None,
    ) -> None:
        self.added: dict[str, Blob] = dict(added or {})
        self.removed: set[str] = set(removed or ())

    def _repr_pretty_(self, p: Any, cycle: bool) -> None:
        if cycle:
            p.text("StagingArea(...)")
        else:
            with p.group(4, "StagingArea(", ")"):
                p.breakable()
                p.text(f"added={sorted(self.added)},")
                p.breakable()
                p.text(f"removed={sorted(self.removed)},")
                p.breakable()

    def get(self, filename: str) -> Blob | None:
        """Return the staged content of filename, if any."""
        return self.added.get(filename)

    def is_staged(self, filename: str) -> bool:
        return filename in self.added

    def is_removed(self, filename: str) -> bool:
        return filename in self.removed

    def stage(self, filename: str, data: Blob) -> None:
        self.removed.discard(filename)
        self.added[filename] = data

    def unstage(self, filename: str) -> None:
        self.added.pop(filename, None)

    def mark_removed(self, filename: str) -> None:
        self.added.pop(filename, None)
        self.removed.add(filename)

    def unmark_removed(self, filename: str) -> None:
        self.removed.discard(filename)

    def is_dirty(self) -> bool:
        return len(self.added) > 0 or len(self.removed) > 0

    def clear(self) -> None:
        self.added.clear()
        self.removed.clear()

    def staged_files(self) -> list[str]:
        return sorted(self.added)

    def removed_files(self) -> list[str]:
        return sorted(self.removed)

    def apply(self, tracked: dict[str, str], objects: ObjectStore) -> dict[str, str]:
        """Return tracked with the staged changes applied.

        Staged contents are written to objects as a side effect.
        """
        result = dict(tracked)
        for filename, data in self.added.items():
            result[filename] = objects.put(data)
        for filename in self.removed:
            result.pop(filename, None)
        return result
