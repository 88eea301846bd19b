import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from version_plane.base import Blob, MetadataStore, ObjectStore, RepoState
from version_plane.commit import Commit, blob_digest
from version_plane.errors import ObjectNotFound
from version_plane.repo import Repository

logger = logging.getLogger(__name__)


@dataclass
class MemoryRepoData:
    """Shared backing data, so several repository instances can see one history."""

    blobs: dict[str, Blob] = field(default_factory=dict)
    commits: dict[str, Commit] = field(default_factory=dict)
    state: RepoState | None = None


class MemoryObjectStore(ObjectStore):
    def __init__(self, data: MemoryRepoData) -> None:
        self.data = data

    def _repr_pretty_(self, p: Any, cycle: bool) -> None:
        p.text(
            f"MemoryObjectStore(blobs={len(self.data.blobs)}, "
            f"commits={len(self.data.commits)})"
        )

    def put(self, data: Blob) -> str:
        blob_id = blob_digest(data)
        if blob_id not in self.data.blobs:
            self.data.blobs[blob_id] = bytes(data)
            logger.debug("Stored blob %s (%d bytes)", blob_id[:7], len(data))
        return blob_id

    def get(self, blob_id: str) -> Blob:
        try:
            return self.data.blobs[blob_id]
        except KeyError:
            raise ObjectNotFound("blob", blob_id) from None

    def exists(self, blob_id: str) -> bool:
        return blob_id in self.data.blobs

    def put_commit(self, commit: Commit) -> None:
        self.data.commits.setdefault(commit.id, commit)

    def get_commit(self, commit_id: str) -> Commit:
        try:
            return self.data.commits[commit_id]
        except KeyError:
            raise ObjectNotFound("commit", commit_id) from None

    def has_commit(self, commit_id: str) -> bool:
        return commit_id in self.data.commits

    def commit_ids(self) -> Iterable[str]:
        return list(self.data.commits)


class MemoryMetadataStore(MetadataStore):
    def __init__(self, data: MemoryRepoData) -> None:
        self.data = data

    def exists(self) -> bool:
        return self.data.state is not None

    def load(self) -> RepoState:
        assert self.data.state is not None
        # Callers mutate the loaded state freely; only save() publishes it.
        return copy.deepcopy(self.data.state)

    def save(self, state: RepoState) -> None:
        self.data.state = copy.deepcopy(state)


def create_memory_repository(
    work_path: str | Path, data: MemoryRepoData | None = None, **kwargs: Any
) -> Repository:
    data = data if data is not None else MemoryRepoData()
    return Repository(
        work_path,
        MemoryObjectStore(data),
        MemoryMetadataStore(data),
        **kwargs,
    )
