from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from version_plane.commit import Commit

Blob = bytes

DEFAULT_BRANCH = "master"


@dataclass
class RepoState:
    """
    Mutable repository metadata: the branch table, the active branch and the
    staging area. Loaded and saved as a whole around every command.
    """

    branches: dict[str, str]
    active_branch: str = DEFAULT_BRANCH
    staged: dict[str, Blob] = field(default_factory=dict)
    removed: set[str] = field(default_factory=set)


class ObjectStore:
    """
    Content-addressed store of blobs and commit records.

    Objects are immutable once stored and are never deleted.
    """

    def put(self, data: Blob) -> str:
        """Store a blob and return its id. Storing identical bytes again is a no-op."""
        raise NotImplementedError()

    def get(self, blob_id: str) -> Blob:
        """Return the blob stored under blob_id or raise ObjectNotFound."""
        raise NotImplementedError()

    def exists(self, blob_id: str) -> bool:
        """Check whether a blob is stored under blob_id."""
        raise NotImplementedError()

    def put_commit(self, commit: "Commit") -> None:
        """Persist a commit record under its id."""
        raise NotImplementedError()

    def get_commit(self, commit_id: str) -> "Commit":
        """Return the commit stored under commit_id or raise ObjectNotFound."""
        raise NotImplementedError()

    def has_commit(self, commit_id: str) -> bool:
        """Check whether a commit is stored under commit_id."""
        raise NotImplementedError()

    def commit_ids(self) -> Iterable[str]:
        """Iterate over the ids of every stored commit."""
        raise NotImplementedError()


class MetadataStore:
    """
    Durable home of the RepoState record.

    The record is read and rewritten as a whole, so a save either applies
    every change of a command or none of them.
    """

    def exists(self) -> bool:
        """Check if the repository metadata has been initialized."""
        raise NotImplementedError()

    def load(self) -> RepoState:
        """Read the current repository state."""
        raise NotImplementedError()

    def save(self, state: RepoState) -> None:
        """Replace the stored repository state with state."""
        raise NotImplementedError()
