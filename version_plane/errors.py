class VersionPlaneError(Exception):
    """Base exception for this project."""


class RepoError(VersionPlaneError):
    """A user error.

    The message is the one line reported to the operator. The command that
    raised it has no further side effects.
    """


class NotInitialized(RepoError):
    def __init__(self) -> None:
        super().__init__("Not in an initialized gitlet directory.")


class AlreadyInitialized(RepoError):
    def __init__(self) -> None:
        super().__init__(
            "A gitlet version-control system already exists "
            "in the current directory."
        )


class EmptyCommit(RepoError):
    def __init__(self) -> None:
        super().__init__("No changes added to the commit.")


class BranchError(RepoError):
    """Unknown, duplicate or active branch."""


class UnknownCommit(RepoError):
    def __init__(self, commit_id: str) -> None:
        self.commit_id = commit_id
        super().__init__("No commit with that id exists.")


class FileNotTracked(RepoError):
    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__("File does not exist in that commit.")


class UntrackedFileInTheWay(RepoError):
    """Raised when a checkout, reset or merge would overwrite an untracked file.

    Attributes:
        filenames: The untracked working-tree files that block the operation.
    """

    def __init__(self, filenames: list[str]) -> None:
        self.filenames = filenames
        super().__init__(
            "There is an untracked file in the way; delete it or add it first."
        )


class UncommittedChanges(RepoError):
    def __init__(self) -> None:
        super().__init__("You have uncommitted changes.")


class IntegrityError(VersionPlaneError):
    """The on-disk history is inconsistent. Fatal for the current command."""


class ObjectNotFound(IntegrityError):
    """Raised when a blob or commit record is missing from the object store.

    Attributes:
        object_id: The digest that could not be resolved.
    """

    def __init__(self, kind: str, object_id: str) -> None:
        self.kind = kind
        self.object_id = object_id
        super().__init__(f"Missing {kind} object {object_id}")
