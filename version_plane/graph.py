import logging
from typing import Any, Iterator

from version_plane.base import ObjectStore, RepoState
from version_plane.commit import Commit
from version_plane.errors import BranchError, IntegrityError, UnknownCommit

logger = logging.getLogger(__name__)

MIN_PREFIX_LENGTH = 4


class CommitGraph:
    """
    Branch table over the commit history.

    Every commit has at most one parent, so history is a tree and the split
    point of two heads is found by walking parent links.
    """

    def __init__(self, objects: ObjectStore, state: RepoState) -> None:
        self.objects = objects
        self.state = state

    def _repr_pretty_(self, p: Any, cycle: bool) -> None:
        if cycle:
            p.text("CommitGraph(...)")
        else:
            with p.group(4, "CommitGraph(", ")"):
                p.breakable()
                p.text(f"active='{self.active_branch}',")
                p.breakable()
                p.text("branches=")
                p.pretty(self.state.branches)
                p.breakable()

    @property
    def active_branch(self) -> str:
        return self.state.active_branch

    def branches(self) -> list[str]:
        return sorted(self.state.branches)

    def has_branch(self, name: str) -> bool:
        return name in self.state.branches

    def head_id(self) -> str:
        return self.state.branches[self.state.active_branch]

    def head(self) -> Commit:
        return self.objects.get_commit(self.head_id())

    def branch_head(self, name: str) -> Commit:
        if name not in self.state.branches:
            raise BranchError("No such branch exists.")
        return self.objects.get_commit(self.state.branches[name])

    def get(self, commit_id: str) -> Commit:
        return self.objects.get_commit(commit_id)

    def resolve(self, commit_id: str) -> Commit:
        """Look up a commit by full id or by an unambiguous id prefix."""
        if self.objects.has_commit(commit_id):
            return self.objects.get_commit(commit_id)
        if len(commit_id) >= MIN_PREFIX_LENGTH:
            matches = [c for c in self.objects.commit_ids() if c.startswith(commit_id)]
            if len(matches) == 1:
                return self.objects.get_commit(matches[0])
        raise UnknownCommit(commit_id)

    def set_head(self, commit_id: str) -> None:
        """Point the active branch at commit_id."""
        logger.debug(
            "Moving %s from %s to %s",
            self.active_branch,
            self.head_id()[:7],
            commit_id[:7],
        )
        self.state.branches[self.state.active_branch] = commit_id

    def add_branch(self, name: str) -> None:
        if name in self.state.branches:
            raise BranchError("A branch with that name already exists.")
        self.state.branches[name] = self.head_id()
        logger.debug("Created branch %s at %s", name, self.head_id()[:7])

    def switch_branch(self, name: str) -> None:
        """Change the active branch. The working tree is left untouched."""
        if name not in self.state.branches:
            raise BranchError("No such branch exists.")
        self.state.active_branch = name

    def remove_branch(self, name: str) -> None:
        if name not in self.state.branches:
            raise BranchError("A branch with that name does not exist.")
        if name == self.state.active_branch:
            raise BranchError("Cannot remove the current branch.")
        del self.state.branches[name]
        logger.debug("Removed branch %s", name)

    def history(self, commit_id: str | None = None) -> Iterator[Commit]:
        """Yield a commit and then each of its ancestors, newest first."""
        current: str | None = commit_id or self.head_id()
        while current is not None:
            commit = self.objects.get_commit(current)
            yield commit
            current = commit.parent_id

    def find_split_point(self, a_id: str, b_id: str) -> Commit:
        """Return the nearest common ancestor of two commits.

        Both chains are walked upward, always stepping back from the commit
        with the later timestamp, until they meet. This is exact as long as
        timestamps strictly increase from parent to child.
        """
        a = self.objects.get_commit(a_id)
        b = self.objects.get_commit(b_id)
        while a.id != b.id:
            if a.timestamp < b.timestamp:
                step, b = b, self._parent(b)
            else:
                step, a = a, self._parent(a)
            if step.parent_id is None:
                raise IntegrityError(
                    f"Commits {a_id[:7]} and {b_id[:7]} share no ancestor"
                )
        return a

    def _parent(self, commit: Commit) -> Commit:
        if commit.parent_id is None:
            return commit
        return self.objects.get_commit(commit.parent_id)
