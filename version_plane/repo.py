import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterator

from version_plane.base import DEFAULT_BRANCH, MetadataStore, ObjectStore, RepoState
from version_plane.commit import (
    Commit,
    blob_digest,
    build_commit,
    initial_commit,
    stamp_after,
    utcnow,
)
from version_plane.errors import (
    AlreadyInitialized,
    BranchError,
    FileNotTracked,
    NotInitialized,
    RepoError,
    UncommittedChanges,
    UntrackedFileInTheWay,
)
from version_plane.graph import CommitGraph
from version_plane.merge import (
    CONFLICT,
    FAST_FORWARD,
    NO_OP,
    THREE_WAY,
    MergeResult,
    conflict_contents,
    merge_message,
    plan_merge,
)
from version_plane.stage import StagingArea
from version_plane.worktree import WorkingTree

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass
class Transaction:
    """Repository metadata loaded for the duration of one command."""

    graph: CommitGraph
    stage: StagingArea


@dataclass
class Status:
    branches: list[str]
    active_branch: str
    staged: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)


class Repository:
    """
    A working tree together with its object store and metadata.

    Every command loads the metadata record, works on it and saves it back
    in one step when the command finishes. A command that raises saves
    nothing, so advancing a branch head and clearing the staging area
    always land together.
    """

    def __init__(
        self,
        work_path: str | Path,
        objects: ObjectStore,
        metadata: MetadataStore,
        clock: Clock = utcnow,
    ) -> None:
        self.worktree = WorkingTree(work_path)
        self.objects = objects
        self.metadata = metadata
        self.clock = clock

    def _repr_pretty_(self, p: Any, cycle: bool) -> None:
        if cycle:
            p.text("Repository(...)")
        else:
            with p.group(4, "Repository(", ")"):
                p.breakable()
                p.text(f"path={self.worktree.root},")
                p.breakable()
                p.text("objects=")
                p.pretty(self.objects)
                p.breakable()

    def is_initialized(self) -> bool:
        return self.metadata.exists()

    @contextmanager
    def transaction(self, save: bool = True) -> Iterator[Transaction]:
        if not self.metadata.exists():
            raise NotInitialized()
        state = self.metadata.load()
        txn = Transaction(
            graph=CommitGraph(self.objects, state),
            stage=StagingArea(state.staged, state.removed),
        )
        yield txn
        if save:
            state.staged = dict(txn.stage.added)
            state.removed = set(txn.stage.removed)
            self.metadata.save(state)

    def _now(self, parent: Commit | None) -> datetime:
        return stamp_after(parent, self.clock())

    def init(self) -> Commit:
        if self.metadata.exists():
            raise AlreadyInitialized()
        commit = initial_commit(self._now(None))
        self.objects.put_commit(commit)
        self.metadata.save(RepoState(branches={DEFAULT_BRANCH: commit.id}))
        logger.info("Initialized repository in %s", self.worktree.root)
        return commit

    def add(self, filename: str) -> None:
        with self.transaction() as txn:
            if not self.worktree.exists(filename):
                raise RepoError("File does not exist.")
            data = self.worktree.read(filename)
            txn.stage.unmark_removed(filename)
            if txn.graph.head().blob_id(filename) == blob_digest(data):
                txn.stage.unstage(filename)
            else:
                txn.stage.stage(filename, data)

    def commit(self, message: str, timestamp: datetime | None = None) -> Commit:
        with self.transaction() as txn:
            head = txn.graph.head()
            commit = build_commit(
                message,
                stamp_after(head, timestamp or self.clock()),
                head,
                txn.stage,
                self.objects,
            )
            txn.graph.set_head(commit.id)
            txn.stage.clear()
        return commit

    def rm(self, filename: str) -> None:
        with self.transaction() as txn:
            tracked = txn.graph.head().is_tracking(filename)
            if not tracked and not txn.stage.is_staged(filename):
                raise RepoError("No reason to remove the file.")
            txn.stage.unstage(filename)
            if tracked:
                txn.stage.mark_removed(filename)
                self.worktree.delete(filename)

    def log(self) -> list[Commit]:
        with self.transaction(save=False) as txn:
            return list(txn.graph.history())

    def global_log(self) -> list[Commit]:
        if not self.metadata.exists():
            raise NotInitialized()
        commits = [self.objects.get_commit(c) for c in self.objects.commit_ids()]
        return sorted(commits, key=lambda c: c.timestamp, reverse=True)

    def find(self, message: str) -> list[str]:
        ids = [c.id for c in self.global_log() if c.message == message]
        if not ids:
            raise RepoError("Found no commit with that message.")
        return ids

    def status(self) -> Status:
        with self.transaction(save=False) as txn:
            head = txn.graph.head()
            stage = txn.stage
            files = set(self.worktree.files())

            modified = []
            for filename in sorted(set(head.tracked) | set(stage.added)):
                if stage.is_removed(filename):
                    continue
                if filename not in files:
                    modified.append(f"{filename} (deleted)")
                    continue
                expected = (
                    blob_digest(stage.added[filename])
                    if stage.is_staged(filename)
                    else head.blob_id(filename)
                )
                if blob_digest(self.worktree.read(filename)) != expected:
                    modified.append(f"{filename} (modified)")

            untracked = [
                f
                for f in sorted(files)
                if stage.is_removed(f)
                or not (head.is_tracking(f) or stage.is_staged(f))
            ]
            return Status(
                branches=txn.graph.branches(),
                active_branch=txn.graph.active_branch,
                staged=stage.staged_files(),
                removed=stage.removed_files(),
                modified=modified,
                untracked=untracked,
            )

    def checkout_file(self, filename: str, commit_id: str | None = None) -> None:
        """Restore filename in the working tree from a commit (default: head)."""
        with self.transaction(save=False) as txn:
            commit = (
                txn.graph.resolve(commit_id)
                if commit_id is not None
                else txn.graph.head()
            )
            blob_id = commit.blob_id(filename)
            if blob_id is None:
                raise FileNotTracked(filename)
            self.worktree.write(filename, self.objects.get(blob_id))

    def checkout_branch(self, branch: str) -> None:
        with self.transaction() as txn:
            if not txn.graph.has_branch(branch):
                raise BranchError("No such branch exists.")
            if branch == txn.graph.active_branch:
                raise RepoError("No need to checkout the current branch.")
            self._replace_tree(txn.graph.head(), txn.graph.branch_head(branch))
            txn.stage.clear()
            txn.graph.switch_branch(branch)
        logger.info("Switched to branch %s", branch)

    def reset(self, commit_id: str) -> Commit:
        with self.transaction() as txn:
            target = txn.graph.resolve(commit_id)
            self._replace_tree(txn.graph.head(), target)
            txn.graph.set_head(target.id)
            txn.stage.clear()
        return target

    def branch(self, name: str) -> None:
        with self.transaction() as txn:
            txn.graph.add_branch(name)

    def rm_branch(self, name: str) -> None:
        with self.transaction() as txn:
            txn.graph.remove_branch(name)

    def branches(self) -> list[str]:
        with self.transaction(save=False) as txn:
            return txn.graph.branches()

    def head(self) -> Commit:
        with self.transaction(save=False) as txn:
            return txn.graph.head()

    def merge(self, branch: str) -> MergeResult:
        with self.transaction() as txn:
            graph, stage = txn.graph, txn.stage
            if stage.is_dirty():
                raise UncommittedChanges()
            if not graph.has_branch(branch):
                raise BranchError("A branch with that name does not exist.")
            if branch == graph.active_branch:
                raise RepoError("Cannot merge a branch with itself.")

            current = graph.head()
            given = graph.branch_head(branch)
            self._check_untracked(current, given)
            split = graph.find_split_point(current.id, given.id)

            if split.id == given.id:
                return MergeResult(NO_OP)
            if split.id == current.id:
                self._replace_tree(current, given)
                graph.set_head(given.id)
                stage.clear()
                return MergeResult(FAST_FORWARD, commit=given.id)

            plan = plan_merge(split, current, given)
            for filename, blob_id in plan.take.items():
                data = self.objects.get(blob_id)
                self.worktree.write(filename, data)
                stage.stage(filename, data)
            for filename in plan.drop:
                stage.mark_removed(filename)
                self.worktree.delete(filename)
            for filename, (ours, theirs) in plan.conflicts.items():
                self.worktree.write(
                    filename,
                    conflict_contents(
                        self.objects.get(ours) if ours else None,
                        self.objects.get(theirs) if theirs else None,
                    ),
                )

            taken, removed = tuple(plan.take), plan.drop
            if plan.has_conflicts:
                logger.info(
                    "Merge of %s stopped on %d conflicts", branch, len(plan.conflicts)
                )
                return MergeResult(
                    CONFLICT, taken=taken, removed=removed, conflicts=tuple(plan.conflicts)
                )

            commit = build_commit(
                merge_message(graph.active_branch, branch),
                self._now(current),
                current,
                stage,
                self.objects,
                allow_empty=True,
            )
            graph.set_head(commit.id)
            stage.clear()
            return MergeResult(THREE_WAY, commit=commit.id, taken=taken, removed=removed)

    def _check_untracked(self, current: Commit, target: Commit) -> None:
        blocking = [
            f
            for f in self.worktree.files()
            if not current.is_tracking(f) and target.is_tracking(f)
        ]
        if blocking:
            raise UntrackedFileInTheWay(blocking)

    def _replace_tree(self, current: Commit, target: Commit) -> None:
        """Make the working tree hold exactly the files tracked by target."""
        self._check_untracked(current, target)
        for filename in current.filenames():
            if not target.is_tracking(filename):
                self.worktree.delete(filename)
        for filename, blob_id in target.tracked.items():
            self.worktree.write(filename, self.objects.get(blob_id))
