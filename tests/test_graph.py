from datetime import datetime, timedelta, timezone

import pytest

from version_plane.base import RepoState
from version_plane.commit import Commit, initial_commit
from version_plane.errors import BranchError, IntegrityError, UnknownCommit
from version_plane.graph import CommitGraph
from version_plane.impl.memory import MemoryObjectStore, MemoryRepoData

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def graph():
    objects = MemoryObjectStore(MemoryRepoData())
    root = initial_commit(T0)
    objects.put_commit(root)
    return CommitGraph(objects, RepoState(branches={"master": root.id}))


def child(graph: CommitGraph, parent: Commit, message: str, seconds: int) -> Commit:
    commit = Commit.create(
        message, parent.timestamp + timedelta(seconds=seconds), parent.id, {}
    )
    graph.objects.put_commit(commit)
    return commit


def test_add_branch_points_at_head(graph):
    graph.add_branch("dev")

    assert graph.branches() == ["dev", "master"]
    assert graph.branch_head("dev").id == graph.head_id()


def test_add_existing_branch(graph):
    with pytest.raises(BranchError, match="already exists"):
        graph.add_branch("master")


def test_switch_branch(graph):
    graph.add_branch("dev")
    graph.switch_branch("dev")
    assert graph.active_branch == "dev"

    with pytest.raises(BranchError, match="No such branch exists"):
        graph.switch_branch("nope")
    assert graph.active_branch == "dev"


def test_remove_branch(graph):
    graph.add_branch("dev")
    graph.remove_branch("dev")
    assert graph.branches() == ["master"]

    with pytest.raises(BranchError, match="does not exist"):
        graph.remove_branch("dev")
    with pytest.raises(BranchError, match="current branch"):
        graph.remove_branch("master")


def test_history_walks_to_root(graph):
    root = graph.head()
    a = child(graph, root, "a", 1)
    b = child(graph, a, "b", 1)
    graph.set_head(b.id)

    assert [c.message for c in graph.history()] == ["b", "a", "initial commit"]


def test_split_point_of_diverged_branches(graph):
    root = graph.head()
    base = child(graph, root, "base", 1)
    left = child(graph, child(graph, base, "l1", 1), "l2", 5)
    right = child(graph, base, "r1", 3)

    assert graph.find_split_point(left.id, right.id).id == base.id
    assert graph.find_split_point(right.id, left.id).id == base.id


def test_split_point_of_ancestor(graph):
    root = graph.head()
    a = child(graph, root, "a", 1)
    b = child(graph, a, "b", 1)

    assert graph.find_split_point(a.id, b.id).id == a.id
    assert graph.find_split_point(b.id, a.id).id == a.id
    assert graph.find_split_point(b.id, b.id).id == b.id


def test_split_point_with_equal_timestamps_on_both_sides(graph):
    root = graph.head()
    base = child(graph, root, "base", 1)
    left = child(graph, base, "left", 2)
    right = child(graph, base, "right", 2)

    assert graph.find_split_point(left.id, right.id).id == base.id
    assert graph.find_split_point(right.id, left.id).id == base.id


def test_split_point_of_unrelated_roots(graph):
    other_root = Commit.create("other", T0 + timedelta(seconds=10), None, {})
    graph.objects.put_commit(other_root)

    with pytest.raises(IntegrityError):
        graph.find_split_point(graph.head_id(), other_root.id)


def test_resolve_by_prefix(graph):
    head = graph.head()

    assert graph.resolve(head.id) == head
    assert graph.resolve(head.id[:8]) == head
    with pytest.raises(UnknownCommit):
        graph.resolve(head.id[:2])
    with pytest.raises(UnknownCommit):
        graph.resolve("deadbeef")
