from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from version_plane.impl.memory import MemoryRepoData, create_memory_repository
from version_plane.impl.sql import Base, create_sql_repository
from version_plane.repo import Repository


class FakeClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


# We pass a "RepoProvider" object that can create a repo at a location.
# For persistence tests, we call it, do stuff, then call it again on the same
# location and expect the same history.


class RepoProvider:
    def __init__(self) -> None:
        self.clock = FakeClock()

    def create(self, path: Path) -> Repository:
        raise NotImplementedError()

    def cleanup(self, repo: Repository) -> None:
        pass


class MemoryRepoProvider(RepoProvider):
    def __init__(self) -> None:
        super().__init__()
        self.data = MemoryRepoData()

    def create(self, path: Path) -> Repository:
        work_path = path / "work"
        work_path.mkdir(exist_ok=True)
        # Memory repo keeps history in the shared data, files in work_path
        return create_memory_repository(work_path, self.data, clock=self.clock)


class SqlRepoProvider(RepoProvider):
    def __init__(self) -> None:
        super().__init__()
        self.engine = None

    def create(self, path: Path) -> Repository:
        work_path = path / "work"
        work_path.mkdir(exist_ok=True)
        db_url = f"sqlite:///{path / 'repo.db'}"

        # Recreate the engine to simulate an application restart
        if self.engine:
            self.engine.dispose()

        self.engine = create_engine(db_url)
        Base.metadata.create_all(self.engine)
        Session = sessionmaker(bind=self.engine)
        return create_sql_repository(work_path, Session, clock=self.clock)

    def cleanup(self, repo: Repository) -> None:
        if self.engine:
            self.engine.dispose()


PROVIDERS = [
    MemoryRepoProvider,
    SqlRepoProvider,
]
PROVIDER_IDS = ["memory", "sql"]


@pytest.fixture(params=PROVIDERS, ids=PROVIDER_IDS)
def provider(request):
    return request.param()


@pytest.fixture
def repo(tmp_path: Path, provider: RepoProvider):
    """An initialized repository on every backend."""
    repo = provider.create(tmp_path)
    repo.init()
    yield repo
    provider.cleanup(repo)


@pytest.fixture
def work(repo: Repository) -> Path:
    return repo.worktree.root
