import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable

from sqlalchemy import (
    LargeBinary,
    ForeignKey,
    String,
    create_engine,
    delete,
    select,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
    selectinload,
    sessionmaker,
)

from version_plane.base import Blob, MetadataStore, ObjectStore, RepoState
from version_plane.commit import Commit, blob_digest
from version_plane.errors import NotInitialized, ObjectNotFound
from version_plane.repo import Repository
from version_plane.worktree import REPO_DIR

logger = logging.getLogger(__name__)

DB_FILENAME = "repo.db"
ACTIVE_BRANCH_KEY = "active_branch"


class Base(DeclarativeBase):
    pass


class BlobModel(Base):
    __tablename__ = "blobs"
    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)


class CommitModel(Base):
    __tablename__ = "commits"
    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    message: Mapped[str]
    # ISO 8601, so the exact datetime used for the id survives a round trip.
    timestamp: Mapped[str]
    parent_id: Mapped[str | None] = mapped_column(
        ForeignKey("commits.id"), nullable=True
    )

    files: Mapped[list["CommitFileModel"]] = relationship(
        "CommitFileModel", cascade="all, delete-orphan"
    )


class CommitFileModel(Base):
    __tablename__ = "commit_files"
    commit_id: Mapped[str] = mapped_column(ForeignKey("commits.id"), primary_key=True)
    filename: Mapped[str] = mapped_column(primary_key=True)
    blob_id: Mapped[str] = mapped_column(ForeignKey("blobs.id"))


class BranchModel(Base):
    __tablename__ = "branches"
    name: Mapped[str] = mapped_column(primary_key=True)
    commit_id: Mapped[str] = mapped_column(ForeignKey("commits.id"))


class RepoMetaModel(Base):
    __tablename__ = "repo_meta"
    key: Mapped[str] = mapped_column(primary_key=True)
    value: Mapped[str]


class StagedFileModel(Base):
    __tablename__ = "staged_files"
    filename: Mapped[str] = mapped_column(primary_key=True)
    content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)


class RemovedFileModel(Base):
    __tablename__ = "removed_files"
    filename: Mapped[str] = mapped_column(primary_key=True)


class SqlObjectStore(ObjectStore):
    """Object store on top of the blobs/commits tables.

    Every put is committed on its own; objects are immutable, so the order
    of independent writes does not matter.
    """

    def __init__(self, session_maker: Callable[[], Session]) -> None:
        self.session_maker = session_maker

    def _repr_pretty_(self, p: Any, cycle: bool) -> None:
        p.text("SqlObjectStore(...)")

    def put(self, data: Blob) -> str:
        blob_id = blob_digest(data)
        with self.session_maker() as session:
            if session.get(BlobModel, blob_id) is None:
                session.add(BlobModel(id=blob_id, content=data))
                session.commit()
                logger.debug("Stored blob %s (%d bytes)", blob_id[:7], len(data))
        return blob_id

    def get(self, blob_id: str) -> Blob:
        with self.session_maker() as session:
            blob = session.get(BlobModel, blob_id)
            if blob is None:
                raise ObjectNotFound("blob", blob_id)
            return blob.content

    def exists(self, blob_id: str) -> bool:
        with self.session_maker() as session:
            return session.get(BlobModel, blob_id) is not None

    def put_commit(self, commit: Commit) -> None:
        with self.session_maker() as session:
            if session.get(CommitModel, commit.id) is not None:
                return
            session.add(
                CommitModel(
                    id=commit.id,
                    message=commit.message,
                    timestamp=commit.timestamp.isoformat(),
                    parent_id=commit.parent_id,
                    files=[
                        CommitFileModel(filename=name, blob_id=blob_id)
                        for name, blob_id in commit.tracked.items()
                    ],
                )
            )
            session.commit()

    def get_commit(self, commit_id: str) -> Commit:
        with self.session_maker() as session:
            stmt = (
                select(CommitModel)
                .where(CommitModel.id == commit_id)
                .options(selectinload(CommitModel.files))
            )
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                raise ObjectNotFound("commit", commit_id)
            return Commit(
                id=row.id,
                message=row.message,
                timestamp=datetime.fromisoformat(row.timestamp),
                parent_id=row.parent_id,
                tracked={f.filename: f.blob_id for f in row.files},
            )

    def has_commit(self, commit_id: str) -> bool:
        with self.session_maker() as session:
            return session.get(CommitModel, commit_id) is not None

    def commit_ids(self) -> Iterable[str]:
        with self.session_maker() as session:
            return list(session.execute(select(CommitModel.id)).scalars().all())


class SqlMetadataStore(MetadataStore):
    """Branch table, active branch and staging area stored as plain tables.

    save() rewrites all of them inside a single database transaction.
    """

    def __init__(self, session_maker: Callable[[], Session]) -> None:
        self.session_maker = session_maker

    def exists(self) -> bool:
        with self.session_maker() as session:
            return session.get(RepoMetaModel, ACTIVE_BRANCH_KEY) is not None

    def load(self) -> RepoState:
        with self.session_maker() as session:
            active = session.get(RepoMetaModel, ACTIVE_BRANCH_KEY)
            if active is None:
                raise NotInitialized()
            branches = {
                b.name: b.commit_id
                for b in session.execute(select(BranchModel)).scalars()
            }
            staged = {
                s.filename: s.content
                for s in session.execute(select(StagedFileModel)).scalars()
            }
            removed = set(
                session.execute(select(RemovedFileModel.filename)).scalars().all()
            )
            return RepoState(
                branches=branches,
                active_branch=active.value,
                staged=staged,
                removed=removed,
            )

    def save(self, state: RepoState) -> None:
        with self.session_maker() as session:
            session.execute(delete(BranchModel))
            session.execute(delete(StagedFileModel))
            session.execute(delete(RemovedFileModel))
            session.add_all(
                BranchModel(name=name, commit_id=commit_id)
                for name, commit_id in state.branches.items()
            )
            session.add_all(
                StagedFileModel(filename=name, content=content)
                for name, content in state.staged.items()
            )
            session.add_all(RemovedFileModel(filename=name) for name in state.removed)
            session.merge(RepoMetaModel(key=ACTIVE_BRANCH_KEY, value=state.active_branch))
            session.commit()


def create_sql_repository(
    work_path: str | Path, session_maker: Callable[[], Session], **kwargs: Any
) -> Repository:
    return Repository(
        work_path,
        SqlObjectStore(session_maker),
        SqlMetadataStore(session_maker),
        **kwargs,
    )


def default_db_url(work_path: str | Path) -> str:
    return f"sqlite:///{Path(work_path).absolute() / REPO_DIR / DB_FILENAME}"


def open_sql_repository(
    work_path: str | Path,
    db_url: str | None = None,
    create: bool = False,
    **kwargs: Any,
) -> Repository:
    """Open the repository rooted at work_path.

    Without db_url the database lives in the .gitlet directory of the working
    tree; that directory is only created when create is set.
    """
    root = Path(work_path).absolute()
    if db_url is None:
        repo_dir = root / REPO_DIR
        if not repo_dir.is_dir():
            if not create:
                raise NotInitialized()
            repo_dir.mkdir(parents=True)
        db_url = default_db_url(root)

    engine = create_engine(db_url)
    Base.metadata.create_all(engine)
    return create_sql_repository(root, sessionmaker(bind=engine), **kwargs)
