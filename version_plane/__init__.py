from .base import Blob, MetadataStore, ObjectStore, RepoState
from .commit import Commit, build_commit
from .errors import IntegrityError, ObjectNotFound, RepoError, VersionPlaneError
from .graph import CommitGraph
from .merge import MergeResult
from .repo import Repository, Status
from .stage import StagingArea
from .impl.memory import create_memory_repository
from .impl.sql import create_sql_repository, open_sql_repository

__all__ = [
    "Blob",
    "Commit",
    "CommitGraph",
    "IntegrityError",
    "MergeResult",
    "MetadataStore",
    "ObjectNotFound",
    "ObjectStore",
    "RepoError",
    "RepoState",
    "Repository",
    "StagingArea",
    "Status",
    "VersionPlaneError",
    "build_commit",
    "create_memory_repository",
    "create_sql_repository",
    "open_sql_repository",
]
