from pathlib import Path
from typing import Any

from version_plane.base import Blob
from version_plane.errors import RepoError

REPO_DIR = ".gitlet"


class WorkingTree:
    """
    The flat directory of plain files a repository materializes snapshots into.

    Only regular files directly under the root are considered; the repository
    directory and any subdirectories are ignored.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).absolute()

    def _repr_pretty_(self, p: Any, cycle: bool) -> None:
        p.text(f"WorkingTree(root={self.root})")

    @property
    def repo_dir(self) -> Path:
        return self.root / REPO_DIR

    def _path(self, filename: str) -> Path:
        # Names are single entries of the flat tree, never paths.
        if (
            not filename
            or filename in (".", "..", REPO_DIR)
            or "/" in filename
            or "\\" in filename
        ):
            raise RepoError("File does not exist.")
        return self.root / filename

    def files(self) -> list[str]:
        return sorted(
            entry.name
            for entry in self.root.iterdir()
            if entry.is_file() and entry.name != REPO_DIR
        )

    def exists(self, filename: str) -> bool:
        return self._path(filename).is_file()

    def read(self, filename: str) -> Blob:
        return self._path(filename).read_bytes()

    def write(self, filename: str, data: Blob) -> None:
        self._path(filename).write_bytes(data)

    def delete(self, filename: str) -> None:
        self._path(filename).unlink(missing_ok=True)
