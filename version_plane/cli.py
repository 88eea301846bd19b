import argparse
import logging
import os
import sys
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from version_plane.commit import Commit
from version_plane.errors import IntegrityError, RepoError
from version_plane.impl.sql import open_sql_repository
from version_plane.repo import Repository, Status

logger = logging.getLogger("version_plane")

DB_URL_ENV = "VERSION_PLANE_DB_URL"

ZERO_OPERANDS = {"init", "log", "global-log", "status"}
ONE_OPERAND = {"add", "rm", "find", "branch", "rm-branch", "reset", "merge"}
COMMANDS = ZERO_OPERANDS | ONE_OPERAND | {"commit", "checkout"}

# Global options that consume the following argument.
VALUE_OPTIONS = {"--repo-dir", "--db-url"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitlet", description="A tiny version-control system"
    )
    parser.add_argument(
        "--repo-dir", default=".", help="Working tree of the repository"
    )
    parser.add_argument(
        "--db-url",
        default=os.environ.get(DB_URL_ENV),
        help=f"SQLAlchemy URL of the repository database (env: {DB_URL_ENV})",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug output to stderr"
    )
    return parser


def split_command(argv: list[str]) -> tuple[list[str], str | None, list[str]]:
    """Split argv into global options, the command and its raw operands.

    Operands are kept verbatim so that `checkout -- <file>` keeps its `--`.
    """
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in VALUE_OPTIONS:
            i += 2
        elif arg.startswith("-"):
            i += 1
        else:
            return argv[:i], arg, argv[i + 1 :]
    return argv, None, []


def check_operands(command: str, operands: list[str]) -> None:
    if command in ZERO_OPERANDS:
        valid = len(operands) == 0
    elif command in ONE_OPERAND:
        valid = len(operands) == 1
    elif command == "commit":
        valid = len(operands) <= 1
    else:
        valid = (
            len(operands) == 1
            or (len(operands) == 2 and operands[0] == "--")
            or (len(operands) == 3 and operands[1] == "--")
        )
    if not valid:
        raise RepoError("Incorrect operands.")


def format_commit(commit: Commit) -> str:
    return "\n".join(
        [
            "===",
            f"Commit {commit.id}",
            commit.formatted_time(),
            commit.message,
            "",
        ]
    )


def format_status(status: Status) -> str:
    lines = ["=== Branches ==="]
    for branch in status.branches:
        lines.append(f"*{branch}" if branch == status.active_branch else branch)
    for title, names in (
        ("Staged Files", status.staged),
        ("Removed Files", status.removed),
        ("Modifications Not Staged For Commit", status.modified),
        ("Untracked Files", status.untracked),
    ):
        lines.append("")
        lines.append(f"=== {title} ===")
        lines.extend(names)
    lines.append("")
    return "\n".join(lines)


def _commit(repo: Repository, operands: list[str]) -> None:
    if not operands or not operands[0]:
        raise RepoError("Please enter a commit message.")
    repo.commit(operands[0])


def _log(repo: Repository, operands: list[str]) -> None:
    for commit in repo.log():
        print(format_commit(commit))


def _global_log(repo: Repository, operands: list[str]) -> None:
    for commit in repo.global_log():
        print(format_commit(commit))


def _find(repo: Repository, operands: list[str]) -> None:
    for commit_id in repo.find(operands[0]):
        print(commit_id)


def _status(repo: Repository, operands: list[str]) -> None:
    print(format_status(repo.status()))


def _checkout(repo: Repository, operands: list[str]) -> None:
    if len(operands) == 1:
        repo.checkout_branch(operands[0])
    elif len(operands) == 2:
        repo.checkout_file(operands[1])
    else:
        repo.checkout_file(operands[2], commit_id=operands[0])


def _merge(repo: Repository, operands: list[str]) -> None:
    result = repo.merge(operands[0])
    if result.message:
        print(result.message)


HANDLERS: dict[str, Callable[[Repository, list[str]], None]] = {
    "add": lambda repo, ops: repo.add(ops[0]),
    "commit": _commit,
    "rm": lambda repo, ops: repo.rm(ops[0]),
    "log": _log,
    "global-log": _global_log,
    "find": _find,
    "status": _status,
    "checkout": _checkout,
    "branch": lambda repo, ops: repo.branch(ops[0]),
    "rm-branch": lambda repo, ops: repo.rm_branch(ops[0]),
    "reset": lambda repo, ops: repo.reset(ops[0]),
    "merge": _merge,
}


def run(args: argparse.Namespace, command: str | None, operands: list[str]) -> None:
    if command is None:
        raise RepoError("Please enter a command.")
    if command not in COMMANDS:
        raise RepoError("No command with that name exists.")
    check_operands(command, operands)

    repo = open_sql_repository(
        args.repo_dir, db_url=args.db_url, create=command == "init"
    )
    if command == "init":
        repo.init()
    else:
        HANDLERS[command](repo, operands)


def main(argv: list[str] | None = None) -> int:
    options, command, operands = split_command(
        list(sys.argv[1:] if argv is None else argv)
    )
    args = build_parser().parse_args(options)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(name)s] %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        run(args, command, operands)
    except RepoError as e:
        print(e)
    except (IntegrityError, SQLAlchemyError, OSError) as e:
        logger.error("Command %s failed: %s", command, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
