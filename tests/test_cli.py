from pathlib import Path

import pytest

from version_plane.cli import main, split_command


@pytest.fixture
def gitlet(tmp_path: Path, capsys):
    """Run a command against tmp_path and return its stdout."""

    def run(*args: str) -> str:
        capsys.readouterr()
        assert main(["--repo-dir", str(tmp_path), *args]) == 0
        return capsys.readouterr().out

    return run


def test_split_command_keeps_operands_verbatim():
    assert split_command(["--repo-dir", "x", "-v", "checkout", "--", "f"]) == (
        ["--repo-dir", "x", "-v"],
        "checkout",
        ["--", "f"],
    )
    assert split_command(["-v"]) == (["-v"], None, [])


@pytest.mark.parametrize(
    "args, message",
    [
        ([], "Please enter a command."),
        (["push"], "No command with that name exists."),
        (["log", "extra"], "Incorrect operands."),
        (["add"], "Incorrect operands."),
        (["checkout", "a", "b"], "Incorrect operands."),
        (["checkout", "id", "++", "f"], "Incorrect operands."),
        (["status"], "Not in an initialized gitlet directory."),
    ],
)
def test_argument_errors(gitlet, args, message):
    assert gitlet(*args).strip() == message


def test_init_creates_repo_dir(gitlet, tmp_path: Path):
    assert gitlet("init") == ""
    assert (tmp_path / ".gitlet" / "repo.db").is_file()
    assert "already exists" in gitlet("init")


def test_commit_and_log(gitlet, tmp_path: Path):
    gitlet("init")
    (tmp_path / "f.txt").write_text("hello")
    gitlet("add", "f.txt")
    assert gitlet("commit") == "Please enter a commit message.\n"
    assert gitlet("commit", "") == "Please enter a commit message.\n"
    gitlet("commit", "add f")

    entries = gitlet("log").split("===\n")[1:]

    assert len(entries) == 2
    first = entries[0].splitlines()
    assert first[0].startswith("Commit ")
    assert len(first[0].split()[1]) == 40
    assert first[2] == "add f"
    assert entries[1].splitlines()[2] == "initial commit"

    commit_id = first[0].split()[1]
    assert gitlet("find", "add f").strip() == commit_id
    assert gitlet("global-log").count("===") == 2


def test_status_output(gitlet, tmp_path: Path):
    gitlet("init")
    gitlet("branch", "dev")
    (tmp_path / "a.txt").write_text("a")
    (tmp_path / "b.txt").write_text("b")
    gitlet("add", "a.txt")

    assert gitlet("status") == (
        "=== Branches ===\n"
        "dev\n"
        "*master\n"
        "\n"
        "=== Staged Files ===\n"
        "a.txt\n"
        "\n"
        "=== Removed Files ===\n"
        "\n"
        "=== Modifications Not Staged For Commit ===\n"
        "\n"
        "=== Untracked Files ===\n"
        "b.txt\n"
        "\n"
    )


def test_checkout_forms(gitlet, tmp_path: Path):
    gitlet("init")
    f = tmp_path / "f.txt"
    f.write_text("v1")
    gitlet("add", "f.txt")
    gitlet("commit", "v1")
    first_id = gitlet("find", "v1").strip()
    f.write_text("v2")
    gitlet("add", "f.txt")
    gitlet("commit", "v2")

    f.write_text("scratch")
    gitlet("checkout", "--", "f.txt")
    assert f.read_text() == "v2"

    gitlet("checkout", first_id, "--", "f.txt")
    assert f.read_text() == "v1"

    assert gitlet("checkout", "--", "nope.txt") == "File does not exist in that commit.\n"
    assert gitlet("checkout", "nope") == "No such branch exists.\n"


def test_merge_messages(gitlet, tmp_path: Path):
    gitlet("init")
    (tmp_path / "f.txt").write_text("x\n")
    gitlet("add", "f.txt")
    gitlet("commit", "split")
    gitlet("branch", "other")

    assert gitlet("merge", "other") == (
        "Given branch is an ancestor of the current branch.\n"
    )

    (tmp_path / "f.txt").write_text("y\n")
    gitlet("add", "f.txt")
    gitlet("commit", "mine")
    gitlet("checkout", "other")
    (tmp_path / "f.txt").write_text("z\n")
    gitlet("add", "f.txt")
    gitlet("commit", "theirs")
    gitlet("checkout", "master")

    assert gitlet("merge", "other") == "Encountered a merge conflict.\n"
    assert (tmp_path / "f.txt").read_text() == "<<<<<<< HEAD\ny\n=======\nz\n>>>>>>>\n"


def test_fast_forward_message(gitlet, tmp_path: Path):
    gitlet("init")
    gitlet("branch", "other")
    gitlet("checkout", "other")
    (tmp_path / "f.txt").write_text("x")
    gitlet("add", "f.txt")
    gitlet("commit", "ahead")
    gitlet("checkout", "master")

    assert gitlet("merge", "other") == "Current branch fast-forwarded.\n"
    assert (tmp_path / "f.txt").read_text() == "x"


def test_db_url_option(tmp_path: Path, capsys):
    db_url = f"sqlite:///{tmp_path / 'elsewhere.db'}"
    work = tmp_path / "work"
    work.mkdir()

    assert main(["--repo-dir", str(work), "--db-url", db_url, "init"]) == 0
    assert main(["--repo-dir", str(work), "--db-url", db_url, "branch", "dev"]) == 0

    capsys.readouterr()
    assert main(["--repo-dir", str(work), "--db-url", db_url, "status"]) == 0
    assert "dev\n*master" in capsys.readouterr().out
    assert not (work / ".gitlet").exists()
