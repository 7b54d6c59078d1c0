"""Tests for line_author.blame -- porcelain parsing and the git subprocess."""

# pylint: disable=missing-class-docstring,missing-function-docstring,too-few-public-methods

from __future__ import annotations

import os
import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from line_author.blame import BlameParser, parse_porcelain
from line_author.models import BlameRecord


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SHA_A = "a" * 40
SHA_B = "b" * 40


def _block(
    source: str,
    *,
    sha: str = SHA_A,
    line: int = 1,
    author: str | None = "Alice",
    timestamp: str | None = "1000000000",
    summary: str | None = "fix: bug",
) -> str:
    """One line-porcelain block, optionally missing fields."""
    out = [f"{sha} {line} {line} 1"]
    if author is not None:
        out += [f"author {author}", "author-mail <a@example.com>",
                "author-time 999999999", "author-tz +0000"]
    out += ["committer Someone", "committer-mail <s@example.com>"]
    if timestamp is not None:
        out.append(f"committer-time {timestamp}")
    out.append("committer-tz +0000")
    if summary is not None:
        out.append(f"summary {summary}")
    out += ["filename example.py", f"\t{source}"]
    return "\n".join(out)


def _porcelain(*blocks: str) -> str:
    return "\n".join(blocks) + "\n"


def _completed(rc: int, stdout: str = "", stderr: str = "") -> MagicMock:
    r = MagicMock(spec=subprocess.CompletedProcess)
    r.returncode = rc
    r.stdout = stdout
    r.stderr = stderr
    return r


# ---------------------------------------------------------------------------
# parse_porcelain
# ---------------------------------------------------------------------------


class TestParsePorcelain:
    def test_two_line_file(self) -> None:
        raw = _porcelain(
            _block("x = 1", sha=SHA_A, line=1, author="Alice",
                   timestamp="1000000000", summary="fix: bug"),
            _block("y = 2", sha=SHA_B, line=2, author="Bob",
                   timestamp="1000086400", summary="feat: new"),
        )
        result = parse_porcelain(raw)
        assert sorted(result) == [1, 2]
        assert result[1].author == "Alice"
        assert result[1].timestamp == 1000000000
        assert result[1].subject == "fix: bug"
        assert result[2].author == "Bob"
        assert result[2].timestamp == 1000086400
        assert result[2].subject == "feat: new"

    def test_commit_sha_from_header(self) -> None:
        raw = _porcelain(_block("a", sha=SHA_A), _block("b", sha=SHA_B, line=2))
        result = parse_porcelain(raw)
        assert result[1].commit == SHA_A
        assert result[2].commit == SHA_B

    def test_dates_derived_from_committer_time(self) -> None:
        result = parse_porcelain(_porcelain(_block("a", timestamp="1000000000")))
        dt = datetime.fromtimestamp(1000000000)
        assert result[1].date_string == dt.strftime("%y/%m/%d")
        assert result[1].date == dt.strftime("%x")
        assert len(result[1].date_string) == 8

    def test_missing_author_skips_line_but_advances_counter(self) -> None:
        raw = _porcelain(
            _block("a", line=1, author=None),
            _block("b", line=2, author="Bob"),
        )
        result = parse_porcelain(raw)
        assert 1 not in result
        assert result[2].author == "Bob"

    def test_missing_timestamp_skips_line(self) -> None:
        raw = _porcelain(
            _block("a", line=1, timestamp=None),
            _block("b", line=2),
        )
        result = parse_porcelain(raw)
        assert list(result) == [2]

    def test_unparseable_timestamp_skips_line(self) -> None:
        raw = _porcelain(_block("a", timestamp="yesterday"), _block("b", line=2))
        result = parse_porcelain(raw)
        assert list(result) == [2]

    def test_empty_author_skips_line(self) -> None:
        result = parse_porcelain(_porcelain(_block("a", author="")))
        assert result == {}

    def test_missing_summary_defaults_to_empty(self) -> None:
        result = parse_porcelain(_porcelain(_block("a", summary=None)))
        assert result[1].subject == ""

    def test_accumulator_reset_between_lines(self) -> None:
        """Fields from one block never leak into the next."""
        raw = _porcelain(
            _block("a", line=1, summary="docs: readme"),
            _block("b", line=2, author=None, summary=None),
            _block("c", line=3, summary=None),
        )
        result = parse_porcelain(raw)
        assert 2 not in result
        assert result[3].subject == ""

    def test_out_of_range_timestamp_skips_line(self) -> None:
        """A committer-time datetime cannot represent is treated as unparseable."""
        raw = _porcelain(_block("a", timestamp="99999999999999999"), _block("b", line=2))
        result = parse_porcelain(raw)
        assert list(result) == [2]

    def test_zero_timestamp_is_kept(self) -> None:
        result = parse_porcelain(_porcelain(_block("a", timestamp="0")))
        assert result[1].timestamp == 0

    def test_keys_within_source_line_count(self) -> None:
        blocks = [
            _block(f"line {i}", line=i, author=None if i % 3 == 0 else f"dev{i}")
            for i in range(1, 11)
        ]
        result = parse_porcelain(_porcelain(*blocks))
        assert set(result) <= set(range(1, 11))
        assert sorted(result) == [1, 2, 4, 5, 7, 8, 10]
        assert result[10].author == "dev10"

    def test_source_text_looking_like_a_field(self) -> None:
        """Source text is tab-prefixed, so it is never read as metadata."""
        raw = _porcelain(_block("author Mallory"), _block("x", line=2, author="Bob"))
        result = parse_porcelain(raw)
        assert result[1].author == "Alice"
        assert result[2].author == "Bob"

    def test_empty_output(self) -> None:
        assert parse_porcelain("") == {}

    def test_returns_blame_records(self) -> None:
        result = parse_porcelain(_porcelain(_block("a")))
        assert isinstance(result[1], BlameRecord)


# ---------------------------------------------------------------------------
# BlameParser subprocess handling
# ---------------------------------------------------------------------------


class TestBlameParserSubprocess:
    def test_runs_line_porcelain_in_file_directory(self, tmp_path: Path) -> None:
        target = tmp_path / "example.py"
        target.write_text("x = 1\n")
        raw = _porcelain(_block("x = 1"))
        with patch("subprocess.run", return_value=_completed(0, raw)) as mock_run:
            result = BlameParser().parse(target)

        assert result[1].author == "Alice"
        cmd = mock_run.call_args.args[0]
        assert cmd[:3] == ["git", "blame", "--line-porcelain"]
        assert cmd[-1] == "example.py"
        assert mock_run.call_args.kwargs["cwd"] == str(tmp_path.resolve())
        assert mock_run.call_args.kwargs["errors"] == "replace"

    def test_nonzero_exit_returns_empty(self, tmp_path: Path,
                                        caplog: pytest.LogCaptureFixture) -> None:
        result_obj = _completed(128, stderr="fatal: no such path 'x' in HEAD")
        with patch("subprocess.run", return_value=result_obj):
            result = BlameParser().parse(tmp_path / "x")
        assert result == {}
        assert "no such path" in caplog.text

    def test_missing_git_returns_empty(self, tmp_path: Path) -> None:
        with patch("subprocess.run", side_effect=FileNotFoundError("git")):
            assert BlameParser().parse(tmp_path / "x.py") == {}

    def test_os_error_returns_empty(self, tmp_path: Path) -> None:
        with patch("subprocess.run", side_effect=NotADirectoryError("nope")):
            assert BlameParser().parse(tmp_path / "x.py") == {}


# ---------------------------------------------------------------------------
# Real git repository
# ---------------------------------------------------------------------------

need_git: pytest.MarkDecorator = pytest.mark.skipif(
    shutil.which("git") is None, reason="git not installed"
)


def _git_env(name: str, timestamp: int) -> dict[str, str]:
    env = dict(os.environ)
    env.update({
        "GIT_AUTHOR_NAME": name,
        "GIT_AUTHOR_EMAIL": f"{name.lower()}@example.com",
        "GIT_COMMITTER_NAME": name,
        "GIT_COMMITTER_EMAIL": f"{name.lower()}@example.com",
        "GIT_AUTHOR_DATE": f"{timestamp} +0000",
        "GIT_COMMITTER_DATE": f"{timestamp} +0000",
    })
    return env


def _commit(repo: Path, name: str, timestamp: int, message: str) -> None:
    subprocess.run(["git", "add", "-A"], cwd=repo, check=True, capture_output=True)
    subprocess.run(
        ["git", "-c", "commit.gpgsign=false", "commit", "-q", "-m", message],
        cwd=repo, check=True, capture_output=True, env=_git_env(name, timestamp),
    )


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    """Two-commit repo: Alice writes line 1, Bob appends line 2."""
    subprocess.run(["git", "init", "-q"], cwd=tmp_path, check=True, capture_output=True)
    src = tmp_path / "example.py"
    src.write_text("x = 1\n")
    _commit(tmp_path, "Alice", 1000000000, "fix: bug")
    src.write_text("x = 1\ny = 2\n")
    _commit(tmp_path, "Bob", 1000086400, "feat: new")
    return tmp_path


class TestBlameParserGit:
    @need_git
    def test_parse_real_repo(self, repo: Path) -> None:
        result = BlameParser().parse(repo / "example.py")
        assert sorted(result) == [1, 2]
        assert (result[1].author, result[1].timestamp, result[1].subject) == (
            "Alice", 1000000000, "fix: bug")
        assert (result[2].author, result[2].timestamp, result[2].subject) == (
            "Bob", 1000086400, "feat: new")
        assert len(result[1].commit) == 40

    @need_git
    def test_non_utf8_file(self, tmp_path: Path) -> None:
        """Latin-1 source bytes in the tab lines do not break decoding."""
        subprocess.run(["git", "init", "-q"], cwd=tmp_path, check=True, capture_output=True)
        src = tmp_path / "latin1.py"
        src.write_bytes(b"# caf\xe9\nx = 1\n")
        _commit(tmp_path, "Alice", 1000000000, "docs: latin1")
        result = BlameParser().parse(src)
        assert sorted(result) == [1, 2]
        assert result[1].author == "Alice"
        assert result[2].subject == "docs: latin1"

    @need_git
    def test_untracked_file_returns_empty(self, repo: Path) -> None:
        other = repo / "untracked.py"
        other.write_text("z = 3\n")
        assert BlameParser().parse(other) == {}

    @need_git
    def test_outside_repository_returns_empty(self, tmp_path: Path) -> None:
        plain = tmp_path / "plain"
        plain.mkdir()
        (plain / "a.txt").write_text("hello\n")
        with patch.dict(os.environ, {"GIT_CEILING_DIRECTORIES": str(tmp_path)}):
            assert BlameParser().parse(plain / "a.txt") == {}
