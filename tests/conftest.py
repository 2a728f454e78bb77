"""Shared test fixtures and configuration."""

import hashlib
import subprocess
from pathlib import Path
from typing import Optional

import pytest

from restack.diff.models import CommitRef
from restack.exceptions import GatewayError
from restack.git.gateway import RepositoryGateway


def git(repo: Path, *args: str) -> str:
    """Run git in repo and return stripped stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit_files(repo: Path, message: str, files: dict, removed: tuple = ()) -> str:
    """Write files, remove paths, commit everything and return the new hash."""
    for name, content in files.items():
        path = repo / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_bytes(content.encode())
    for name in removed:
        (repo / name).unlink()
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def temp_repo(tmp_path):
    """Create a temporary git repository with one commit and a 'base' branch."""
    repo_dir = tmp_path / "test_repo"
    repo_dir.mkdir()

    git(repo_dir, "init", "-q")
    git(repo_dir, "config", "user.email", "test@example.com")
    git(repo_dir, "config", "user.name", "Test User")
    git(repo_dir, "config", "commit.gpgsign", "false")

    commit_files(repo_dir, "Initial commit", {"README.md": "# Test Repo\n"})
    git(repo_dir, "branch", "base")

    return repo_dir


@pytest.fixture
def stacked_repo(temp_repo):
    """Repository with two commits on top of 'base'.

    Commit 1 adds app.py ("a", "b").
    Commit 2 appends "c" to app.py and adds notes.txt ("x").
    """
    first = commit_files(temp_repo, "Add app", {"app.py": "a\nb\n"})
    second = commit_files(
        temp_repo, "Extend app\n\nAlso add notes.", {"app.py": "a\nb\nc\n", "notes.txt": "x\n"}
    )
    return temp_repo, first, second


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point the global config directory at a temporary path."""
    config_dir = tmp_path / "home" / ".restack"
    monkeypatch.setattr("restack.config._CONFIG_DIR", config_dir)
    return config_dir


@pytest.fixture
def sample_diff():
    """Sample diff of one commit touching two files."""
    return """diff --git a/src/main.py b/src/main.py
index 1234567..abcdefg 100644
--- a/src/main.py
+++ b/src/main.py
@@ -10,5 +10,7 @@ def main():
     # Initialize
     config = load_config()
-    print("old")
+    print("new")
+    # Added comment
+    validate(config)
 
     return True
@@ -50,2 +52,3 @@ class Helper:
     def help(self):
         pass
+    # End of class
diff --git a/tests/test_main.py b/tests/test_main.py
new file mode 100644
index 0000000..1234567
--- /dev/null
+++ b/tests/test_main.py
@@ -0,0 +1,3 @@
+def test_main():
+    assert main() is True
+
"""


def _fake_hash(seed: str) -> str:
    return hashlib.sha1(seed.encode()).hexdigest()


class FakeGateway(RepositoryGateway):
    """In-memory repository with failure injection.

    ``failures`` maps a method name to the call number (1-based) that
    raises GatewayError, e.g. ``{"commit": 2}``. ``fail_reset_to`` makes
    reset_hard to that ref fail.
    """

    def __init__(self, files: Optional[dict] = None, git_dir: Optional[Path] = None):
        self.commits: dict[str, dict] = {}
        self.branches: dict[str, str] = {}
        self.branch: Optional[str] = "main"
        self.failures: dict[str, int] = {}
        self.fail_reset_to: Optional[str] = None
        self.calls: dict[str, int] = {}
        self.on_commit = None
        self._git_dir = git_dir or Path("/nonexistent/.git")

        root = self._new_commit(None, dict(files or {}), "Initial commit")
        self.head_hash = root
        self.branches["main"] = root
        self.index = dict(self.commits[root]["tree"])
        self.working = dict(self.commits[root]["tree"])

    def _new_commit(self, parent: Optional[str], tree: dict, message: str) -> str:
        commit_hash = _fake_hash(f"{len(self.commits)}:{message}")
        self.commits[commit_hash] = {"parent": parent, "tree": tree, "message": message}
        return commit_hash

    def _maybe_fail(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if self.failures.get(name) == self.calls[name]:
            raise GatewayError(f"injected {name} failure")

    def _resolve(self, ref: str) -> str:
        if ref == "HEAD":
            return self.head_hash
        if ref in self.branches:
            return self.branches[ref]
        if ref in self.commits:
            return ref
        raise GatewayError(f"unknown ref {ref}")

    def _move_head(self, commit_hash: str) -> None:
        self.head_hash = commit_hash
        if self.branch is not None:
            self.branches[self.branch] = commit_hash

    def tree(self, ref: str = "HEAD") -> dict:
        return self.commits[self._resolve(ref)]["tree"]

    # Mutating operations

    def head(self) -> str:
        return self.head_hash

    def create_branch(self, name: str, start_point: Optional[str] = None) -> None:
        self._maybe_fail("create_branch")
        if name in self.branches:
            raise GatewayError(f"branch {name} already exists")
        self.branches[name] = self._resolve(start_point or "HEAD")

    def delete_branch(self, name: str) -> None:
        self._maybe_fail("delete_branch")
        if name not in self.branches:
            raise GatewayError(f"branch {name} not found")
        del self.branches[name]

    def reset_hard(self, ref: str) -> None:
        if ref == self.fail_reset_to:
            raise GatewayError(f"injected reset failure for {ref}")
        self._maybe_fail("reset_hard")
        target = self._resolve(ref)
        target_tree = self.commits[target]["tree"]
        # Tracked paths missing from the target are removed; untracked ones survive
        for path in set(self.index) | set(self.tree()):
            if path not in target_tree:
                self.working.pop(path, None)
        self.working.update(target_tree)
        self.index = dict(target_tree)
        self._move_head(target)

    def file_at(self, ref: str, path: str) -> Optional[bytes]:
        return self.tree(ref).get(path)

    def write_working_file(self, path: str, data: bytes) -> None:
        self._maybe_fail("write_working_file")
        self.working[path] = data

    def remove_working_file(self, path: str) -> None:
        self.working.pop(path, None)

    def stage_all(self) -> None:
        self._maybe_fail("stage_all")
        self.index = dict(self.working)

    def commit(self, message: str) -> str:
        self._maybe_fail("commit")
        if self.index == self.tree():
            raise GatewayError("nothing to commit, working tree clean")
        commit_hash = self._new_commit(self.head_hash, dict(self.index), message)
        self._move_head(commit_hash)
        if self.on_commit is not None:
            self.on_commit(commit_hash)
        return commit_hash

    def is_clean(self) -> bool:
        return self.working == self.tree() and self.index == self.tree()

    def current_branch_name(self) -> Optional[str]:
        return self.branch

    # Read-only operations

    def rev_parse(self, ref: str) -> str:
        return self._resolve(ref)

    def merge_base(self, a: str, b: str) -> str:
        ancestors = set(self._ancestry(self._resolve(a)))
        for commit_hash in self._ancestry(self._resolve(b)):
            if commit_hash in ancestors:
                return commit_hash
        raise GatewayError(f"no merge base for {a} and {b}")

    def _ancestry(self, commit_hash: Optional[str]) -> list[str]:
        chain = []
        while commit_hash is not None:
            chain.append(commit_hash)
            commit_hash = self.commits[commit_hash]["parent"]
        return chain

    def log(self, rev_range: str, max_count: Optional[int] = None) -> list[CommitRef]:
        if ".." in rev_range:
            start, end = rev_range.split("..", 1)
            excluded = set(self._ancestry(self._resolve(start)))
        else:
            end, excluded = rev_range, set()
        chain = [h for h in self._ancestry(self._resolve(end)) if h not in excluded]
        if max_count is not None:
            chain = chain[:max_count]
        return [
            CommitRef(
                hash=h,
                author="Test User",
                date="2026-01-01",
                message=self.commits[h]["message"].split("\n")[0],
            )
            for h in chain
        ]

    def commit_diff(self, commit_hash: str, context_lines: int = 3) -> str:
        raise NotImplementedError("FakeGateway does not render diffs")

    def files_changed(self, commit_hash: str) -> list[str]:
        commit = self.commits[commit_hash]
        before = self.commits[commit["parent"]]["tree"] if commit["parent"] else {}
        after = commit["tree"]
        return sorted(p for p in set(before) | set(after) if before.get(p) != after.get(p))

    def parent_of(self, commit_hash: str) -> Optional[str]:
        return self.commits[commit_hash]["parent"]

    def full_message(self, ref: str) -> str:
        return self.commits[self._resolve(ref)]["message"]

    def list_branches(self, pattern: str) -> list[str]:
        prefix = pattern.rstrip("*")
        if pattern.endswith("*"):
            return sorted(b for b in self.branches if b.startswith(prefix))
        return [pattern] if pattern in self.branches else []

    def git_dir(self) -> Path:
        return self._git_dir


@pytest.fixture
def fake_gateway(tmp_path):
    """In-memory gateway whose HEAD holds app.py = "a\\nb\\n"."""
    git_dir = tmp_path / "fake.git"
    git_dir.mkdir()
    return FakeGateway({"app.py": b"a\nb\n"}, git_dir=git_dir)
