import shutil
from pathlib import Path
import tempfile
import pytest


@pytest.fixture(scope="session", autouse=True)
def isolate_home_config():
    """Temporarily move any existing user-level aisplit config out of the way.

    Some tests expect no user-level config to exist. This fixture moves the
    file aside for the duration of the test session and restores it afterwards.
    """
    home = Path.home()
    config_path = home / ".aisplit" / "config.json"
    backup_dir = None
    moved = False
    if config_path.exists():
        backup_dir = Path(tempfile.mkdtemp(prefix="aisplit_backup_"))
        shutil.move(str(config_path), str(backup_dir / "config.json"))
        moved = True

    try:
        yield
    finally:
        # restore
        if moved and backup_dir is not None:
            dst_dir = config_path.parent
            dst_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(backup_dir / "config.json"), str(config_path))
            shutil.rmtree(str(backup_dir), ignore_errors=True)


class FakeGit:
    """In-memory stand-in for GitClient that records every call."""

    def __init__(self, repo_root=Path("/repo"), changed=None, staged=None, partial=None):
        self.repo_root = repo_root
        self.changed = list(changed or [])
        self.staged = list(staged or [])
        self.partial = list(partial or [])
        self.submodules = []
        self.calls = []
        self.fail_on = None

    def _record(self, name, payload):
        self.calls.append((name, payload))
        if self.fail_on is not None and self.fail_on(name, payload):
            from commit_splitter.errors import GitOperationError
            raise GitOperationError(f"{name} failed")

    def list_changed_files(self, mode, include_untracked=False):
        from commit_splitter.grouping.group_model import ChangeMode
        return list(self.staged if mode == ChangeMode.INDEX else self.changed)

    def partially_staged_files(self):
        return list(self.partial)

    def submodule_paths(self):
        return list(self.submodules)

    def diff(self, files, staged=False):
        return "".join(f"diff --git a/{f} b/{f}\n+change\n" for f in files)

    def diff_stat(self, files, staged=False):
        return "".join(f" {f} | 1 +\n" for f in files)

    def stage(self, files):
        self._record("stage", list(files))

    def unstage(self, files):
        self._record("unstage", list(files))

    def commit(self, message):
        self._record("commit", message)


@pytest.fixture
def fake_git():
    return FakeGit()
