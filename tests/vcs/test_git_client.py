import subprocess
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

from commit_splitter.errors import GitOperationError
from commit_splitter.grouping.group_model import ChangeMode
from commit_splitter.vcs.git_client import GitClient, is_lock_file


class DummyProc(SimpleNamespace):
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""


def scripted(outputs, calls):
    """Build a fake ``_run`` answering by the first two arguments."""

    def fake_run(self, args, check=True):
        calls.append(args)
        for prefix, output in outputs.items():
            if tuple(args[: len(prefix)]) == prefix:
                return DummyProc(returncode=0, stdout=output, stderr="")
        return DummyProc(returncode=0, stdout="", stderr="")

    return fake_run


class TestGitClient(unittest.TestCase):
    def test_list_changed_files_index(self) -> None:
        calls = []
        outputs = {("diff", "--cached"): "a.py\nsrc/b.py\n"}
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = scripted(outputs, calls)
            files = GitClient(Path("/repo")).list_changed_files(ChangeMode.INDEX)
        self.assertEqual(files, ["a.py", "src/b.py"])
        self.assertEqual(calls, [["diff", "--cached", "--name-only", "--no-renames"]])

    def test_list_changed_files_working_tree_with_untracked(self) -> None:
        calls = []
        outputs = {("diff", "--name-only"): "a.py\n", ("ls-files",): "a.py\nnew.txt\n\n"}
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = scripted(outputs, calls)
            client = GitClient(Path("/repo"))
            self.assertEqual(client.list_changed_files(ChangeMode.WORKING_TREE), ["a.py"])
            self.assertEqual(
                client.list_changed_files(ChangeMode.WORKING_TREE, include_untracked=True),
                ["a.py", "new.txt"],
            )
        self.assertIn(["ls-files", "--others", "--exclude-standard"], calls)

    def test_partially_staged_files(self) -> None:
        outputs = {("diff", "--cached"): "a\nb\n", ("diff", "--name-only"): "b\nc\n"}
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = scripted(outputs, [])
            self.assertEqual(GitClient(Path("/repo")).partially_staged_files(), ["b"])

    def test_stage_splits_present_and_deleted(self) -> None:
        calls = []
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = scripted({}, calls)
            client = GitClient(Path("/tmp/repo"))
            with patch("pathlib.Path.exists", lambda self: self.name != "file_deleted.py"):
                client.stage(["file_exists.py", "file_deleted.py"])
        self.assertIn(["add", "--", "file_exists.py"], calls)
        self.assertIn(["rm", "--cached", "--ignore-unmatch", "-q", "--", "file_deleted.py"], calls)

    def test_empty_lists_are_no_ops(self) -> None:
        calls = []
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = scripted({}, calls)
            client = GitClient(Path("/repo"))
            client.stage([])
            client.unstage([])
            self.assertEqual(client.diff([]), "")
            self.assertEqual(client.diff_stat([]), "")
        self.assertEqual(calls, [])

    def test_unstage_and_commit(self) -> None:
        calls = []
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = scripted({}, calls)
            client = GitClient(Path("/repo"))
            client.unstage(["a", "b"])
            client.commit("feat: x")
        self.assertEqual(calls, [["reset", "-q", "--", "a", "b"], ["commit", "-m", "feat: x"]])

    def test_diff_excludes_lock_files_unless_only_lock_files(self) -> None:
        calls = []
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = scripted({}, calls)
            client = GitClient(Path("/repo"))
            client.diff(["package.json", "package-lock.json", "Cargo.lock"], staged=True)
            client.diff(["yarn.lock"])
        self.assertEqual(calls[0], ["diff", "--cached", "--diff-algorithm=minimal", "--", "package.json"])
        self.assertEqual(calls[1], ["diff", "--diff-algorithm=minimal", "--", "yarn.lock"])

    def test_diff_stat(self) -> None:
        calls = []
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = scripted({("diff",): " a | 2 +-\n"}, calls)
            stat = GitClient(Path("/repo")).diff_stat(["a"], staged=True)
        self.assertEqual(stat, " a | 2 +-\n")
        self.assertEqual(calls, [["diff", "--cached", "--stat", "--", "a"]])

    def test_is_lock_file(self) -> None:
        self.assertTrue(is_lock_file("web/package-lock.json"))
        self.assertTrue(is_lock_file("pnpm-lock.yaml"))
        self.assertTrue(is_lock_file("Gemfile.lock"))
        self.assertFalse(is_lock_file("lockfile.py"))


class TestGitClientRun(unittest.TestCase):
    def test_non_zero_exit_raises(self) -> None:
        proc = subprocess.CompletedProcess(["git", "commit"], 1, stdout="", stderr="nothing to commit")
        with patch("subprocess.run", return_value=proc):
            with self.assertRaises(GitOperationError) as ctx:
                GitClient(Path("/repo")).commit("msg")
        self.assertIn("nothing to commit", str(ctx.exception))

    def test_check_false_returns_result(self) -> None:
        proc = subprocess.CompletedProcess(["git"], 1, stdout="", stderr="")
        with patch("subprocess.run", return_value=proc):
            result = GitClient(Path("/repo"))._run(["status"], check=False)
        self.assertEqual(result.returncode, 1)

    def test_missing_git_binary_raises(self) -> None:
        with patch("subprocess.run", side_effect=FileNotFoundError("git")):
            with self.assertRaises(GitOperationError):
                GitClient(Path("/repo"))._run(["status"])


class TestSubmodulesAndRoot(unittest.TestCase):
    def test_submodule_paths(self) -> None:
        output = "submodule.vendor/lib.path vendor/lib\nsubmodule.themes.path themes/\n"
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = scripted({("config",): output}, [])
            with patch("pathlib.Path.exists", return_value=True):
                paths = GitClient(Path("/repo")).submodule_paths()
        self.assertEqual(paths, ["vendor/lib", "themes"])

    def test_no_gitmodules(self) -> None:
        with patch("pathlib.Path.exists", return_value=False):
            self.assertEqual(GitClient(Path("/repo")).submodule_paths(), [])

    def test_find_repo_root(self) -> None:
        import tempfile

        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / ".git").mkdir()
            nested = root / "a" / "b"
            nested.mkdir(parents=True)
            self.assertEqual(GitClient.find_repo_root(nested), root.resolve())


if __name__ == "__main__":
    unittest.main()
