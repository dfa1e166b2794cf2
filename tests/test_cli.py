import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

import commit_splitter.cli as cli
from commit_splitter.config.loader import SplitSettings
from commit_splitter.errors import ConfigError
from commit_splitter.grouping.group_model import Boundary, CommitGroup


CONFIG = {
    "base_url": "http://localhost",
    "port": 11434,
    "model": "m",
    "request_timeout": 30.0,
    "max_tokens": None,
    "locale": "en",
    "commit_type": "conventional",
}


class SplitInTwoOracle:
    """Puts the first file in one group and the rest in another."""

    def classify(self, files, payload, max_groups, style_hint="conventional"):
        groups = [{"message": "feat: first", "files": files[:1]}]
        if len(files) > 1:
            groups.append({"message": "fix: rest", "files": files[1:]})
        return json.dumps(groups)


@pytest.fixture
def run_cli(fake_git, tmp_path):
    fake_git.repo_root = tmp_path
    git_cls = MagicMock(return_value=fake_git)
    git_cls.find_repo_root.return_value = tmp_path
    load_config = MagicMock(return_value=dict(CONFIG))

    def invoke(args=(), input=None, repo_found=True):
        git_cls.find_repo_root.return_value = tmp_path if repo_found else None
        with patch.object(cli, "GitClient", git_cls), \
                patch.object(cli, "load_settings", return_value=SplitSettings(call_delay=0)), \
                patch.object(cli, "load_config", load_config), \
                patch.object(cli, "OllamaClient", MagicMock()), \
                patch.object(cli, "OllamaGroupingOracle", return_value=SplitInTwoOracle()):
            return CliRunner().invoke(cli.main, list(args), input=input)

    invoke.load_config = load_config
    return invoke


def commits(fake_git):
    return [payload for name, payload in fake_git.calls if name == "commit"]


def test_no_repo(run_cli):
    result = run_cli(repo_found=False)
    assert result.exit_code == cli.EXIT_NO_REPO


def test_no_changes(run_cli):
    result = run_cli(["--yes"])
    assert result.exit_code == cli.EXIT_NO_CHANGES


def test_staged_and_all_conflict(run_cli, fake_git):
    fake_git.staged = ["a"]
    result = run_cli(["--staged", "--all"])
    assert result.exit_code == cli.EXIT_INVALID_USAGE


def test_yes_flow_commits_every_group(run_cli, fake_git):
    fake_git.changed = ["a.py", "b.py", "c.py"]
    result = run_cli(["--yes"])
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert commits(fake_git) == ["feat: first", "fix: rest"]
    assert "2 commits created" in result.output


def test_dry_run_commits_nothing(run_cli, fake_git):
    fake_git.changed = ["a.py", "b.py"]
    result = run_cli(["--dry-run"])
    assert result.exit_code == cli.EXIT_SUCCESS
    assert "Group 1:" in result.output
    assert "Dry run" in result.output
    assert commits(fake_git) == []


def test_interactive_cancel(run_cli, fake_git):
    fake_git.changed = ["a.py", "b.py"]
    result = run_cli([], input="q\n")
    assert result.exit_code == cli.EXIT_CANCELLED
    assert commits(fake_git) == []


def test_interactive_edit_messages(run_cli, fake_git):
    fake_git.changed = ["a.py", "b.py"]
    result = run_cli([], input="e\nfeat: better first\n\n")
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert commits(fake_git) == ["feat: better first", "fix: rest"]


def test_config_error(run_cli, fake_git):
    fake_git.changed = ["a.py"]
    run_cli.load_config.side_effect = ConfigError("Missing configuration file")
    result = run_cli(["--yes"])
    assert result.exit_code == cli.EXIT_CONFIG_ERROR
    assert "Missing configuration file" in result.output


def test_scan_needs_no_oracle(run_cli, fake_git, tmp_path):
    (tmp_path / "web").mkdir()
    (tmp_path / "web" / "package.json").write_text("{}")
    fake_git.changed = ["web/a.ts", "web/b.ts", "docs/readme.md"]
    result = run_cli(["--scan"])
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert "web" in result.output
    assert "Total: 3 files across 2 boundaries" in result.output
    run_cli.load_config.assert_not_called()
    assert commits(fake_git) == []


def test_scope_filters_changes(run_cli, fake_git):
    fake_git.changed = ["web/a.ts", "api/b.go"]
    result = run_cli(["--yes", "--scope", "web"])
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert [p for n, p in fake_git.calls if n == "stage"] == [["web/a.ts"]]


def test_partial_staging_declined(run_cli, fake_git):
    fake_git.staged = ["a.py", "b.py"]
    fake_git.partial = ["a.py"]
    result = run_cli(["--staged"], input="c\nn\n")
    assert result.exit_code == cli.EXIT_CANCELLED
    assert commits(fake_git) == []


def test_partial_staging_auto_confirmed_with_yes(run_cli, fake_git):
    fake_git.staged = ["a.py", "b.py"]
    fake_git.partial = ["a.py"]
    result = run_cli(["--staged", "--yes"])
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert len(commits(fake_git)) == 2


def test_git_failure_during_commit(run_cli, fake_git):
    fake_git.changed = ["a.py", "b.py"]
    fake_git.fail_on = lambda name, payload: name == "commit" and payload == "fix: rest"
    result = run_cli(["--yes"])
    assert result.exit_code == cli.EXIT_VCS_FAILURE
    assert commits(fake_git) == ["feat: first", "fix: rest"]
    assert "Committed: 1 group" in result.output


def test_version_option():
    result = CliRunner().invoke(cli.main, ["--version"])
    assert result.exit_code == 0
    assert cli.__version__ in result.output


def test_resolve_here_scope(tmp_path):
    (tmp_path / "apps" / "web" / "src").mkdir(parents=True)
    (tmp_path / "apps" / "web" / "package.json").write_text("{}")
    assert cli.resolve_here_scope(tmp_path, tmp_path / "apps" / "web" / "src") == "apps/web"
    assert cli.resolve_here_scope(tmp_path, tmp_path) is None
    assert cli.resolve_here_scope(tmp_path, Path("/elsewhere")) is None


def test_format_boundary_details():
    auto = CommitGroup(message="chore: clean up old", files=["old/x"])
    boundaries = [
        Boundary(name="web", kind="node", files=["web/a", "web/b", "web/c", "web/d"]),
        Boundary(name="old", kind="misc", files=["old/x"], auto_group=auto),
    ]
    text = cli.format_boundary_details(boundaries)
    assert "(80%) · node" in text
    assert "… 1 more" in text
    assert "[auto]" in text
    assert text.endswith("Total: 5 files across 2 boundaries")


def test_scoped_staged_run_reports_files_left_staged(run_cli, fake_git):
    fake_git.staged = ["web/a.ts", "api/b.go"]
    result = run_cli(["--staged", "--yes", "--scope", "web"])
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert fake_git.calls[0] == ("unstage", ["api/b.go"])
    assert fake_git.calls[-1] == ("stage", ["api/b.go"])
    assert "Left out of the commits and still staged: 1 file" in result.output
