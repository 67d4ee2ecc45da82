"""Integration tests for diffpod CLI."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from diffpod.cli import CONFIG_TEMPLATE, cli


SAMPLE_DIFF = """\
diff --git a/old.txt b/old.txt
deleted file mode 100644
index 3333333..0000000
--- a/old.txt
+++ /dev/null
@@ -1,3 +0,0 @@
-Line 1
-Line 2
-Line 3
diff --git a/new.txt b/new.txt
new file mode 100644
index 0000000..4444444
--- /dev/null
+++ b/new.txt
@@ -0,0 +1,3 @@
+New line 1
+New line 2
+New line 3
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Return a fresh project dir, isolated from the user's global config."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    project = tmp_path / "project"
    project.mkdir()
    return project


class TestInit:
    def test_creates_config(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(cli, ["init", "--project-root", str(project_dir)])
        assert result.exit_code == 0
        config_path = project_dir / ".diffpod" / "config.yaml"
        assert config_path.read_text() == CONFIG_TEMPLATE
        assert "config.yaml" in result.output

    def test_template_is_valid_yaml(self) -> None:
        config = yaml.safe_load(CONFIG_TEMPLATE)
        assert config["diff"]["output_dir"] == "llm/diff"
        assert config["diff"]["large_file_changes_threshold"] == 100

    def test_fails_if_config_exists(self, runner: CliRunner, project_dir: Path) -> None:
        runner.invoke(cli, ["init", "--project-root", str(project_dir)])
        result = runner.invoke(cli, ["init", "--project-root", str(project_dir)])
        assert result.exit_code != 0
        assert "already exists" in result.output


class TestDiffPrint:
    def test_minimizes_stdin(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(
            cli, ["diff", "--project-root", str(project_dir)], input=SAMPLE_DIFF
        )
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert "Deleted file: old.txt" in lines
        assert "+New line 1" in lines
        assert "Line 1" not in result.output

    def test_reads_file_argument(self, runner: CliRunner, project_dir: Path) -> None:
        diff_file = project_dir / "change.diff"
        diff_file.write_text(SAMPLE_DIFF)
        result = runner.invoke(cli, ["diff", str(diff_file), "--project-root", str(project_dir)])
        assert result.exit_code == 0
        assert "Deleted file: old.txt" in result.output

    def test_does_not_write_files(self, runner: CliRunner, project_dir: Path) -> None:
        runner.invoke(cli, ["diff", "--project-root", str(project_dir)], input=SAMPLE_DIFF)
        assert not (project_dir / "llm").exists()

    def test_config_thresholds_apply(self, runner: CliRunner, project_dir: Path) -> None:
        config_path = project_dir / ".diffpod" / "config.yaml"
        config_path.parent.mkdir()
        config_path.write_text("diff:\n  large_file_changes_threshold: 2\n")
        result = runner.invoke(
            cli, ["diff", "--project-root", str(project_dir)], input=SAMPLE_DIFF
        )
        assert result.exit_code == 0
        assert "Large file change: new.txt" in result.output
        assert "+New line 1" not in result.output

    def test_bad_config_is_an_error(self, runner: CliRunner, project_dir: Path) -> None:
        config_path = project_dir / ".diffpod" / "config.yaml"
        config_path.parent.mkdir()
        config_path.write_text("diff: [unclosed\n")
        result = runner.invoke(
            cli, ["diff", "--project-root", str(project_dir)], input=SAMPLE_DIFF
        )
        assert result.exit_code == 1
        assert "Invalid YAML" in result.output


class TestDiffSave:
    def test_relative_default_path(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(
            cli, ["diff", "--save", "--project-root", str(project_dir)], input=SAMPLE_DIFF
        )
        assert result.exit_code == 0, result.output
        out = project_dir / "llm" / "diff"
        assert "generated: llm/diff/" in result.output.splitlines()
        assert f"REVIEW.md: {(out / 'REVIEW.md').resolve()}" in result.output.splitlines()
        assert (out / "chunk_aa.diff").exists()
        assert (out / "chunk_ab.diff").exists()

    def test_chunks_are_uncompacted(self, runner: CliRunner, project_dir: Path) -> None:
        runner.invoke(
            cli, ["diff", "--save", "--project-root", str(project_dir)], input=SAMPLE_DIFF
        )
        deleted_chunk = (project_dir / "llm" / "diff" / "chunk_aa.diff").read_text()
        assert "-Line 1\n" in deleted_chunk

    def test_custom_save_path_and_context(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(
            cli,
            [
                "diff",
                "--save",
                "--save-path",
                "review/out",
                "--context",
                "Design: docs/plan.md",
                "--project-root",
                str(project_dir),
            ],
            input=SAMPLE_DIFF,
        )
        assert result.exit_code == 0, result.output
        review = (project_dir / "review" / "out" / "REVIEW.md").read_text()
        assert "- Context: Design: docs/plan.md\n" in review
        assert "## new.txt\n" in review

    def test_absolute_save_path_adds_project_dir(
        self, runner: CliRunner, project_dir: Path, tmp_path: Path
    ) -> None:
        shared = tmp_path / "shared"
        with patch("diffpod.context.repo_name", return_value=None):
            result = runner.invoke(
                cli,
                ["diff", "--save", "--save-path", str(shared), "--project-root", str(project_dir)],
                input=SAMPLE_DIFF,
            )
        assert result.exit_code == 0, result.output
        out = shared / "project"
        assert f"generated: {out}/" in result.output.splitlines()
        assert (out / "REVIEW.md").exists()

    def test_io_error_is_reported(self, runner: CliRunner, project_dir: Path) -> None:
        (project_dir / "llm").write_text("not a directory")
        result = runner.invoke(
            cli, ["diff", "--save", "--project-root", str(project_dir)], input=SAMPLE_DIFF
        )
        assert result.exit_code == 1
        assert "Error:" in result.output
