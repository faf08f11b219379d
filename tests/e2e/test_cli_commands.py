"""End-to-end tests for CLI commands."""

import sys

import orjson
import pytest
from loguru import logger
from typer.testing import CliRunner

from mscd import __version__
from mscd.cli.main import app

CORPUS = {
    "lib.rs": "pub struct Root { child: model::Child }",
    "model/mod.rs": "pub struct Child { leaf: Option<Box<leaf::Leaf>> }",
    "model/leaf.rs": "pub struct Leaf { name: String }",
}


class TestCLICommands:
    """End-to-end tests for CLI commands."""

    @pytest.fixture
    def cli_runner(self):
        """Create CLI runner for testing."""
        return CliRunner()

    @pytest.fixture(autouse=True)
    def isolate(self, tmp_path, monkeypatch):
        """Run from an empty directory and restore logging afterwards."""
        workdir = tmp_path / "cwd"
        workdir.mkdir()
        monkeypatch.chdir(workdir)
        yield
        logger.remove()
        logger.add(sys.stderr)

    @pytest.fixture
    def corpus(self, write_corpus):
        return write_corpus(CORPUS)

    def test_analyze_summary(self, cli_runner, corpus):
        """Test the default summary report."""
        result = cli_runner.invoke(app, ["analyze", str(corpus)])

        assert result.exit_code == 0
        assert "Struct Composition Depth" in result.stdout
        assert "Max Depth: 2" in result.stdout
        assert "model::leaf::Leaf" in result.stdout
        assert "No warnings" in result.stdout

    def test_analyze_defaults_to_working_directory(self, cli_runner, corpus, monkeypatch):
        monkeypatch.chdir(corpus)
        result = cli_runner.invoke(app, ["analyze"])

        assert result.exit_code == 0
        assert "Structs: 3" in result.stdout

    def test_directory_table(self, cli_runner, corpus):
        result = cli_runner.invoke(app, ["analyze", str(corpus), "--dirs"])

        assert result.exit_code == 0
        assert "Depth by Directory" in result.stdout
        assert "model" in result.stdout

    def test_file_table(self, cli_runner, corpus):
        result = cli_runner.invoke(app, ["analyze", str(corpus), "--files"])

        assert result.exit_code == 0
        assert "Depth by File" in result.stdout
        assert "model/leaf.rs" in result.stdout

    def test_target_only(self, cli_runner, corpus):
        result = cli_runner.invoke(app, ["analyze", str(corpus), "--target"])

        assert result.exit_code == 0
        assert "Target Directory" in result.stdout
        assert "Structs: 1" in result.stdout

    def test_json_output(self, cli_runner, corpus):
        """Test JSON output goes to stdout untouched."""
        result = cli_runner.invoke(app, ["analyze", str(corpus), "--json", "--files"])

        assert result.exit_code == 0
        data = orjson.loads(result.stdout)
        assert data["summary"]["global_depth"] == 2
        assert data["summary"]["entity_count"] == 3
        assert {row["path"] for row in data["files"]} == set(CORPUS)

    def test_output_file(self, cli_runner, corpus, tmp_path):
        destination = tmp_path / "reports" / "depth.json"
        result = cli_runner.invoke(
            app, ["analyze", str(corpus), "--json", "--output", str(destination)]
        )

        assert result.exit_code == 0
        assert "Report written to" in result.stdout
        assert orjson.loads(destination.read_bytes())["summary"]["global_depth"] == 2

    def test_text_output_file(self, cli_runner, corpus, tmp_path):
        destination = tmp_path / "depth.txt"
        result = cli_runner.invoke(app, ["analyze", str(corpus), "-o", str(destination)])

        assert result.exit_code == 0
        assert "Max Depth: 2" in destination.read_text(encoding="utf-8")

    def test_warnings_do_not_fail_the_run(self, cli_runner, write_corpus):
        root = write_corpus({"lib.rs": "pub struct Fine;", "broken.rs": "pub struct Broken {"})
        result = cli_runner.invoke(app, ["analyze", str(root)])

        assert result.exit_code == 0
        assert "Files skipped: 1" in result.stdout

    def test_missing_path(self, cli_runner, tmp_path):
        result = cli_runner.invoke(app, ["analyze", str(tmp_path / "missing")])

        assert result.exit_code == 1
        assert "does not exist" in " ".join(result.stdout.split())

    def test_conflicting_granularity_flags(self, cli_runner, corpus):
        result = cli_runner.invoke(app, ["analyze", str(corpus), "--files", "--dirs"])

        assert result.exit_code == 1
        assert "only one of" in result.stdout

    def test_path_and_repo_conflict(self, cli_runner, corpus):
        result = cli_runner.invoke(app, ["analyze", str(corpus), "--repo", str(corpus), "model"])

        assert result.exit_code == 1

    def test_local_repository(self, cli_runner, corpus):
        result = cli_runner.invoke(app, ["analyze", "--repo", str(corpus), "model"])

        assert result.exit_code == 0
        assert "Using repository" in result.stdout
        assert "Structs: 2" in result.stdout

    def test_missing_repository_subdirectory(self, cli_runner, corpus):
        result = cli_runner.invoke(app, ["analyze", "--repo", str(corpus), "nope"])

        assert result.exit_code == 1
        assert "does not exist in repository" in " ".join(result.stdout.split())

    def test_config_file(self, cli_runner, write_corpus, tmp_path):
        root = write_corpus({"lib.rs": "pub struct Session { id: Uuid }"})
        config = tmp_path / "mscd.yaml"
        config.write_text("extra_primitives: [Uuid]\n")

        result = cli_runner.invoke(
            app, ["analyze", str(root), "--config", str(config), "--json", "--verbose"]
        )

        assert result.exit_code == 0
        [field] = orjson.loads(result.stdout)["entities"][0]["fields"]
        assert field["targets"] == ["<primitive> Uuid"]

    def test_config_file_with_unknown_key(self, cli_runner, corpus, tmp_path):
        config = tmp_path / "mscd.yaml"
        config.write_text("max_worker: 2\n")

        result = cli_runner.invoke(app, ["analyze", str(corpus), "--config", str(config)])

        assert result.exit_code == 1
        assert "Unknown configuration keys" in result.stdout

    def test_version_command(self, cli_runner):
        result = cli_runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout
