from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Generator, List, Mapping, Optional, Sequence
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from reqtidy.cli import cli
from reqtidy.config import ReqTidyConfig
from reqtidy.commands.prune import _run
from reqtidy.utils.logger import disable_logging


# ==============================================================================
# Fixtures
# ==============================================================================


METADATA: Dict[str, Any] = {
    "requests": {"import_names": ["requests"], "requires": ["idna<4,>=2.5"]},
    "idna": {"import_names": ["idna"]},
    "six": {"import_names": ["six"]},
    "PyYAML": {"import_names": ["yaml", "_yaml"]},
    "pydantic[email]": {
        "import_names": ["pydantic"],
        "requires": ["email-validator>=2.0.0; extra == 'email'"],
    },
    "email-validator": {"import_names": ["email_validator"]},
}


class StubFetcherFactory:
    """Replacement for SubprocessMetadataFetcher answering from METADATA."""

    def __init__(self) -> None:
        self.interpreters: List[Optional[str]] = []

    def __call__(self, interpreter: Optional[str] = None, timeout: Any = None):
        self.interpreters.append(interpreter)

        def fetch(names: Sequence[str]) -> Mapping[str, Any]:
            return {n: METADATA[n] for n in names if n in METADATA}

        return fetch


@pytest.fixture
def stub_fetcher() -> Generator[StubFetcherFactory, None, None]:
    """Route metadata lookups to an in-memory table instead of a subprocess."""
    factory = StubFetcherFactory()
    with patch("reqtidy.core.pruner.SubprocessMetadataFetcher", factory):
        yield factory


@pytest.fixture
def runner() -> Generator[CliRunner, None, None]:
    yield CliRunner()
    # The group attaches a log handler to the runner's temporary stderr
    disable_logging()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project importing requests and yaml, with six unused.

    ``idna`` is kept because ``requests`` requires it.
    """
    (tmp_path / "requirements.txt").write_text(
        "# runtime\nrequests==2.31.0\nidna\nsix==1.16.0\nPyYAML\n\npytest\n",
        encoding="utf-8",
    )
    (tmp_path / "app.py").write_text("import requests\nimport yaml\n", encoding="utf-8")
    return tmp_path


def _manifest(project: Path) -> str:
    return (project / "requirements.txt").read_text(encoding="utf-8")


# ==============================================================================
# Command behavior
# ==============================================================================


@pytest.mark.integration
class TestPruneCommand:
    """Tests for ``reqtidy prune`` through Click's test runner."""

    def test_removes_unused_package(
        self, runner: CliRunner, project: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        result = runner.invoke(cli, ["prune", str(project)])

        assert result.exit_code == 0, result.output
        assert "Removing: six (Not imported)" in result.output
        assert "Done! Removed 1 package(s)." in result.output
        assert _manifest(project) == (
            "# runtime\nrequests==2.31.0\nidna\nPyYAML\n\npytest\n"
        )

    def test_clean_manifest(
        self, runner: CliRunner, tmp_path: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        (tmp_path / "requirements.txt").write_text("requests\n", encoding="utf-8")
        (tmp_path / "main.py").write_text("import requests\n", encoding="utf-8")

        result = runner.invoke(cli, ["prune", str(tmp_path)])

        assert result.exit_code == 0
        assert "Everything looks clean." in result.output
        assert "Removing:" not in result.output

    def test_protected_dependency_kept(
        self, runner: CliRunner, tmp_path: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        manifest = "pydantic[email]==2.0\nemail-validator==2.0\n"
        (tmp_path / "requirements.txt").write_text(manifest, encoding="utf-8")
        (tmp_path / "models.py").write_text(
            "from pydantic import BaseModel\n", encoding="utf-8"
        )

        result = runner.invoke(cli, ["prune", str(tmp_path)])

        assert result.exit_code == 0
        assert _manifest(tmp_path) == manifest

    def test_dry_run(
        self, runner: CliRunner, project: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        before = _manifest(project)

        result = runner.invoke(cli, ["prune", str(project), "--dry-run"])

        assert result.exit_code == 0
        assert "Removing: six" in result.output
        assert "Dry run: 1 package(s) would be removed." in result.output
        assert _manifest(project) == before

    def test_check_fails_when_something_would_be_removed(
        self, runner: CliRunner, project: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        before = _manifest(project)

        result = runner.invoke(cli, ["prune", str(project), "--check"])

        assert result.exit_code == 1
        assert _manifest(project) == before

    def test_check_passes_when_clean(
        self, runner: CliRunner, tmp_path: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        (tmp_path / "requirements.txt").write_text("pytest\n", encoding="utf-8")

        result = runner.invoke(cli, ["prune", str(tmp_path), "--check"])

        assert result.exit_code == 0

    def test_keep_option(
        self, runner: CliRunner, project: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        result = runner.invoke(cli, ["prune", str(project), "--keep", "six"])

        assert result.exit_code == 0
        assert "six==1.16.0" in _manifest(project)

    def test_exclude_option(
        self, runner: CliRunner, project: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        (project / "scripts").mkdir()
        (project / "scripts" / "legacy.py").write_text("import six\n", encoding="utf-8")

        kept = runner.invoke(cli, ["prune", str(project), "-n"])
        excluded = runner.invoke(cli, ["prune", str(project), "--dry-run", "-e", "scripts"])

        assert "Removing: six" not in kept.output
        assert "Removing: six" in excluded.output

    def test_backup_option(
        self, runner: CliRunner, project: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        result = runner.invoke(cli, ["prune", str(project), "--backup"])

        assert result.exit_code == 0
        assert "Backup written to" in result.output
        assert len(list(project.glob("requirements.*.backup.txt"))) == 1

    def test_custom_manifest(
        self, runner: CliRunner, tmp_path: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        (tmp_path / "deps.txt").write_text("six\n", encoding="utf-8")

        result = runner.invoke(cli, ["prune", str(tmp_path), "-m", "deps.txt"])

        assert result.exit_code == 0
        assert (tmp_path / "deps.txt").read_text(encoding="utf-8") == ""

    def test_python_option_selects_interpreter(
        self, runner: CliRunner, project: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        runner.invoke(cli, ["prune", str(project), "--dry-run", "--python", "/opt/py/bin/python"])

        assert stub_fetcher.interpreters == ["/opt/py/bin/python"]

    def test_missing_manifest(
        self, runner: CliRunner, tmp_path: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        result = runner.invoke(cli, ["prune", str(tmp_path)])

        assert result.exit_code == 1
        assert "Manifest not found" in result.output

    def test_binary_manifest(
        self, runner: CliRunner, tmp_path: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        (tmp_path / "requirements.txt").write_bytes(b"six\n\x00\x00\n")

        result = runner.invoke(cli, ["prune", str(tmp_path)])

        assert result.exit_code == 1
        assert "Manifest contains binary data" in result.output

    def test_json_format(
        self, runner: CliRunner, project: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        result = runner.invoke(cli, ["prune", str(project), "--dry-run", "--format", "json"])

        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["removed"] == ["six"]
        assert report["protected"] == ["idna"]
        assert report["written"] is False
        assert {"name": "pytest", "reason": "allowlisted"} in report["kept"]

    def test_verbose_shows_decision_table(
        self, runner: CliRunner, project: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        result = runner.invoke(cli, ["-v", "prune", str(project), "--dry-run"])

        assert result.exit_code == 0
        assert "Manifest Decisions" in result.output

    def test_config_file_options(
        self, runner: CliRunner, project: Path, stub_fetcher: StubFetcherFactory
    ) -> None:
        config = project / "reqtidy.toml"
        config.write_text("[reqtidy]\nkeep = ['six']\n", encoding="utf-8")

        result = runner.invoke(cli, ["-c", str(config), "prune", str(project)])

        assert result.exit_code == 0
        assert "six==1.16.0" in _manifest(project)


# ==============================================================================
# Option merging
# ==============================================================================


@pytest.mark.unit
class TestRunOptionMerging:
    """Tests for how _run merges configuration and command-line options."""

    def _call(self, config: ReqTidyConfig, **overrides: Any) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "manifest": None,
            "dry_run": False,
            "backup": None,
            "python": None,
            "keep": (),
            "exclude": (),
        }
        options.update(overrides)
        with patch("reqtidy.commands.prune.prune_project") as mock_prune:
            _run(config, Path("proj"), **options)
        return mock_prune.call_args[1]

    def test_config_values_used(self) -> None:
        config = ReqTidyConfig(
            manifest="deps.txt",
            python="/venv/bin/python",
            metadata_timeout=5.0,
            backup=True,
        )

        kwargs = self._call(config)

        assert kwargs["manifest_name"] == "deps.txt"
        assert kwargs["interpreter"] == "/venv/bin/python"
        assert kwargs["metadata_timeout"] == 5.0
        assert kwargs["backup"] is True

    def test_cli_overrides_config(self) -> None:
        config = ReqTidyConfig(manifest="deps.txt", python="/venv/bin/python", backup=True)

        kwargs = self._call(
            config, manifest="other.txt", python="/usr/bin/python3", backup=False
        )

        assert kwargs["manifest_name"] == "other.txt"
        assert kwargs["interpreter"] == "/usr/bin/python3"
        assert kwargs["backup"] is False

    def test_keep_and_exclude_are_additive(self) -> None:
        config = ReqTidyConfig(keep=["celery"], exclude=["docs"])

        kwargs = self._call(config, keep=("flower",), exclude=("scripts",))

        assert {"celery", "flower", "pytest"} <= set(kwargs["allowlist"])
        assert {"docs", "scripts", ".venv"} <= set(kwargs["exclude_dirs"])
