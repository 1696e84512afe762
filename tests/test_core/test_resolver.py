from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path
from typing import Any, List, Mapping, Sequence
from unittest.mock import MagicMock, patch

import pytest

from reqtidy.exceptions import MetadataError
from reqtidy.models import PackageMetadata
from reqtidy.core.resolver import (
    METADATA_SCRIPT,
    PackageMetadataResolver,
    SubprocessMetadataFetcher,
    detect_interpreter,
    requirement_name,
)


class RecordingFetcher:
    """Fetcher returning a canned response and recording every call."""

    def __init__(self, response: Any) -> None:
        self.response = response
        self.calls: List[List[str]] = []

    def __call__(self, names: Sequence[str]) -> Mapping[str, Any]:
        self.calls.append(list(names))
        return self.response


def _completed(stdout: str = "{}", returncode: int = 0, stderr: str = "") -> MagicMock:
    proc = MagicMock()
    proc.stdout = stdout
    proc.returncode = returncode
    proc.stderr = stderr
    return proc


@pytest.mark.unit
class TestRequirementName:
    """Tests for requirement_name."""

    @pytest.mark.parametrize(
        "specifier,expected",
        [
            ("urllib3<3,>=1.21.1", "urllib3"),
            ("email-validator>=2.0.0; extra == 'email'", "email-validator"),
            ("PySocks!=1.5.7,>=1.5.6; extra == \"socks\"", "pysocks"),
            ("Typing_Extensions>=4.6", "typing_extensions"),
            ("zope.interface", "zope.interface"),
        ],
    )
    def test_names(self, specifier: str, expected: str) -> None:
        assert requirement_name(specifier) == expected

    def test_invalid_marker_falls_back_to_regex(self) -> None:
        assert requirement_name("six (>=1.5) ; bogus marker") == "six"

    def test_no_name(self) -> None:
        assert requirement_name(">=1.0") is None


@pytest.mark.unit
class TestDetectInterpreter:
    """Tests for detect_interpreter."""

    def test_explicit_wins(self, tmp_path: Path) -> None:
        assert detect_interpreter(tmp_path, "/opt/python") == "/opt/python"

    def test_project_virtualenv(self, tmp_path: Path) -> None:
        python = tmp_path / ".venv" / "bin" / "python"
        python.parent.mkdir(parents=True)
        python.write_text("", encoding="utf-8")

        with patch("reqtidy.core.resolver.VENV_INTERPRETER_CANDIDATES", (".venv/bin/python",)):
            assert detect_interpreter(tmp_path) == str(tmp_path / ".venv/bin/python")

    def test_falls_back_to_current_interpreter(self, tmp_path: Path) -> None:
        assert detect_interpreter(tmp_path) == sys.executable


@pytest.mark.unit
class TestSubprocessMetadataFetcher:
    """Tests for SubprocessMetadataFetcher with subprocess.run patched."""

    def test_empty_names_skip_subprocess(self) -> None:
        with patch("reqtidy.core.resolver.subprocess.run") as mock_run:
            assert SubprocessMetadataFetcher("python")([]) == {}

        mock_run.assert_not_called()

    def test_runs_script_with_names_on_stdin(self) -> None:
        payload = {"requests": {"import_names": ["requests"], "requires": []}}
        with patch(
            "reqtidy.core.resolver.subprocess.run",
            return_value=_completed(json.dumps(payload)),
        ) as mock_run:
            result = SubprocessMetadataFetcher("/venv/bin/python", timeout=5)(["requests"])

        assert result == payload
        args, kwargs = mock_run.call_args
        assert args[0] == ["/venv/bin/python", "-c", METADATA_SCRIPT]
        assert json.loads(kwargs["input"]) == ["requests"]
        assert kwargs["timeout"] == 5

    def test_timeout_raises_metadata_error(self) -> None:
        with patch(
            "reqtidy.core.resolver.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="python", timeout=1),
        ):
            with pytest.raises(MetadataError, match="timed out"):
                SubprocessMetadataFetcher("python", timeout=1)(["requests"])

    def test_missing_interpreter_raises_metadata_error(self) -> None:
        with patch(
            "reqtidy.core.resolver.subprocess.run",
            side_effect=FileNotFoundError("no such file"),
        ):
            with pytest.raises(MetadataError, match="Cannot run interpreter"):
                SubprocessMetadataFetcher("/missing/python")(["requests"])

    def test_nonzero_exit_raises_metadata_error(self) -> None:
        with patch(
            "reqtidy.core.resolver.subprocess.run",
            return_value=_completed("", returncode=1, stderr="Traceback ..."),
        ):
            with pytest.raises(MetadataError) as exc_info:
                SubprocessMetadataFetcher("python")(["requests"])

        assert exc_info.value.returncode == 1

    @pytest.mark.parametrize("stdout", ["not json", "[1, 2]"])
    def test_malformed_output_raises_metadata_error(self, stdout: str) -> None:
        with patch(
            "reqtidy.core.resolver.subprocess.run",
            return_value=_completed(stdout),
        ):
            with pytest.raises(MetadataError):
                SubprocessMetadataFetcher("python")(["requests"])

    def test_repr(self) -> None:
        fetcher = SubprocessMetadataFetcher("python", timeout=3)

        assert repr(fetcher) == "SubprocessMetadataFetcher(interpreter='python', timeout=3)"


@pytest.mark.integration
class TestSubprocessMetadataFetcherLive:
    """Run the metadata script in the current interpreter."""

    def test_installed_distribution(self) -> None:
        result = SubprocessMetadataFetcher(sys.executable)(["packaging"])

        assert result["packaging"]["installed"] is True
        assert "packaging" in result["packaging"]["import_names"]

    def test_missing_distribution_guesses_names(self) -> None:
        result = SubprocessMetadataFetcher(sys.executable)(["No-Such-Dist-Xyz[extra]"])

        entry = result["No-Such-Dist-Xyz[extra]"]
        assert entry["installed"] is False
        assert entry["import_names"] == ["no_such_dist_xyz", "No-Such-Dist-Xyz"]
        assert entry["requires"] == []


@pytest.mark.unit
class TestPackageMetadataResolver:
    """Tests for PackageMetadataResolver.resolve."""

    def test_resolves_entries(self) -> None:
        fetcher = RecordingFetcher(
            {
                "beautifulsoup4": {"import_names": ["bs4"], "requires": ["soupsieve>1.2"]},
                "pydantic[email]": {
                    "import_names": ["pydantic"],
                    "requires": ["email-validator>=2.0.0; extra == 'email'"],
                },
            }
        )

        result = PackageMetadataResolver(fetcher).resolve(
            ["beautifulsoup4", "pydantic[email]"]
        )

        assert result == {
            "beautifulsoup4": PackageMetadata(frozenset({"bs4"}), frozenset({"soupsieve"})),
            "pydantic[email]": PackageMetadata(
                frozenset({"pydantic"}), frozenset({"email-validator"})
            ),
        }

    def test_fetcher_called_once_with_unique_names(self) -> None:
        fetcher = RecordingFetcher({})

        PackageMetadataResolver(fetcher).resolve(["requests", "six", "requests"])

        assert fetcher.calls == [["requests", "six"]]

    def test_no_names_skips_fetcher(self) -> None:
        fetcher = RecordingFetcher({})

        assert PackageMetadataResolver(fetcher).resolve([]) == {}
        assert fetcher.calls == []

    def test_fetcher_failure_degrades_to_empty(self) -> None:
        def failing(names: Sequence[str]) -> Mapping[str, Any]:
            raise MetadataError("boom", interpreter="python")

        assert PackageMetadataResolver(failing).resolve(["requests"]) == {}

    def test_non_mapping_response_ignored(self) -> None:
        fetcher = RecordingFetcher(["requests"])

        assert PackageMetadataResolver(fetcher).resolve(["requests"]) == {}

    def test_list_entry_is_import_surface(self) -> None:
        fetcher = RecordingFetcher({"PyYAML": ["yaml", "_yaml"]})

        result = PackageMetadataResolver(fetcher).resolve(["PyYAML"])

        assert result["PyYAML"].import_surface == {"yaml", "_yaml"}
        assert result["PyYAML"].direct_requires == frozenset()

    def test_malformed_entries_dropped(self) -> None:
        fetcher = RecordingFetcher(
            {
                "a": "not-a-mapping",
                "b": {"import_names": "b"},
                "c": {"import_names": ["c"], "requires": [1]},
                "d": {"import_names": ["d"]},
            }
        )

        result = PackageMetadataResolver(fetcher).resolve(["a", "b", "c", "d", "e"])

        assert set(result) == {"d"}

    def test_unnamed_requirements_skipped(self) -> None:
        fetcher = RecordingFetcher({"x": {"import_names": ["x"], "requires": [">=1", "y"]}})

        result = PackageMetadataResolver(fetcher).resolve(["x"])

        assert result["x"].direct_requires == {"y"}
