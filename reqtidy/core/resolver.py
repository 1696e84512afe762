"""Installed-package metadata resolution for reqtidy.

Maps every manifest entry to its *import surface* (the module names it can
be imported as) and its *direct requirements*. Distribution names and
module names often differ (``beautifulsoup4`` → ``bs4``,
``PyYAML`` → ``yaml``) and one distribution may provide several modules,
so this information has to come from the metadata recorded at install
time in the project's own environment.

The lookup runs in the project's interpreter, not in reqtidy's, through a
*metadata fetcher*: any callable taking a sequence of manifest names and
returning a mapping::

    {"pydantic[email]": {"import_names": ["pydantic"],
                         "requires": ["email-validator>=2.0.0; extra == 'email'", ...]}}

:class:`SubprocessMetadataFetcher` is the production fetcher; tests pass a
plain function. :class:`PackageMetadataResolver` calls the fetcher exactly
once per run and validates its answer. Any failure (missing interpreter,
timeout, crash, malformed JSON) degrades to "no metadata" and is never
fatal.

Typical usage::

    fetcher  = SubprocessMetadataFetcher(detect_interpreter(project_dir))
    resolver = PackageMetadataResolver(fetcher)
    metadata = resolver.resolve(["requests", "pydantic[email]"])
    metadata["requests"].import_surface   # frozenset({'requests'})
"""

from __future__ import annotations

import os
import sys
import json
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence, Union

from packaging.requirements import Requirement as PkgRequirement, InvalidRequirement

from reqtidy.utils import get_logger
from reqtidy.exceptions import MetadataError
from reqtidy.models.metadata import PackageMetadata
from reqtidy.constants import (
    DEFAULT_METADATA_TIMEOUT,
    METADATA_DIR_SUFFIXES,
    REQUIREMENT_NAME_PATTERN,
    VENV_INTERPRETER_CANDIDATES,
)

logger = get_logger("core.resolver")

__all__ = [
    "MetadataFetcher",
    "SubprocessMetadataFetcher",
    "PackageMetadataResolver",
    "detect_interpreter",
    "requirement_name",
]

#: A function from manifest names to raw per-name metadata.
MetadataFetcher = Callable[[Sequence[str]], Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Script executed by the project's interpreter
# ---------------------------------------------------------------------------

# Reads a JSON list of manifest names on stdin and prints one JSON object.
# Must run on any Python 3.8+ with nothing but the standard library.
METADATA_SCRIPT = """\
import sys
sys.path = [p for p in sys.path if p not in ("", ".")]
import json
import importlib.metadata as md

SKIP_SUFFIXES = %(skip_suffixes)r
MODULE_SUFFIXES = (".py", ".so", ".pyd")


def guess(name):
    return [name.lower().replace("-", "_"), name]


def surface_from_files(dist):
    names = []
    for path in dist.files or ():
        parts = path.parts
        if not parts:
            continue
        head = parts[0]
        if head.startswith("..") or head == "__pycache__":
            continue
        if head.endswith(SKIP_SUFFIXES) or head.endswith(".pth"):
            continue
        if len(parts) == 1:
            if not head.endswith(MODULE_SUFFIXES):
                continue
            head = head.split(".", 1)[0]
        if head and head not in names:
            names.append(head)
    return names


def describe(name):
    key = name.split("[", 1)[0].strip()
    try:
        dist = md.distribution(key)
    except md.PackageNotFoundError:
        return {"import_names": guess(key), "requires": [], "installed": False}
    top_level = dist.read_text("top_level.txt")
    if top_level:
        names = [t.strip() for t in top_level.split() if t.strip()]
    else:
        names = surface_from_files(dist) or [key.lower().replace("-", "_")]
    return {"import_names": names, "requires": list(dist.requires or []), "installed": True}


def main():
    data = sys.stdin.read()
    if not data.strip():
        print("{}")
        return
    result = {}
    for name in json.loads(data):
        try:
            result[name] = describe(name)
        except Exception:
            result[name] = {"import_names": [name.split("[", 1)[0].lower()], "requires": []}
    print(json.dumps(result))


main()
""" % {"skip_suffixes": tuple(METADATA_DIR_SUFFIXES)}


# ---------------------------------------------------------------------------
# Interpreter discovery
# ---------------------------------------------------------------------------


def detect_interpreter(
    project_dir: Union[str, Path],
    explicit: Optional[str] = None,
) -> str:
    """Choose the interpreter whose installed packages describe the project.

    Order: ``explicit`` → a ``.venv``/``venv`` interpreter inside
    ``project_dir`` → the interpreter running reqtidy.
    """
    if explicit:
        return explicit

    root = Path(project_dir)
    for candidate in VENV_INTERPRETER_CANDIDATES:
        path = root / candidate
        if path.is_file():
            logger.debug("Using project interpreter %s", path)
            return str(path)

    logger.debug("No project virtualenv found, using %s", sys.executable)
    return sys.executable


# ---------------------------------------------------------------------------
# Fetchers
# ---------------------------------------------------------------------------


class SubprocessMetadataFetcher:
    """Query distribution metadata by running a script in another interpreter.

    Args:
        interpreter: Python executable to run.
        timeout: Seconds to wait before giving up.

    Raises (when called):
        MetadataError: The interpreter is missing, times out, exits with a
            non-zero status or prints something that is not a JSON object.
    """

    def __init__(
        self,
        interpreter: str = sys.executable,
        timeout: Optional[float] = DEFAULT_METADATA_TIMEOUT,
    ) -> None:
        self.interpreter = interpreter
        self.timeout = timeout

    def __call__(self, names: Sequence[str]) -> Mapping[str, Any]:
        if not names:
            return {}

        env = dict(os.environ, PYTHONIOENCODING="utf-8")
        logger.debug(
            "Querying metadata for %d package(s) with %s", len(names), self.interpreter
        )

        try:
            proc = subprocess.run(
                [self.interpreter, "-c", METADATA_SCRIPT],
                input=json.dumps(list(names)),
                capture_output=True,
                text=True,
                encoding="utf-8",
                timeout=self.timeout,
                env=env,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise MetadataError(
                f"Metadata query timed out after {self.timeout}s",
                interpreter=self.interpreter,
            ) from exc
        except OSError as exc:
            raise MetadataError(
                f"Cannot run interpreter: {exc}",
                interpreter=self.interpreter,
            ) from exc

        if proc.returncode != 0:
            raise MetadataError(
                "Metadata query failed",
                interpreter=self.interpreter,
                returncode=proc.returncode,
                stderr=proc.stderr,
            )

        try:
            payload = json.loads(proc.stdout)
        except ValueError as exc:
            raise MetadataError(
                f"Malformed metadata response: {exc}",
                interpreter=self.interpreter,
                stderr=proc.stderr,
            ) from exc

        if not isinstance(payload, dict):
            raise MetadataError(
                f"Metadata response is a {type(payload).__name__}, expected an object",
                interpreter=self.interpreter,
            )
        return payload

    def __repr__(self) -> str:
        return (
            f"SubprocessMetadataFetcher(interpreter={self.interpreter!r}, "
            f"timeout={self.timeout!r})"
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def requirement_name(specifier: str) -> Optional[str]:
    """Return the lower-cased project name of a requirement specifier.

    Comparators, extras and environment markers are dropped::

        >>> requirement_name("email-validator>=2.0.0; extra == 'email'")
        'email-validator'
        >>> requirement_name("Typing_Extensions (>=4.6)")
        'typing_extensions'
    """
    try:
        return PkgRequirement(specifier).name.lower()
    except InvalidRequirement:
        match = REQUIREMENT_NAME_PATTERN.match(specifier)
        return match.group(1).lower() if match else None


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, (list, tuple)):
        return None
    if not all(isinstance(v, str) for v in value):
        return None
    return [v.strip() for v in value if v.strip()]


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class PackageMetadataResolver:
    """Resolve manifest names to :class:`PackageMetadata` in one batch.

    Args:
        fetcher: Metadata capability; called once per :meth:`resolve`.

    Example::

        >>> def fake(names):
        ...     return {"beautifulsoup4": {"import_names": ["bs4"], "requires": []}}
        >>> PackageMetadataResolver(fake).resolve(["beautifulsoup4"])
        {'beautifulsoup4': PackageMetadata(import_surface=frozenset({'bs4'}), ...)}
    """

    def __init__(self, fetcher: MetadataFetcher) -> None:
        self.fetcher = fetcher

    def resolve(self, names: Sequence[str]) -> Dict[str, PackageMetadata]:
        """Return metadata keyed by the manifest names given.

        Names without a usable answer are absent from the result. If the
        fetcher fails outright the result is empty.
        """
        unique = list(dict.fromkeys(names))
        if not unique:
            return {}

        try:
            raw = self.fetcher(unique)
        except Exception as exc:
            logger.warning(
                "Could not fetch package metadata (%s); falling back to name matching",
                exc,
            )
            logger.debug("Metadata fetch failure", exc_info=True)
            return {}

        if not isinstance(raw, Mapping):
            logger.warning(
                "Ignoring malformed metadata response of type %s", type(raw).__name__
            )
            return {}

        resolved: Dict[str, PackageMetadata] = {}
        for name in unique:
            if name not in raw:
                logger.debug("No metadata returned for %s", name)
                continue
            metadata = self._coerce_entry(name, raw[name])
            if metadata is not None:
                resolved[name] = metadata

        logger.info("Resolved metadata for %d/%d package(s)", len(resolved), len(unique))
        return resolved

    def _coerce_entry(self, name: str, entry: Any) -> Optional[PackageMetadata]:
        """Validate one raw entry; ``None`` if it is unusable."""
        # A bare list is an import surface without requirements
        if isinstance(entry, (list, tuple)):
            entry = {"import_names": entry}

        if not isinstance(entry, Mapping):
            logger.debug("Malformed metadata for %s: %r", name, entry)
            return None

        import_names = _string_list(entry.get("import_names", []))
        requires = _string_list(entry.get("requires", []))
        if import_names is None or requires is None:
            logger.debug("Malformed metadata for %s: %r", name, entry)
            return None

        direct_requires: FrozenSet[str] = frozenset(
            req for req in (requirement_name(s) for s in requires) if req
        )

        metadata = PackageMetadata(
            import_surface=frozenset(import_names),
            direct_requires=direct_requires,
        )
        logger.debug(
            "%s: imports %s, requires %s",
            name,
            sorted(metadata.import_surface),
            sorted(metadata.direct_requires),
        )
        return metadata
