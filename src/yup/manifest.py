"""package.json reader.

Only the two dependency sections are read; the manifest is never written by
yup. The package manager edits it on disk as a side effect of being invoked.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from yup.errors import ManifestParseError, ManifestReadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Manifest:
    """Dependency sections of a package.json."""

    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any, path: str = "<memory>") -> "Manifest":
        """Build a Manifest from decoded JSON.

        A document that is not an object (e.g. ``null``) has no dependencies.
        """
        if not isinstance(data, dict):
            logger.debug("%s is not a JSON object; treating it as empty", path)
            return cls()
        return cls(
            dependencies=_section(data, "dependencies", path),
            dev_dependencies=_section(data, "devDependencies", path),
        )


def _section(data: Dict[str, Any], key: str, path: str) -> Dict[str, str]:
    raw = data.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ManifestParseError(path, f"'{key}' must be an object")
    section = {}
    for name, version in raw.items():
        # An empty or non-string range is treated as not declared.
        if not isinstance(version, str) or not version:
            logger.debug("Ignoring %s in '%s' of %s: no version range", name, key, path)
            continue
        section[str(name)] = version
    return section


def read_manifest(path: str) -> Manifest:
    """Read and parse the manifest at ``path``.

    Args:
        path: Path to package.json.

    Returns:
        Manifest with both dependency sections.

    Raises:
        ManifestReadError: If the file cannot be read.
        ManifestParseError: If the file is not valid JSON.
    """
    try:
        with open(path, "r", encoding="utf-8") as file:
            body = file.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestReadError(path, f"Encountered an error while trying to read the manifest: {e}") from e

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise ManifestParseError(path, f"Invalid JSON: {e}") from e

    return Manifest.from_dict(data, path)
