"""Read-only access to the project manifest (``package.json``).

Only the ``dependencies`` and ``devDependencies`` maps are consulted.
The manifest is never written by neko-cli; the package manager keeps it
up to date when packages are added or removed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from nekocli import MANIFEST_NAME
from nekocli.exceptions import ManifestMissing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencySpec:
    """A dependency declaration read from the manifest.

    Attributes:
        name: Package name.
        version_range: Range as written (e.g., "^5.0.0").
        is_dev: True when declared under ``devDependencies``.
    """

    name: str
    version_range: str
    is_dev: bool = False


@dataclass
class Manifest:
    """A parsed ``package.json``.

    Attributes:
        path: Where the manifest was read from.
        data: The decoded JSON object.
    """

    path: Path
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load(cls, project_dir: Path, name: str = MANIFEST_NAME) -> Manifest:
        """Read the manifest in ``project_dir``.

        Args:
            project_dir: Project root.
            name: Manifest file name.

        Returns:
            The parsed manifest.

        Raises:
            ManifestMissing: If the file is absent, unreadable, or not a
                JSON object.
        """
        path = Path(project_dir) / name
        if not path.is_file():
            raise ManifestMissing(f"No {name} found in {Path(project_dir).resolve()}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ManifestMissing(f"Cannot read {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ManifestMissing(f"{path} must contain a JSON object")
        return cls(path=path, data=data)

    def _section(self, key: str, is_dev: bool) -> Iterator[DependencySpec]:
        section = self.data.get(key) or {}
        if not isinstance(section, dict):
            logger.warning("Ignoring %s.%s: not an object", self.path.name, key)
            return
        for dep_name, version_range in section.items():
            if not isinstance(version_range, str):
                logger.warning(
                    "Ignoring %s in %s: range %r is not a string",
                    dep_name, key, version_range,
                )
                continue
            yield DependencySpec(name=dep_name, version_range=version_range, is_dev=is_dev)

    def specs(self) -> list[DependencySpec]:
        """Return runtime then dev dependency declarations, in file order."""
        return [
            *self._section("dependencies", is_dev=False),
            *self._section("devDependencies", is_dev=True),
        ]
