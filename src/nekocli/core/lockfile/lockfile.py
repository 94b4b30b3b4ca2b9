"""Lock document core class: entry management and serialization.

The ``LockDocument`` class is the in-memory form of ``deps.neko``. It
provides:

- **Entry management:** upsert, remove, get and ordered iteration over
  the ``dependencies`` and ``devDependencies`` sections.
- **Serialization:** ``to_dict``, ``dump`` (header + YAML) and an atomic
  ``save``.

Ordering guarantee: sections keep insertion order, and ``dump`` writes
them in that order, so the same sequence of operations always produces
byte-identical output.

Invariant: a package name lives in at most one section. ``upsert`` is
the only way to add an entry and it evicts the name from the other
section.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Iterator

import yaml

from nekocli.core.lockfile.models import (
    DEV_SECTION,
    LOCK_HEADER,
    RUNTIME_SECTION,
    LockEntry,
    section_for,
)
from nekocli.exceptions import LockWriteError


class LockDocument:
    """In-memory ``deps.neko`` lock document.

    Example::

        doc = LockDocument.load(Path("deps.neko"))
        doc.upsert("chalk", LockEntry(
            version="5.3.0",
            resolved="https://registry.npmjs.org/chalk/-/chalk-5.3.0.tgz",
            integrity="sha512-...",
        ), is_dev=False)
        doc.save(Path("deps.neko"))
    """

    def __init__(self) -> None:
        self._sections: dict[str, dict[str, LockEntry]] = {
            RUNTIME_SECTION: {},
            DEV_SECTION: {},
        }

    # -- Entry management ---------------------------------------------------

    @property
    def dependencies(self) -> dict[str, LockEntry]:
        """Runtime entries, in insertion order. Treat as read-only."""
        return self._sections[RUNTIME_SECTION]

    @property
    def dev_dependencies(self) -> dict[str, LockEntry]:
        """Dev entries, in insertion order. Treat as read-only."""
        return self._sections[DEV_SECTION]

    def upsert(self, name: str, entry: LockEntry, is_dev: bool) -> None:
        """Insert or overwrite ``name`` in the target section.

        Any entry for the same name in the other section is dropped.
        Overwriting keeps the name's original position in its section.

        Args:
            name: Package name (e.g., "chalk" or "@scope/pkg").
            entry: The resolved entry to store.
            is_dev: True for ``devDependencies``, False for ``dependencies``.
        """
        self._sections[section_for(not is_dev)].pop(name, None)
        self._sections[section_for(is_dev)][name] = entry

    def remove(self, name: str, is_dev: bool) -> bool:
        """Delete ``name`` from the specified section.

        Args:
            name: Package name.
            is_dev: Which section to remove from.

        Returns:
            True if an entry was removed, False if it was not present.
        """
        return self._sections[section_for(is_dev)].pop(name, None) is not None

    def get(self, name: str) -> tuple[LockEntry, bool] | None:
        """Look up ``name`` in either section.

        Returns:
            ``(entry, is_dev)``, or None if the name is not locked.
        """
        for is_dev in (False, True):
            entry = self._sections[section_for(is_dev)].get(name)
            if entry is not None:
                return entry, is_dev
        return None

    def entries(self) -> Iterator[tuple[str, LockEntry, bool]]:
        """Yield ``(name, entry, is_dev)`` for runtime then dev entries."""
        for is_dev in (False, True):
            for name, entry in self._sections[section_for(is_dev)].items():
                yield name, entry, is_dev

    def __contains__(self, name: object) -> bool:
        return any(name in section for section in self._sections.values())

    def __len__(self) -> int:
        return sum(len(section) for section in self._sections.values())

    @property
    def is_empty(self) -> bool:
        """True when neither section has entries."""
        return len(self) == 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LockDocument):
            return NotImplemented
        return self._sections == other._sections

    def __repr__(self) -> str:
        return (
            f"LockDocument(dependencies={len(self.dependencies)}, "
            f"devDependencies={len(self.dev_dependencies)})"
        )

    def copy(self) -> LockDocument:
        """Return a shallow copy; entries are immutable so this is safe to mutate."""
        clone = type(self)()
        for name, entry, is_dev in self.entries():
            clone.upsert(name, entry, is_dev)
        return clone

    # -- Serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the two-section mapping written below the header."""
        return {
            section: {name: entry.to_dict() for name, entry in entries.items()}
            for section, entries in self._sections.items()
        }

    def dump(self) -> str:
        """Render the full file text: fixed header followed by YAML."""
        body = yaml.safe_dump(
            self.to_dict(),
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
            width=float("inf"),
        )
        return LOCK_HEADER + body

    def save(self, path: Path) -> None:
        """Write the document to ``path``, replacing any existing file.

        The text goes to a temporary file in the same directory which is
        then renamed over the target, so readers see either the old or the
        new document and never a partial one.

        Args:
            path: Destination, normally ``<project>/deps.neko``.

        Raises:
            LockWriteError: If the directory or file is not writable.
        """
        text = self.dump()
        path = Path(path)
        tmp_name = ""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(text)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name:
                Path(tmp_name).unlink(missing_ok=True)
            raise LockWriteError(f"Cannot write {path}: {exc}") from exc
