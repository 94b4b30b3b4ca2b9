"""Lock document operations: parsing, loading, validation and diffing.

This module extends the ``LockDocument`` class (defined in
``lockfile.py``) with classmethods and instance methods for:

- **Parsing:** ``from_dict`` and ``parse`` (strict, raise
  ``CorruptLockDocument``).
- **Loading:** ``load`` (lenient, never raises for a missing or corrupt
  file).
- **Validation:** format checks on every entry.
- **Diffing:** structured comparison of two documents.

These are attached to the ``LockDocument`` class at import time (in
``__init__.py``) to keep each source file focused while presenting a
single API to callers.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import yaml

from nekocli.core.lockfile.models import (
    DEV_SECTION,
    SECTIONS,
    LockEntry,
    _INTEGRITY_RE,
    section_for,
)
from nekocli.exceptions import CorruptLockDocument

if TYPE_CHECKING:
    from nekocli.progress import ProgressReporter

logger = logging.getLogger(__name__)


def _from_dict(cls: type, data: Any) -> Any:
    """Build a document from the parsed YAML value.

    A missing or null section is read as empty. Names that appear in both
    sections keep only their ``devDependencies`` entry.

    Args:
        data: The value returned by ``yaml.safe_load``.

    Returns:
        A new ``LockDocument``.

    Raises:
        CorruptLockDocument: If ``data`` is not a mapping of mappings of
            well-formed entries.
    """
    if not isinstance(data, dict):
        raise CorruptLockDocument(
            f"top level must be a mapping, got {type(data).__name__}"
        )

    doc = cls()
    for section in SECTIONS:
        entries = data.get(section)
        if entries is None:
            continue
        if not isinstance(entries, dict):
            raise CorruptLockDocument(
                f"section {section!r} must be a mapping, got {type(entries).__name__}"
            )
        is_dev = section == DEV_SECTION
        for name, raw in entries.items():
            if not isinstance(name, str) or not name:
                raise CorruptLockDocument(f"invalid package name {name!r} in {section!r}")
            try:
                entry = LockEntry.from_dict(raw)
            except ValueError as exc:
                raise CorruptLockDocument(f"{section}.{name}: {exc}") from exc
            if is_dev and name in doc.dependencies:
                logger.warning(
                    "%s is locked in both sections; keeping the devDependencies entry",
                    name,
                )
            doc.upsert(name, entry, is_dev)
    return doc


def _parse(cls: type, text: str) -> Any:
    """Parse lock file text (header included).

    The header lines are YAML comments, so the text is handed to the
    YAML loader as-is.

    Args:
        text: Full contents of a ``deps.neko`` file.

    Returns:
        A new ``LockDocument``.

    Raises:
        CorruptLockDocument: On YAML syntax errors or a wrong shape.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise CorruptLockDocument(f"invalid YAML: {exc}") from exc
    if data is None:
        # Header only, or an empty file.
        return cls()
    return cls.from_dict(data)


def _load(
    cls: type,
    path: Path,
    progress: ProgressReporter | None = None,
) -> Any:
    """Read the lock document at ``path``, recovering from every read problem.

    Args:
        path: Location of ``deps.neko``.
        progress: Optional reporter that also receives the corruption warning.

    Returns:
        The parsed document; an empty one when the file is absent,
        unreadable, or corrupt.
    """
    path = Path(path)
    if not path.exists():
        logger.debug("%s not found; starting with an empty lock document", path)
        return cls()

    try:
        text = path.read_text(encoding="utf-8")
        return cls.parse(text)
    except (CorruptLockDocument, OSError, UnicodeDecodeError) as exc:
        message = f"{path.name} is invalid ({exc}); starting from an empty lock document"
        logger.warning("%s", message)
        if progress is not None:
            progress.warn(message)
        return cls()


def _is_http_url(value: str) -> bool:
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL:
        return False
    return url.scheme in ("http", "https") and bool(url.host)


def _validate(self: Any) -> list[str]:
    """Check every entry for format problems.

    Performs the following checks:

    1. **Version non-empty.**
    2. **Resolved URL:** must be an absolute http(s) URL with a valid
       host and port.
    3. **Integrity format:** must match ``<algo>-<base64>`` for a
       supported SRI algorithm.

    Returns:
        List of validation error messages. Empty means the document is
        valid.
    """
    errors: list[str] = []

    for name, entry, is_dev in self.entries():
        where = f"{section_for(is_dev)}.{name}"
        if not entry.version.strip():
            errors.append(f"{where} has an empty version")
        if not _is_http_url(entry.resolved):
            errors.append(f"{where} has an invalid resolved URL: {entry.resolved!r}")
        if not _INTEGRITY_RE.match(entry.integrity):
            errors.append(f"{where} has an invalid integrity digest: {entry.integrity!r}")

    return errors


def _diff(self: Any, other: Any) -> dict[str, Any]:
    """Compare two documents and return differences.

    - **added**: Names present in ``other`` but not in ``self``.
    - **removed**: Names present in ``self`` but not in ``other``.
    - **changed**: Names in both whose version, resolved URL, integrity
      or section differ.

    Args:
        other: The document to compare against (typically the newer one).

    Returns:
        Dict with keys 'added', 'removed', 'changed'.
    """
    old = {name: (entry, is_dev) for name, entry, is_dev in self.entries()}
    new = {name: (entry, is_dev) for name, entry, is_dev in other.entries()}

    added = [name for name in new if name not in old]
    removed = [name for name in old if name not in new]

    changes: list[dict[str, Any]] = []
    for name in old:
        if name not in new:
            continue
        (old_entry, old_dev), (new_entry, new_dev) = old[name], new[name]
        for field_name in ("version", "resolved", "integrity"):
            before = getattr(old_entry, field_name)
            after = getattr(new_entry, field_name)
            if before != after:
                changes.append({"name": name, "field": field_name, "old": before, "new": after})
        if old_dev != new_dev:
            changes.append({
                "name": name,
                "field": "section",
                "old": section_for(old_dev),
                "new": section_for(new_dev),
            })

    return {
        "added": added,
        "removed": removed,
        "changed": changes,
    }
