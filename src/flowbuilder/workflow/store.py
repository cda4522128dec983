"""File based package storage organized by workspace namespace."""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path

from .schema import GeneratedPackage


def atomic_write_text(path: Path, content: str) -> None:
    """Atomically write text content to a file using replace-on-commit."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())

        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


class PackageStore:
    """Stores generated packages as JSON files, one directory per namespace."""

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir

    def _path(self, package_id: str, namespace: str) -> Path:
        return self.base_dir / namespace / f"{package_id}.json"

    def save(self, package: GeneratedPackage, namespace: str = "default") -> str:
        """Save a package and return its ID."""
        atomic_write_text(self._path(package.id, namespace), package.model_dump_json(indent=2))
        return package.id

    def load(self, package_id: str, namespace: str = "default") -> GeneratedPackage | None:
        filepath = self._path(package_id, namespace)
        if not filepath.exists():
            return None
        return GeneratedPackage.model_validate(json.loads(filepath.read_text()))

    def list_by_namespace(
        self, namespace: str, since: datetime | None = None
    ) -> list[GeneratedPackage]:
        """List packages in a namespace, most recently saved first.

        With ``since``, only packages saved at or after that moment are returned.
        """
        namespace_dir = self.base_dir / namespace
        if not namespace_dir.exists():
            return []

        paths = namespace_dir.glob("*.json")
        if since is not None:
            paths = [p for p in paths if p.stat().st_mtime >= since.timestamp()]
        files = sorted(
            paths,
            key=lambda path: (path.stat().st_mtime_ns, path.name),
            reverse=True,
        )
        return [GeneratedPackage.model_validate(json.loads(f.read_text())) for f in files]

    def delete(self, package_id: str, namespace: str = "default") -> bool:
        """Delete a package. Returns True if it existed."""
        filepath = self._path(package_id, namespace)
        if not filepath.exists():
            return False
        filepath.unlink()
        return True
