"""Sandboxed filesystem access.

Every operation resolves its path through safe_resolve() first, so nothing
can read or write outside the store's root. Failures are returned as
StoreError values instead of raised.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Iterable

from .safe_paths import safe_resolve
from .types import StoreError

# Read once: os.umask() can only be queried by setting it.
_UMASK = os.umask(0)
os.umask(_UMASK)


class SandboxedStore:
    """File access confined to a single root directory."""

    def __init__(self, root: Path | str, forbidden_components: Iterable[str] = ()):
        root = Path(root).resolve()
        if not root.is_dir():
            raise NotADirectoryError(f"Sandbox root is not a directory: {root}")
        self.root = root
        self.forbidden_components = tuple(forbidden_components)

    def resolve(self, rel_path: str) -> Path | StoreError:
        return safe_resolve(self.root, rel_path, self.forbidden_components)

    def list_files(self, subdir: str = "") -> list[str] | StoreError:
        """
        Recursively list regular files under subdir.

        Returns:
            POSIX-style paths relative to the root (order not guaranteed),
            or a directory_not_found / path_rejected error.
        """
        base = self.resolve(subdir)
        if isinstance(base, StoreError):
            return base
        if not base.is_dir():
            return StoreError("directory_not_found", subdir, "Directory does not exist")

        files: list[str] = []
        for dirpath, _dirnames, filenames in os.walk(base):
            for name in filenames:
                fp = Path(dirpath) / name
                if fp.is_file() and not fp.is_symlink():
                    files.append(fp.relative_to(self.root).as_posix())
        return files

    def read_file(self, rel_path: str) -> str | StoreError:
        p = self.resolve(rel_path)
        if isinstance(p, StoreError):
            return p
        try:
            # newline="" keeps line endings byte-exact for find/replace.
            with open(p, encoding="utf-8", newline="") as f:
                return f.read()
        except UnicodeDecodeError as e:
            return StoreError("io_failure", rel_path, f"not valid UTF-8: {e}")
        except OSError as e:
            return StoreError("not_found", rel_path, e.strerror or str(e))

    def write_file(self, rel_path: str, content: str) -> StoreError | None:
        """Create parent directories as needed, then replace the file atomically."""
        p = self.resolve(rel_path)
        if isinstance(p, StoreError):
            return p
        if p == self.root:
            return StoreError("io_failure", rel_path, "cannot write to the root directory")
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(p, content)
        except OSError as e:
            return StoreError("io_failure", rel_path, e.strerror or str(e))
        return None

    def update_file(self, rel_path: str, find: str, replace: str) -> StoreError | None:
        """Replace every occurrence of find with replace (literal, not regex)."""
        current = self.read_file(rel_path)
        if isinstance(current, StoreError):
            return current
        return self.write_file(rel_path, current.replace(find, replace))


def _atomic_write(path: Path, content: str) -> None:
    # Temp file in the same directory so the rename stays on one filesystem.
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        if path.exists():
            os.chmod(temp_path, path.stat().st_mode & 0o7777)
        else:
            # mkstemp creates 0o600; give new files the usual default mode.
            os.chmod(temp_path, 0o666 & ~_UMASK)
        os.replace(temp_path, path)
    except BaseException:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise
