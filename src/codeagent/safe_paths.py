from __future__ import annotations

from pathlib import Path
from typing import Iterable

from .types import StoreError


def safe_resolve(
    root: Path,
    rel_path: str,
    forbidden_components: Iterable[str] = (),
) -> Path | StoreError:
    # Normalize root to avoid false "escape" on platforms where `resolve()`
    # canonicalizes paths (e.g., macOS /var -> /private/var).
    root = root.resolve()
    if "\x00" in rel_path:
        return StoreError("path_rejected", rel_path, "path contains a null byte")
    # A leading separator does not make the path absolute; it is joined onto root.
    try:
        p = (root / rel_path.lstrip("/")).resolve()
    except (OSError, ValueError, RuntimeError) as e:
        # Symlink loops.
        return StoreError("path_rejected", rel_path, f"unresolvable path: {e}")
    if root != p and root not in p.parents:
        return StoreError("path_rejected", rel_path, "path traversal")
    forbidden = set(forbidden_components)
    for part in p.relative_to(root).parts:
        if part in forbidden:
            return StoreError("path_rejected", rel_path, f"forbidden path component: {part}")
    return p
