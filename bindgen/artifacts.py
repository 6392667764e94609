"""
Artifact discovery and output writing.

The only part of the generator that touches the filesystem on the input
side. Compiled artifacts are looked up under an artifacts root, preferring
the foundry layout

    out/<Name>.sol/<Name>.json

and falling back to any `<Name>.json` below the root (hardhat-style trees,
hand-exported ABIs). Missing contracts are *not* an error here: the
partitioner reports them with the bundle that asked for them.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .errors import ArtifactNotFound
from .utils import atomic_write_text

__all__ = ["find_artifact", "read_artifact", "read_artifacts", "write_outputs", "stale_outputs"]

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_artifact(root: PathLike, name: str) -> Optional[Path]:
    root = Path(root)
    preferred = root / f"{name}.sol" / f"{name}.json"
    if preferred.is_file():
        return preferred
    if not root.is_dir():
        return None
    matches = sorted(p for p in root.rglob(f"{name}.json") if p.is_file())
    if not matches:
        return None
    if len(matches) > 1:
        log.warning(
            "artifacts: %d candidates for %s, using %s",
            len(matches), name, matches[0].relative_to(root),
        )
    return matches[0]


def read_artifact(path: PathLike) -> Any:
    """Decode one artifact file (raw JSON; `load_artifact` extracts the ABI)."""
    p = Path(path)
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ArtifactNotFound("artifact file does not exist", path=str(p)) from e
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ArtifactNotFound(f"cannot decode artifact: {e}", path=str(p)) from e


def read_artifacts(root: PathLike, names: Iterable[str]) -> Dict[str, Any]:
    """Decoded artifacts for every name found under `root`, in request order."""
    out: Dict[str, Any] = {}
    missing: List[str] = []
    for name in names:
        if name in out:
            continue
        path = find_artifact(root, name)
        if path is None:
            missing.append(name)
            continue
        try:
            out[name] = read_artifact(path)
        except ArtifactNotFound as e:
            raise e.with_context(contract=name)
        log.debug("artifacts: %s <- %s", name, path)
    if missing:
        log.info("artifacts: not found under %s: %s", root, ", ".join(missing))
    log.info("artifacts: read %d artifacts from %s", len(out), root)
    return out


def _differs(path: Path, text: str) -> bool:
    try:
        return path.read_text(encoding="utf-8") != text
    except FileNotFoundError:
        return True


def stale_outputs(outputs: Mapping[Path, str]) -> List[Path]:
    """Output paths whose on-disk content differs from the rendered text."""
    return [p for p, text in outputs.items() if _differs(p, text)]


def write_outputs(outputs: Mapping[Path, str]) -> List[Path]:
    """Write rendered bundles atomically; unchanged files are left untouched."""
    written: List[Path] = []
    for path, text in outputs.items():
        if not _differs(path, text):
            log.debug("artifacts: %s unchanged", path)
            continue
        atomic_write_text(path, text)
        written.append(path)
        log.info("artifacts: wrote %s", path)
    return written
