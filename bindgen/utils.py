# -*- coding: utf-8 -*-
"""
Small shared helpers:
- Canonical JSON encode for deterministic, byte-stable output
- SHA3-256 short ids for type signatures
- FS utilities (atomic writes, mkdir -p)
- Identifier case helpers used by emitters
"""
from __future__ import annotations

import errno
import hashlib
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Final, Union

__all__ = [
    "canonical_json_str",
    "short_id",
    "ensure_dir",
    "atomic_write_text",
    "camel",
    "snake",
]

_JSON_SEPARATORS: Final[tuple[str, str]] = (",", ":")


def canonical_json_str(obj: Any, *, indent: int | None = None) -> str:
    """
    Serialize an object to a canonical JSON string:
    - UTF-8 safe, sorted keys
    - no insignificant whitespace unless `indent` is given
    """
    return json.dumps(
        obj,
        ensure_ascii=False,
        sort_keys=True,
        indent=indent,
        separators=_JSON_SEPARATORS if indent is None else (",", ": "),
        allow_nan=False,
    )


def short_id(data: str, length: int = 8) -> str:
    """Short stable id derived from a signature string."""
    return hashlib.sha3_256(data.encode("utf-8")).hexdigest()[:length]


def ensure_dir(p: Union[str, os.PathLike[str]]) -> Path:
    """mkdir -p for a directory path; returns Path. No error if exists."""
    path = Path(p)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        if e.errno != errno.EEXIST:
            raise
    return path


def atomic_write_text(path: Union[str, os.PathLike[str]], text: str) -> Path:
    """
    Write text atomically: tmp file in the target dir → fsync → rename.
    Readers only ever observe a complete file.
    """
    target = Path(path)
    ensure_dir(target.parent)
    with tempfile.NamedTemporaryFile(dir=str(target.parent), delete=False) as tf:
        tf.write(text.encode("utf-8"))
        tf.flush()
        os.fsync(tf.fileno())
        tmp_name = tf.name
    os.replace(tmp_name, target)
    return target


_NON_ID_CHAR = re.compile(r"[^A-Za-z0-9]+")


def camel(s: str) -> str:
    """'MultiWebAuthNValidatorV2' -> 'multiWebAuthNValidatorV2', 'kernel-v2' -> 'kernelV2'."""
    parts = [p for p in _NON_ID_CHAR.split(s) if p]
    if not parts:
        return "_"
    head, rest = parts[0], parts[1:]
    out = head[0].lower() + head[1:] + "".join(p[0].upper() + p[1:] for p in rest)
    if out[0].isdigit():
        out = "_" + out
    return out


def snake(s: str) -> str:
    """'WebAuthNPubKey' -> 'web_auth_n_pub_key'."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", s)
    out = re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()
    out = re.sub(r"[^a-z0-9_]+", "_", out).strip("_")
    if not out:
        return "_"
    if out[0].isdigit():
        out = "_" + out
    return out
