from __future__ import annotations

"""
Artifact loading & validation

Transforms a raw artifact record (contract name + decoded ABI JSON) into an
immutable `ContractArtifact`. It performs:

- Schema validation of the entry list (jsonschema, bundled schema)
- Kind tag checks (function / event / error / constructor / fallback / receive)
- Type parsing of every parameter into `TypeRef` trees
- Duplicate detection: two entries with the same (kind, name, input
  signature) mean a corrupt artifact, not an override

The transform is pure; nothing here touches the filesystem.
"""

import json
import logging
from functools import lru_cache
from importlib import resources as importlib_resources
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import jsonschema

from .common.model import (
    CONTRACT_SCOPED_KINDS,
    ENTRY_KINDS,
    AbiEntry,
    ContractArtifact,
)
from .common.typesig import parse_params
from .errors import (
    DuplicateAbiEntry,
    MalformedAbiEntry,
    MalformedTypeSignature,
    UnknownEntryKind,
)

__all__ = ["load_artifact", "load_artifacts", "abi_schema"]

log = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def abi_schema() -> Dict[str, Any]:
    """The bundled ABI JSON schema (parsed once per process)."""
    text = importlib_resources.files("bindgen.common").joinpath("abi.schema.json").read_text(encoding="utf-8")
    return json.loads(text)


@lru_cache(maxsize=1)
def _validator() -> jsonschema.protocols.Validator:
    schema = abi_schema()
    cls = jsonschema.validators.validator_for(schema)
    cls.check_schema(schema)
    return cls(schema)


def load_artifact(name: str, raw: Any) -> ContractArtifact:
    """
    Build a ContractArtifact from `raw`, which is either the ABI entry list or
    a compiler artifact mapping carrying it under "abi".

    Raises:
        UnknownEntryKind, MalformedAbiEntry, MalformedTypeSignature,
        DuplicateAbiEntry, each with the contract (and entry) in its context.
    """
    if not isinstance(name, str) or not name:
        raise MalformedAbiEntry("contract name must be a non-empty string", contract=repr(name))
    abi = _extract_abi(name, raw)
    _check_kinds(name, abi)
    _validate_schema(name, abi)

    entries: List[AbiEntry] = []
    seen: Dict[Tuple[Any, ...], int] = {}
    for i, item in enumerate(abi):
        entry = _build_entry(name, i, item)
        dup_key = (entry.kind,) if entry.is_contract_scoped else entry.key
        if dup_key in seen:
            raise DuplicateAbiEntry(
                f"duplicate {entry.kind} declaration",
                contract=name,
                entry=entry.display_name,
                signature=entry.signature,
                first_index=seen[dup_key],
                index=i,
            )
        seen[dup_key] = i
        entries.append(entry)

    log.debug("loader: %s entries=%d", name, len(entries))
    return ContractArtifact(name=name, abi=tuple(entries))


def load_artifacts(raw_artifacts: Mapping[str, Any]) -> Dict[str, ContractArtifact]:
    """Load many artifacts, keeping the mapping's order."""
    out: Dict[str, ContractArtifact] = {}
    for name, raw in raw_artifacts.items():
        out[name] = load_artifact(name, raw)
    log.info("loader: loaded %d artifacts", len(out))
    return out


# ---------------
# Internals
# ---------------

def _extract_abi(name: str, raw: Any) -> Sequence[Any]:
    if isinstance(raw, Mapping):
        if "abi" not in raw:
            raise MalformedAbiEntry("artifact has no 'abi' field", contract=name)
        raw = raw["abi"]
    if not isinstance(raw, (list, tuple)):
        raise MalformedAbiEntry(f"ABI must be an array, got {type(raw).__name__}", contract=name)
    return raw


def _check_kinds(name: str, abi: Sequence[Any]) -> None:
    for i, item in enumerate(abi):
        if not isinstance(item, Mapping):
            raise MalformedAbiEntry(f"ABI entry #{i} must be an object", contract=name, index=i)
        kind = item.get("type", "function")
        if kind not in ENTRY_KINDS:
            raise UnknownEntryKind(
                f"unrecognized ABI entry kind {kind!r}",
                contract=name,
                entry=item.get("name"),
                index=i,
            )


def _validate_schema(name: str, abi: Sequence[Any]) -> None:
    error = jsonschema.exceptions.best_match(_validator().iter_errors(list(abi)))
    if error is None:
        return
    path = list(error.absolute_path)
    index = path[0] if path and isinstance(path[0], int) else None
    entry_name: Optional[str] = None
    if index is not None and isinstance(abi[index], Mapping):
        entry_name = abi[index].get("name")
    raise MalformedAbiEntry(
        f"ABI schema validation failed: {error.message}",
        contract=name,
        entry=entry_name,
        index=index,
        path="/".join(str(p) for p in path) or None,
    )


def _state_mutability(kind: str, item: Mapping[str, Any]) -> Optional[str]:
    if kind in ("event", "error"):
        return None
    mut = item.get("stateMutability")
    if mut:
        return str(mut)
    # Pre-0.5 compilers only emit the legacy boolean flags.
    if kind == "receive" or item.get("payable"):
        return "payable"
    if item.get("constant"):
        return "view"
    return "nonpayable"


def _build_entry(name: str, index: int, item: Mapping[str, Any]) -> AbiEntry:
    kind = item.get("type", "function")
    entry_name = None if kind in CONTRACT_SCOPED_KINDS else item.get("name")
    try:
        inputs = parse_params(item.get("inputs"), allow_indexed=(kind == "event"))
        outputs = parse_params(item.get("outputs")) if kind == "function" else ()
    except MalformedTypeSignature as e:
        raise e.with_context(contract=name, entry=entry_name or kind, index=index)
    return AbiEntry(
        kind=kind,
        name=entry_name,
        inputs=inputs,
        outputs=outputs,
        state_mutability=_state_mutability(kind, item),
        anonymous=bool(item.get("anonymous", False)) if kind == "event" else False,
    )
