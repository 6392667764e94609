from __future__ import annotations

"""
Type interning

`TypeInterner` is the run-scoped owner of every `CanonicalType`. Interning a
composite computes its structural signature depth-first (nested composites
are interned before their parents) and then performs a compare-and-insert on
the registry, keyed by that precomputed signature:

    winner = registry.setdefault(signature, candidate)

`dict.setdefault` is atomic under the interpreter lock, so two bundle workers
interning the same shape concurrently both observe the same winner, without
locking the registry as a whole. The losing candidate is simply dropped.

The interner is created at run start and passed by reference to every
worker; it is never a module-level singleton.
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from .common.model import AbiEntry, CanonicalType, ContractArtifact, Param, TypeRef
from .errors import BindgenError, CyclicTypeDefinition
from .utils import short_id

__all__ = ["TypeInterner", "InternStats"]

log = logging.getLogger(__name__)

# (object id, label) of every tuple on the current descent path
_Path = Tuple[Tuple[int, Optional[str]], ...]


@dataclass(frozen=True)
class InternStats:
    occurrences: int        # composite occurrences seen
    canonical_types: int    # distinct shapes registered

    @property
    def deduplicated(self) -> int:
        return self.occurrences - self.canonical_types


class TypeInterner:
    """Registry of canonical composite types for one generation run."""

    ID_LENGTH = 12

    def __init__(self) -> None:
        self._registry: Dict[str, CanonicalType] = {}
        self._stats_lock = threading.Lock()
        self._occurrences = 0

    # ---- public API ----

    def intern(self, composite: TypeRef) -> CanonicalType:
        """Return the canonical instance for a tuple TypeRef (registering it on first sight)."""
        if composite.kind != "tuple":
            raise TypeError(f"only tuple types can be interned, got {composite.kind!r}")
        resolved = self._resolve(composite, ())
        assert resolved.canonical is not None
        return resolved.canonical

    def resolve_type(self, t: TypeRef) -> TypeRef:
        """Copy of `t` whose tuple refs (at any depth) point at their canonical types."""
        return self._resolve(t, ())

    def resolve_entry(self, entry: AbiEntry) -> AbiEntry:
        return replace(
            entry,
            inputs=tuple(self._resolve_param(p) for p in entry.inputs),
            outputs=tuple(self._resolve_param(p) for p in entry.outputs),
        )

    def resolve_artifact(self, artifact: ContractArtifact) -> ContractArtifact:
        resolved = []
        for entry in artifact.abi:
            try:
                resolved.append(self.resolve_entry(entry))
            except BindgenError as e:
                raise e.with_context(contract=artifact.name, entry=entry.display_name)
        return replace(artifact, abi=tuple(resolved))

    def get(self, signature: str) -> Optional[CanonicalType]:
        return self._registry.get(signature)

    def canonical_types(self) -> List[CanonicalType]:
        """All canonical types, in registration order."""
        return list(self._registry.values())

    def stats(self) -> InternStats:
        with self._stats_lock:
            occurrences = self._occurrences
        return InternStats(occurrences=occurrences, canonical_types=len(self._registry))

    def __len__(self) -> int:
        return len(self._registry)

    def __contains__(self, signature: object) -> bool:
        return signature in self._registry

    # ---- internals ----

    def _resolve_param(self, p: Param) -> Param:
        return replace(p, type=self._resolve(p.type, ()))

    def _resolve(self, t: TypeRef, path: _Path) -> TypeRef:
        if t.kind == "array":
            assert t.array_item is not None
            return replace(t, array_item=self._resolve(t.array_item, path))
        if t.kind != "tuple":
            return t

        label = _label_key(t)
        for anc_id, anc_label in path:
            if anc_id == id(t) or (label is not None and label == anc_label):
                raise CyclicTypeDefinition(
                    "composite type contains itself by value",
                    type=label or "<inline tuple>",
                    depth=len(path),
                )

        inner = path + ((id(t), label),)
        comps = tuple(replace(c, type=self._resolve(c.type, inner)) for c in t.components)
        signature = "{" + ",".join(f"{c.name}:{c.type.structural_sig()}" for c in comps) + "}"
        canonical = self._register(signature, comps)
        canonical.add_label(t.struct_name())
        return replace(t, components=comps, canonical=canonical)

    def _register(self, signature: str, fields: Tuple[Param, ...]) -> CanonicalType:
        with self._stats_lock:
            self._occurrences += 1
        existing = self._registry.get(signature)
        if existing is not None:
            return existing
        candidate = CanonicalType(short_id(signature, self.ID_LENGTH), signature, fields)
        winner = self._registry.setdefault(signature, candidate)
        if winner is candidate:
            log.debug("interner: new canonical type %s %s", winner.type_id, signature)
        return winner


def _label_key(t: TypeRef) -> Optional[str]:
    if not t.label or not t.label.startswith("struct "):
        return None
    return t.label.split("[", 1)[0].strip()
