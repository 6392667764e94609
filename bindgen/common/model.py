from __future__ import annotations

"""
Language-agnostic ABI model
===========================

These dataclasses model the contract surface every stage of the pipeline
passes along and every emitter consumes. Instances are produced by
`bindgen.loader.load_artifact` and refined by the interner and reconciler.

The model is deliberately small and deterministic:

- `TypeRef` covers the ABI type system (ints, bytes, bool, address, string,
  arrays, tuples). Tuple refs keep their named components and, once interned,
  a non-owning reference to their `CanonicalType`.
- `AbiEntry` is one function / event / error / constructor (plus the
  contract-scoped fallback and receive entries). Its `key` identifies it for
  duplicate detection and reconciliation.
- `CanonicalType` is owned by the `TypeInterner`; everything else only points
  at it.
- `ReconciledEntry` / `ResolvedBundle` are what emitters render.

Serialization helpers (`to_dict` / `to_abi`) are provided for emitters and
for byte-stable JSON output.
"""

import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

__all__ = [
    "ENTRY_KINDS",
    "CONTRACT_SCOPED_KINDS",
    "TypeRef",
    "Param",
    "AbiEntry",
    "ContractArtifact",
    "CanonicalType",
    "Resolution",
    "Conflict",
    "Bundle",
    "ReconciledEntry",
    "Diagnostic",
    "ResolvedBundle",
    "NAMING_CONFLICT_RESOLVED",
    "DECLARATION_DIVERGENCE",
    "DEDUP_STATISTICS",
]

CONTRACT_SCOPED_KINDS: Tuple[str, ...] = ("constructor", "fallback", "receive")
ENTRY_KINDS: Tuple[str, ...] = ("function", "event", "error") + CONTRACT_SCOPED_KINDS

# Diagnostic codes
NAMING_CONFLICT_RESOLVED = "NamingConflictResolved"
DECLARATION_DIVERGENCE = "DeclarationDivergence"
DEDUP_STATISTICS = "DedupStatistics"


# -----------------
# Core type system
# -----------------

@dataclass(frozen=True)
class TypeRef:
    """
    Canonical type descriptor.

    Kinds:
      - "uint" | "int": `bits` in 8..256
      - "bytes": `size` in 1..32 for bytesN; None ⇒ dynamic bytes
      - "bool" | "address" | "string"
      - "array": `array_item` + optional `array_len` (None ⇒ dynamic)
      - "tuple": `components` (named Params), optional source `label`

    `label` and `canonical` never take part in equality: two tuples with the
    same components are the same type whatever the source called them.
    """
    kind: str
    bits: Optional[int] = None
    size: Optional[int] = None
    array_item: Optional["TypeRef"] = None
    array_len: Optional[int] = None
    components: Tuple["Param", ...] = ()
    label: Optional[str] = field(default=None, compare=False)
    canonical: Optional["CanonicalType"] = field(default=None, compare=False, repr=False)

    def canonical_str(self) -> str:
        """ABI signature fragment, e.g. `uint256`, `bytes32[]`, `(address,uint256)`."""
        if self.kind in ("uint", "int"):
            return f"{self.kind}{self.bits}"
        if self.kind == "bytes":
            return f"bytes{self.size}" if self.size else "bytes"
        if self.kind in ("bool", "address", "string"):
            return self.kind
        if self.kind == "array":
            assert self.array_item is not None
            suffix = f"[{self.array_len}]" if self.array_len is not None else "[]"
            return f"{self.array_item.canonical_str()}{suffix}"
        if self.kind == "tuple":
            return "(" + ",".join(c.type.canonical_str() for c in self.components) + ")"
        raise ValueError(f"Unsupported TypeRef kind: {self.kind}")

    def structural_sig(self) -> str:
        """
        Like `canonical_str` but component names are significant:
        `{x:uint256,y:uint256}`. This is the interning identity key.
        """
        if self.kind == "tuple":
            return "{" + ",".join(f"{c.name}:{c.type.structural_sig()}" for c in self.components) + "}"
        if self.kind == "array":
            assert self.array_item is not None
            suffix = f"[{self.array_len}]" if self.array_len is not None else "[]"
            return f"{self.array_item.structural_sig()}{suffix}"
        return self.canonical_str()

    def abi_type(self) -> str:
        """The `type` string used in ABI JSON (`tuple`, `tuple[]`, `uint256`...)."""
        if self.kind == "tuple":
            return "tuple"
        if self.kind == "array":
            assert self.array_item is not None
            suffix = f"[{self.array_len}]" if self.array_len is not None else "[]"
            return f"{self.array_item.abi_type()}{suffix}"
        return self.canonical_str()

    def base(self) -> "TypeRef":
        """Innermost non-array type."""
        t = self
        while t.kind == "array" and t.array_item is not None:
            t = t.array_item
        return t

    def struct_name(self) -> Optional[str]:
        """'struct IFoo.WebAuthNPubKey[]' -> 'WebAuthNPubKey'; None for inline tuples."""
        label = self.base().label
        if not label or not label.startswith("struct "):
            return None
        name = label[len("struct "):].split("[", 1)[0].strip()
        return name.rsplit(".", 1)[-1] or None

    def iter_tuples(self) -> Iterator["TypeRef"]:
        """Yield tuple refs reachable from this one, children before parents."""
        if self.kind == "array" and self.array_item is not None:
            yield from self.array_item.iter_tuples()
        elif self.kind == "tuple":
            for c in self.components:
                yield from c.type.iter_tuples()
            yield self

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"kind": self.kind, "type": self.canonical_str()}
        if self.kind == "array":
            assert self.array_item is not None
            d["item"] = self.array_item.to_dict()
            d["length"] = self.array_len
        elif self.kind == "tuple":
            d["components"] = [c.to_dict() for c in self.components]
            if self.canonical is not None:
                d["canonical"] = self.canonical.type_id
        return d


@dataclass(frozen=True)
class Param:
    """Named parameter / tuple component."""
    name: str
    type: TypeRef
    # human-readable compiler label, e.g. "struct PackedUserOperation"
    internal_type: str = field(default="", compare=False)
    # Events only; ignored elsewhere.
    indexed: bool = False

    def to_abi(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"name": self.name}
        if self.internal_type:
            d["internalType"] = self.internal_type
        d["type"] = self.type.abi_type()
        base = self.type.base()
        if base.kind == "tuple":
            d["components"] = [c.to_abi() for c in base.components]
        if self.indexed:
            d["indexed"] = True
        return d

    def to_dict(self) -> Dict[str, Any]:
        d = {"name": self.name, "type": self.type.to_dict()}
        if self.indexed:
            d["indexed"] = True
        return d


# ---------------
# ABI entries
# ---------------

@dataclass(frozen=True)
class AbiEntry:
    kind: str                                  # one of ENTRY_KINDS
    name: Optional[str] = None                 # None for contract-scoped kinds
    inputs: Tuple[Param, ...] = ()
    outputs: Tuple[Param, ...] = ()
    state_mutability: Optional[str] = None     # "pure" | "view" | "nonpayable" | "payable"
    anonymous: bool = False

    @property
    def is_contract_scoped(self) -> bool:
        return self.kind in CONTRACT_SCOPED_KINDS

    @property
    def display_name(self) -> str:
        return self.name if self.name is not None else self.kind

    def input_signature(self) -> str:
        return "(" + ",".join(p.type.canonical_str() for p in self.inputs) + ")"

    @property
    def signature(self) -> str:
        """e.g. `getPasskey(address,bytes32)`."""
        return f"{self.display_name}{self.input_signature()}"

    @property
    def key(self) -> Tuple[str, Optional[str], str]:
        return (self.kind, self.name, self.input_signature())

    def shape(self) -> Tuple[Any, ...]:
        """Everything a binding depends on beyond `key`; used to spot divergent re-declarations."""
        return (
            tuple(p.type.structural_sig() for p in self.inputs),
            tuple(p.type.structural_sig() for p in self.outputs),
            tuple(p.indexed for p in self.inputs),
            self.state_mutability,
            self.anonymous,
        )

    def topic_layout(self) -> Tuple[Any, ...]:
        """Which inputs are indexed and whether the signature topic is emitted (events only)."""
        return (tuple(p.indexed for p in self.inputs), self.anonymous)

    def iter_params(self) -> Iterator[Param]:
        yield from self.inputs
        yield from self.outputs

    def to_abi(self) -> Dict[str, Any]:
        """Standard ABI JSON object (key order as emitted by solc/foundry tooling)."""
        d: Dict[str, Any] = {"type": self.kind}
        if self.kind != "receive":
            d["inputs"] = [p.to_abi() for p in self.inputs]
        if self.name is not None:
            d["name"] = self.name
        if self.kind == "function":
            d["outputs"] = [p.to_abi() for p in self.outputs]
        if self.kind == "event":
            d["anonymous"] = self.anonymous
        if self.state_mutability is not None:
            d["stateMutability"] = self.state_mutability
        return d

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "kind": self.kind,
            "name": self.name,
            "signature": self.signature,
            "inputs": [p.to_dict() for p in self.inputs],
        }
        if self.kind == "function":
            d["outputs"] = [p.to_dict() for p in self.outputs]
        if self.state_mutability is not None:
            d["stateMutability"] = self.state_mutability
        if self.kind == "event":
            d["anonymous"] = self.anonymous
        return d


@dataclass(frozen=True)
class ContractArtifact:
    """One compiled contract; immutable after load."""
    name: str
    abi: Tuple[AbiEntry, ...] = ()

    def entries(self, kind: str) -> List[AbiEntry]:
        return [e for e in self.abi if e.kind == kind]

    def to_abi(self) -> List[Dict[str, Any]]:
        return [e.to_abi() for e in self.abi]


# -----------------
# Interned types
# -----------------

class CanonicalType:
    """
    The single shared declaration of a structural composite.

    Identity is the structural signature; instances are only created by
    `bindgen.interner.TypeInterner` and compared by reference. Source labels
    are recorded for naming but never affect identity.
    """

    __slots__ = ("type_id", "signature", "fields", "_labels", "_lock")

    def __init__(self, type_id: str, signature: str, fields: Tuple[Param, ...]) -> None:
        self.type_id = type_id
        self.signature = signature
        self.fields = fields
        self._labels: List[str] = []
        self._lock = threading.Lock()

    def add_label(self, label: Optional[str]) -> None:
        if not label:
            return
        with self._lock:
            if label not in self._labels:
                self._labels.append(label)

    @property
    def labels(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._labels)

    @property
    def abi_signature(self) -> str:
        return "(" + ",".join(f.type.canonical_str() for f in self.fields) + ")"

    def dependencies(self) -> List["CanonicalType"]:
        """Canonical types embedded directly in this one, in field order."""
        out: List[CanonicalType] = []
        for f in self.fields:
            base = f.type.base()
            if base.kind == "tuple" and base.canonical is not None and base.canonical not in out:
                out.append(base.canonical)
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.type_id,
            "signature": self.signature,
            "abiSignature": self.abi_signature,
            "fields": [f.to_dict() for f in self.fields],
        }

    def __repr__(self) -> str:
        return f"CanonicalType({self.type_id}, {self.signature})"


# ---------------------
# Reconciliation output
# ---------------------

class Resolution(str, Enum):
    MERGE_AS_OVERLOAD = "merge-as-overload"
    RENAME_WITH_SUFFIX = "rename-with-suffix"
    REJECT = "reject"


@dataclass(frozen=True)
class Conflict:
    """Same kind+name, different signatures, inside one bundle."""
    kind: str
    name: str
    entries: Tuple[AbiEntry, ...]
    contracts: Tuple[str, ...]
    resolution: Resolution

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "signatures": [e.signature for e in self.entries],
            "contracts": list(self.contracts),
            "resolution": self.resolution.value,
        }


@dataclass(frozen=True)
class Bundle:
    name: str
    contract_names: Tuple[str, ...]
    contracts: Tuple[ContractArtifact, ...]


@dataclass(frozen=True)
class ReconciledEntry:
    entry: AbiEntry
    binding_name: str
    origin: str
    declared_by: Tuple[str, ...]
    # (contract, index inside that contract's abi) for every declaration
    positions: Tuple[Tuple[str, int], ...] = ()
    # (contract, own entry) for later declarations whose outputs or flags differ from `entry`
    redeclarations: Tuple[Tuple[str, AbiEntry], ...] = ()
    overload_index: Optional[int] = None
    resolution: Optional[Resolution] = None

    @property
    def kind(self) -> str:
        return self.entry.kind

    @property
    def name(self) -> Optional[str]:
        return self.entry.name

    @property
    def signature(self) -> str:
        return self.entry.signature

    def position_in(self, contract: str) -> Optional[int]:
        for c, i in self.positions:
            if c == contract:
                return i
        return None

    def entry_in(self, contract: str) -> AbiEntry:
        """The declaration exactly as `contract` wrote it."""
        for c, e in self.redeclarations:
            if c == contract:
                return e
        return self.entry

    def iter_entries(self) -> Iterator[AbiEntry]:
        yield self.entry
        for _, e in self.redeclarations:
            yield e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bindingName": self.binding_name,
            "origin": self.origin,
            "declaredBy": list(self.declared_by),
            "overloadIndex": self.overload_index,
            "resolution": self.resolution.value if self.resolution else None,
            "entry": self.entry.to_dict(),
            "redeclarations": [
                {"contract": c, "entry": e.to_dict()} for c, e in self.redeclarations
            ],
        }


@dataclass(frozen=True)
class Diagnostic:
    """Non-fatal finding returned alongside successful output."""
    code: str
    message: str
    severity: str = "warning"       # "warning" | "info"
    bundle: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "severity": self.severity,
            "bundle": self.bundle,
            "message": self.message,
            "context": dict(self.context),
        }


@dataclass(frozen=True)
class ResolvedBundle:
    """Fully resolved, deduplicated, deterministically ordered emitter input."""
    name: str
    contract_names: Tuple[str, ...]
    types: Tuple[CanonicalType, ...]
    type_names: Dict[str, str]
    entries: Tuple[ReconciledEntry, ...]
    conflicts: Tuple[Conflict, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()

    def type_name(self, canonical: CanonicalType) -> str:
        return self.type_names[canonical.type_id]

    def entries_for(self, contract: str) -> List[ReconciledEntry]:
        """
        Entries declared by `contract`, in that contract's declaration order.
        Each one carries the entry as `contract` declared it, so per-contract
        ABIs keep their own outputs, mutability and indexed flags.
        """
        picked = [(r.position_in(contract), r) for r in self.entries if contract in r.declared_by]
        picked.sort(key=lambda pr: pr[0] if pr[0] is not None else -1)
        return [replace(r, entry=r.entry_in(contract)) for _, r in picked]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "contracts": list(self.contract_names),
            "types": [
                dict(t.to_dict(), name=self.type_names[t.type_id]) for t in self.types
            ],
            "entries": [r.to_dict() for r in self.entries],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
