from __future__ import annotations

"""
Version reconciliation

Merges the ABI entries of every contract in one bundle into a single ordered
declaration list. Several versions of the same module (a V2 and a V3
validator, two registry generations...) routinely re-declare the same
functions, events and errors; this module decides, once and explicitly, how
each collision is bound:

- same (kind, name, input signature) in several contracts
    → one entry, attributed to the first declaring contract; a later
      declaration that differs in outputs or mutability stays attached to it
      so that contract's own ABI is still emitted as declared
- functions sharing a name with different signatures
    → Merge-as-overload, ordered by (parameter count, declaration order)
- events/errors sharing a name with different shapes across contracts
  (for events the indexed flags and anonymity are part of the shape)
    → Rename-with-suffix for every shape first declared by a later contract
      (or Reject, when the policy says so)

State lives only inside one `reconcile` call, so a contract that belongs to
several bundles is reconciled independently in each of them.
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from .common.model import (
    DECLARATION_DIVERGENCE,
    NAMING_CONFLICT_RESOLVED,
    AbiEntry,
    Bundle,
    Conflict,
    Diagnostic,
    ReconciledEntry,
    Resolution,
)
from .config import ReconcilePolicy
from .errors import RejectedConflict

__all__ = ["Reconciliation", "reconcile", "reconciliation_key"]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reconciliation:
    bundle: str
    entries: Tuple[ReconciledEntry, ...]
    conflicts: Tuple[Conflict, ...]
    diagnostics: Tuple[Diagnostic, ...]


@dataclass
class _Variant:
    """One distinct signature inside a (kind, name) group."""
    entry: AbiEntry
    origin: str
    order: int
    declared_by: List[str] = field(default_factory=list)
    positions: List[Tuple[str, int]] = field(default_factory=list)
    redeclarations: List[Tuple[str, AbiEntry]] = field(default_factory=list)

    @property
    def arity(self) -> int:
        return len(self.entry.inputs)


def reconciliation_key(contract: str, entry: AbiEntry) -> Tuple[Any, ...]:
    """
    Identity used for merging. Contract-scoped kinds never merge across
    contracts, and events with the same inputs but a different topic layout
    (indexed flags, anonymous) are different events.
    """
    if entry.is_contract_scoped:
        return (entry.kind, contract, entry.input_signature())
    if entry.kind == "event":
        return entry.key + (entry.topic_layout(),)
    return entry.key


def _variant_key(entry: AbiEntry) -> Tuple[Any, ...]:
    if entry.kind == "event":
        return (entry.input_signature(), entry.topic_layout())
    return (entry.input_signature(),)


def reconcile(bundle: Bundle, policy: Optional[ReconcilePolicy] = None) -> Reconciliation:
    """
    Reconcile all member contracts of `bundle` (already interned) into one
    deduplicated, deterministically ordered entry sequence.

    Raises:
        RejectedConflict: an event/error clash under a "reject" policy.
    """
    policy = policy or ReconcilePolicy()
    diagnostics: List[Diagnostic] = []

    groups = _collect(bundle, diagnostics)
    taken: Set[Tuple[str, str]] = {(kind, name) for (kind, name, _scope) in groups if name is not None}

    entries: List[ReconciledEntry] = []
    conflicts: List[Conflict] = []
    for (kind, name, _scope), variants in groups.items():
        if len(variants) == 1:
            entries.append(_emit(variants[0], variants[0].entry.display_name, None, None))
            continue
        assert name is not None
        if kind == "function":
            entries.extend(_overloads(variants, name, Resolution.MERGE_AS_OVERLOAD))
            conflicts.append(_conflict(kind, name, variants, Resolution.MERGE_AS_OVERLOAD))
        else:
            entries.extend(
                _resolve_named(bundle.name, kind, name, variants, policy, taken, conflicts, diagnostics)
            )

    log.info(
        "reconcile: bundle=%s contracts=%d entries=%d conflicts=%d",
        bundle.name, len(bundle.contracts), len(entries), len(conflicts),
    )
    return Reconciliation(
        bundle=bundle.name,
        entries=tuple(entries),
        conflicts=tuple(conflicts),
        diagnostics=tuple(diagnostics),
    )


# ---------------
# Internals
# ---------------

_GroupKey = Tuple[str, Optional[str], Optional[str]]


def _collect(bundle: Bundle, diagnostics: List[Diagnostic]) -> Dict[_GroupKey, List[_Variant]]:
    """
    Group entries by (kind, name) in first-appearance order, variants by input
    signature (plus topic layout for events).
    """
    groups: Dict[_GroupKey, Dict[Tuple[Any, ...], _Variant]] = {}
    seq = itertools.count()
    for contract in bundle.contracts:
        for index, entry in enumerate(contract.abi):
            scope = contract.name if entry.is_contract_scoped else None
            group = groups.setdefault((entry.kind, entry.name, scope), {})
            vkey = _variant_key(entry)
            variant = group.get(vkey)
            if variant is None:
                variant = _Variant(entry=entry, origin=contract.name, order=next(seq))
                group[vkey] = variant
            elif entry.shape() != variant.entry.shape():
                variant.redeclarations.append((contract.name, entry))
                diagnostics.append(
                    Diagnostic(
                        code=DECLARATION_DIVERGENCE,
                        bundle=bundle.name,
                        message=(
                            f"{entry.kind} {entry.signature} in {contract.name} differs from the "
                            f"declaration in {variant.origin}; bound once, each contract keeps its own ABI"
                        ),
                        context={
                            "kind": entry.kind,
                            "signature": entry.signature,
                            "contract": contract.name,
                            "origin": variant.origin,
                        },
                    )
                )
            variant.declared_by.append(contract.name)
            variant.positions.append((contract.name, index))
    return {k: list(v.values()) for k, v in groups.items()}


def _emit(
    v: _Variant,
    binding_name: str,
    overload_index: Optional[int],
    resolution: Optional[Resolution],
) -> ReconciledEntry:
    return ReconciledEntry(
        entry=v.entry,
        binding_name=binding_name,
        origin=v.origin,
        declared_by=tuple(v.declared_by),
        positions=tuple(v.positions),
        redeclarations=tuple(v.redeclarations),
        overload_index=overload_index,
        resolution=resolution,
    )


def _overloads(variants: List[_Variant], binding_name: str, resolution: Resolution) -> List[ReconciledEntry]:
    if len(variants) == 1:
        return [_emit(variants[0], binding_name, None, resolution)]
    ordered = sorted(variants, key=lambda v: (v.arity, v.order))
    return [_emit(v, binding_name, i, resolution) for i, v in enumerate(ordered)]


def _conflict(kind: str, name: str, variants: List[_Variant], resolution: Resolution) -> Conflict:
    contracts: Dict[str, None] = {}
    for v in sorted(variants, key=lambda v: v.order):
        for c in v.declared_by:
            contracts.setdefault(c, None)
    return Conflict(
        kind=kind,
        name=name,
        entries=tuple(v.entry for v in sorted(variants, key=lambda v: v.order)),
        contracts=tuple(contracts),
        resolution=resolution,
    )


def _resolve_named(
    bundle: str,
    kind: str,
    name: str,
    variants: List[_Variant],
    policy: ReconcilePolicy,
    taken: Set[Tuple[str, str]],
    conflicts: List[Conflict],
    diagnostics: List[Diagnostic],
) -> List[ReconciledEntry]:
    """Events / errors: the first declaring contract keeps the name, later shapes get renamed."""
    primary = variants[0].origin
    kept = [v for v in variants if v.origin == primary]
    later: Dict[str, List[_Variant]] = {}
    for v in variants:
        if v.origin != primary:
            later.setdefault(v.origin, []).append(v)

    if not later:
        # side-by-side declarations inside one contract are real overloads
        conflicts.append(_conflict(kind, name, variants, Resolution.MERGE_AS_OVERLOAD))
        return _overloads(kept, name, Resolution.MERGE_AS_OVERLOAD)

    if policy.for_kind(kind) == "reject":
        conflicts.append(_conflict(kind, name, variants, Resolution.REJECT))
        raise RejectedConflict(
            f"{kind} {name!r} is declared with different shapes",
            bundle=bundle,
            kind=kind,
            name=name,
            signatures=", ".join(v.entry.signature for v in variants),
            contracts=", ".join(dict.fromkeys(c for v in variants for c in v.declared_by)),
        )

    out = _overloads(kept, name, Resolution.MERGE_AS_OVERLOAD if len(kept) > 1 else None)
    for origin, group in later.items():
        renamed = _free_name(kind, f"{name}{policy.separator}{origin}", taken)
        taken.add((kind, renamed))
        out.extend(_overloads(group, renamed, Resolution.RENAME_WITH_SUFFIX))
        for v in group:
            diagnostics.append(
                Diagnostic(
                    code=NAMING_CONFLICT_RESOLVED,
                    bundle=bundle,
                    message=(
                        f"{kind} {v.entry.signature} from {origin} clashes with "
                        f"{kept[0].entry.signature} from {primary}; bound as {renamed}"
                    ),
                    context={
                        "kind": kind,
                        "name": name,
                        "renamed_to": renamed,
                        "contract": origin,
                        "signature": v.entry.signature,
                        "kept_signature": kept[0].entry.signature,
                        "kept_contract": primary,
                    },
                )
            )
            log.warning("reconcile: %s: %s %s renamed to %s", bundle, kind, v.entry.signature, renamed)
    conflicts.append(_conflict(kind, name, variants, Resolution.RENAME_WITH_SUFFIX))
    return out


def _free_name(kind: str, wanted: str, taken: Set[Tuple[str, str]]) -> str:
    if (kind, wanted) not in taken:
        return wanted
    for n in itertools.count(2):
        candidate = f"{wanted}{n}"
        if (kind, candidate) not in taken:
            return candidate
    raise AssertionError("unreachable")
