from __future__ import annotations

"""
Generation pipeline

Artifact Loader → Type Interner → Bundle Partitioner → Version Reconciler →
(per bundle) topological type order → ResolvedBundle → Emitter.

All artifact decoding happens in the load phase, which completes before any
bundle is reconciled. Bundles are independent afterwards and may run on a
thread pool (one task per bundle); the run-scoped `TypeInterner` is the only
structure they share.

Failure policy:
  - fail_fast=True  → the first fatal error (in configuration order) aborts
                      the run and is raised to the caller
  - fail_fast=False → a fatal error fails only the bundles it touches; the
                      others complete and are returned with the failures
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from .common.model import (
    DEDUP_STATISTICS,
    NAMING_CONFLICT_RESOLVED,
    Bundle,
    CanonicalType,
    ContractArtifact,
    Diagnostic,
    ReconciledEntry,
    ResolvedBundle,
)
from .config import BindgenConfig, BundleSpec, coerce_bundle_specs
from .emit import emitter_for_path, get_emitter
from .errors import BindgenError, ConfigError
from .interner import InternStats, TypeInterner
from .loader import load_artifact
from .partition import partition_one
from .reconcile import reconcile

__all__ = ["BundleFailure", "RunResult", "Pipeline", "order_types", "render_bundles", "generate_bindings"]

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class BundleFailure:
    bundle: str
    error: BindgenError

    def to_dict(self) -> Dict[str, Any]:
        return {"bundle": self.bundle, "error": self.error.to_dict()}


@dataclass(frozen=True)
class RunResult:
    bundles: Tuple[ResolvedBundle, ...]
    failures: Tuple[BundleFailure, ...]
    diagnostics: Tuple[Diagnostic, ...]
    stats: InternStats

    @property
    def ok(self) -> bool:
        return not self.failures

    def bundle(self, name: str) -> ResolvedBundle:
        for b in self.bundles:
            if b.name == name:
                return b
        raise KeyError(name)

    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == "warning"]


def order_types(entries: Sequence[ReconciledEntry]) -> Tuple[List[CanonicalType], Dict[str, str], List[Diagnostic]]:
    """
    Topologically order the canonical types a bundle uses (embedded types
    first, then first-use order) and give each a bundle-local display name:
    the first struct label seen in declaration order, else `Tuple_<id>`.
    """
    ordered: List[CanonicalType] = []
    visited: Dict[str, None] = {}
    labels: Dict[str, str] = {}

    def visit(c: CanonicalType) -> None:
        if c.type_id in visited:
            return
        visited[c.type_id] = None
        for dep in c.dependencies():
            visit(dep)
        ordered.append(c)

    for r in entries:
        for entry in r.iter_entries():
            for p in entry.iter_params():
                for t in p.type.iter_tuples():
                    if t.canonical is None:
                        continue
                    label = t.struct_name()
                    if label and t.canonical.type_id not in labels:
                        labels[t.canonical.type_id] = label
                    visit(t.canonical)

    names: Dict[str, str] = {}
    used: Dict[str, str] = {}
    diagnostics: List[Diagnostic] = []
    for c in ordered:
        wanted = labels.get(c.type_id) or f"Tuple_{c.type_id[:8]}"
        name = wanted
        if name in used:
            name = f"{wanted}_{c.type_id[:8]}"
            diagnostics.append(
                Diagnostic(
                    code=NAMING_CONFLICT_RESOLVED,
                    message=(
                        f"struct {wanted} {c.signature} clashes with another struct of the "
                        f"same name; bound as {name}"
                    ),
                    context={"kind": "struct", "name": wanted, "renamed_to": name, "signature": c.signature},
                )
            )
        used[name] = c.type_id
        names[c.type_id] = name
    return ordered, names, diagnostics


class Pipeline:
    """One generation run. The interner lives exactly as long as the Pipeline."""

    def __init__(self, config: Optional[BindgenConfig] = None, *, interner: Optional[TypeInterner] = None) -> None:
        self.config = config or BindgenConfig()
        self.interner = interner or TypeInterner()

    # ---- public API ----

    def run(
        self,
        raw_artifacts: Mapping[str, Any],
        bundle_specs: Optional[Iterable[Any]] = None,
    ) -> RunResult:
        specs = coerce_bundle_specs(self.config.bundles if bundle_specs is None else bundle_specs)
        _check_unique(specs)

        loaded, broken = self._load_phase(raw_artifacts)
        resolved, broken = self._intern_phase(loaded, broken)

        outcomes = self._map(lambda s: self._bundle_task(s, resolved, broken), specs)

        bundles: List[ResolvedBundle] = []
        failures: List[BundleFailure] = []
        diagnostics: List[Diagnostic] = []
        for spec, outcome in zip(specs, outcomes):
            if isinstance(outcome, BindgenError):
                failures.append(BundleFailure(spec.name, outcome))
                log.error("pipeline: bundle %s failed: %s", spec.name, outcome)
                continue
            bundles.append(outcome)
            diagnostics.extend(outcome.diagnostics)

        stats = self.interner.stats()
        diagnostics.append(
            Diagnostic(
                code=DEDUP_STATISTICS,
                severity="info",
                message=(
                    f"{stats.occurrences} composite occurrences collapsed into "
                    f"{stats.canonical_types} canonical types"
                ),
                context={
                    "occurrences": stats.occurrences,
                    "canonical_types": stats.canonical_types,
                    "deduplicated": stats.deduplicated,
                    "bundles": len(bundles),
                    "failed_bundles": len(failures),
                },
            )
        )
        log.info("pipeline: %d bundles resolved, %d failed", len(bundles), len(failures))
        return RunResult(
            bundles=tuple(bundles),
            failures=tuple(failures),
            diagnostics=tuple(diagnostics),
            stats=stats,
        )

    def resolve_bundle(self, bundle: Bundle) -> ResolvedBundle:
        """Reconcile one partitioned bundle (members already interned) into emitter input."""
        rec = reconcile(bundle, self.config.policy)
        types, names, naming = order_types(rec.entries)
        declarations = sum(len(c.abi) for c in bundle.contracts)
        stats = Diagnostic(
            code=DEDUP_STATISTICS,
            severity="info",
            bundle=bundle.name,
            message=f"{declarations} declarations reconciled into {len(rec.entries)} entries",
            context={
                "declarations": declarations,
                "entries": len(rec.entries),
                "conflicts": len(rec.conflicts),
                "types": len(types),
            },
        )
        diagnostics = list(rec.diagnostics)
        diagnostics.extend(
            Diagnostic(code=d.code, message=d.message, severity=d.severity, bundle=bundle.name, context=d.context)
            for d in naming
        )
        diagnostics.append(stats)
        return ResolvedBundle(
            name=bundle.name,
            contract_names=bundle.contract_names,
            types=tuple(types),
            type_names=names,
            entries=rec.entries,
            conflicts=rec.conflicts,
            diagnostics=tuple(diagnostics),
        )

    # ---- phases ----

    def _load_phase(self, raw_artifacts: Mapping[str, Any]) -> Tuple[Dict[str, ContractArtifact], Dict[str, BindgenError]]:
        loaded: Dict[str, ContractArtifact] = {}
        broken: Dict[str, BindgenError] = {}
        for name, raw in raw_artifacts.items():
            try:
                loaded[name] = load_artifact(name, raw)
            except BindgenError as e:
                if self.config.fail_fast:
                    raise
                log.error("pipeline: artifact %s rejected: %s", name, e)
                broken[name] = e
        log.info("pipeline: loaded %d artifacts (%d rejected)", len(loaded), len(broken))
        return loaded, broken

    def _intern_phase(
        self,
        loaded: Dict[str, ContractArtifact],
        broken: Dict[str, BindgenError],
    ) -> Tuple[Dict[str, ContractArtifact], Dict[str, BindgenError]]:
        artifacts = list(loaded.values())
        outcomes = self._map(self._intern_task, artifacts)
        resolved: Dict[str, ContractArtifact] = {}
        broken = dict(broken)
        for artifact, outcome in zip(artifacts, outcomes):
            if isinstance(outcome, BindgenError):
                broken[artifact.name] = outcome
            else:
                resolved[artifact.name] = outcome
        return resolved, broken

    def _intern_task(self, artifact: ContractArtifact) -> ContractArtifact:
        return self.interner.resolve_artifact(artifact)

    def _bundle_task(
        self,
        spec: BundleSpec,
        resolved: Mapping[str, ContractArtifact],
        broken: Mapping[str, BindgenError],
    ) -> ResolvedBundle:
        for name in spec.contracts:
            if name in broken:
                raise broken[name]
        bundle = partition_one(resolved, spec)
        return self.resolve_bundle(bundle)

    def _map(self, fn: Callable[[T], R], items: Sequence[T]) -> List[Any]:
        """
        Apply `fn` to every item (in parallel when workers > 1), returning
        results in input order. Under fail_fast the first error in input
        order is raised; otherwise BindgenErrors are returned in place.
        """
        def guarded(item: T) -> Any:
            try:
                return fn(item)
            except BindgenError as e:
                if self.config.fail_fast:
                    raise
                return e

        workers = min(self.config.workers, len(items))
        if workers <= 1:
            return [guarded(item) for item in items]
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bindgen")
        try:
            futures = [pool.submit(guarded, item) for item in items]
            return [f.result() for f in futures]
        except BaseException:
            pool.shutdown(wait=True, cancel_futures=True)
            raise
        finally:
            pool.shutdown(wait=True)


def render_bundles(result: RunResult, config: BindgenConfig) -> Dict[Path, str]:
    """Render every resolved bundle with its emitter; returns {output path: text}."""
    specs = {s.name: s for s in config.bundles}
    out: Dict[Path, str] = {}
    for bundle in result.bundles:
        spec = specs.get(bundle.name)
        if spec is not None and spec.emitter:
            emitter = get_emitter(spec.emitter)
        else:
            emitter = emitter_for_path(bundle.name)
        out[config.out_dir / bundle.name] = emitter.render(bundle)
    return out


def generate_bindings(
    config: BindgenConfig,
    raw_artifacts: Mapping[str, Any],
    *,
    interner: Optional[TypeInterner] = None,
) -> Tuple[Dict[Path, str], RunResult]:
    """Run the pipeline for `config` and render every bundle that resolved."""
    result = Pipeline(config, interner=interner).run(raw_artifacts)
    return render_bundles(result, config), result


def _check_unique(specs: Sequence[BundleSpec]) -> None:
    seen = set()
    for s in specs:
        if s.name in seen:
            raise ConfigError("duplicate bundle name", bundle=s.name)
        seen.add(s.name)
