from __future__ import annotations

import copy
from typing import Any, Dict

import pytest

from bindgen.common.model import DEDUP_STATISTICS, NAMING_CONFLICT_RESOLVED
from bindgen.config import BindgenConfig, BundleSpec, ReconcilePolicy
from bindgen.errors import MalformedTypeSignature, RejectedConflict, UnknownContractReference
from bindgen.pipeline import Pipeline, generate_bindings

BUNDLES = (
    BundleSpec("abi/kernel-v2-abis.ts", ("MultiWebAuthNValidatorV2", "InteractionPaymaster")),
    BundleSpec("abi/kernel-v3-abis.ts", ("MultiWebAuthNValidatorV3", "MultiWebAuthNValidatorV2")),
    BundleSpec("abi/frak-abis.ts", ("ContentRegistry",)),
    BundleSpec("abi/kernel.json", ("MultiWebAuthNValidatorV3", "InteractionPaymaster")),
)


def _config(**kw: Any) -> BindgenConfig:
    kw.setdefault("bundles", BUNDLES)
    return BindgenConfig(**kw)


def test_run_resolves_every_bundle_in_order(raw_artifacts: Dict[str, Any]) -> None:
    result = Pipeline(_config()).run(raw_artifacts)
    assert result.ok
    assert [b.name for b in result.bundles] == [b.name for b in BUNDLES]
    v3 = result.bundle("abi/kernel-v3-abis.ts")
    assert v3.contract_names == ("MultiWebAuthNValidatorV3", "MultiWebAuthNValidatorV2")


def test_unlabeled_and_labeled_point_share_one_type(raw_artifacts: Dict[str, Any]) -> None:
    result = Pipeline(_config()).run(raw_artifacts)
    bundle = result.bundle("abi/kernel-v2-abis.ts")
    points = [t for t in bundle.types if t.signature == "{x:uint256,y:uint256}"]
    assert len(points) == 1
    assert bundle.type_name(points[0]) == "WebAuthNPubKey"

    setter = next(r for r in bundle.entries if r.name == "setSigningKey")
    getter = next(r for r in bundle.entries if r.name == "getPasskey")
    assert setter.entry.inputs[0].type.canonical is getter.entry.outputs[1].type.canonical


def test_canonical_types_are_shared_across_bundles(raw_artifacts: Dict[str, Any]) -> None:
    result = Pipeline(_config()).run(raw_artifacts)
    v2 = result.bundle("abi/kernel-v2-abis.ts")
    v3 = result.bundle("abi/kernel-v3-abis.ts")
    p2 = next(t for t in v2.types if t.signature == "{x:uint256,y:uint256}")
    p3 = next(t for t in v3.types if t.signature == "{x:uint256,y:uint256}")
    assert p2 is p3


def test_nested_structs_declared_first(raw_artifacts: Dict[str, Any]) -> None:
    bundle = Pipeline(_config()).run(raw_artifacts).bundle("abi/kernel-v3-abis.ts")
    names = [bundle.type_name(t) for t in bundle.types]
    assert names.index("WebAuthNPubKey") < names.index("RecoveryConfig")
    seen = set()
    for t in bundle.types:
        assert all(d.type_id in seen for d in t.dependencies())
        seen.add(t.type_id)


def test_bundle_only_lists_types_it_uses(raw_artifacts: Dict[str, Any]) -> None:
    bundle = Pipeline(_config()).run(raw_artifacts).bundle("abi/frak-abis.ts")
    assert [bundle.type_name(t) for t in bundle.types] == ["Metadata"]


def test_unlabeled_struct_gets_stable_name() -> None:
    raw = {"C": [{"type": "function", "name": "f", "inputs": [{"name": "p", "type": "(address,uint8)"}]}]}
    bundle = Pipeline(_config(bundles=(BundleSpec("c.ts", ("C",)),))).run(raw).bundle("c.ts")
    (t,) = bundle.types
    assert bundle.type_name(t) == f"Tuple_{t.type_id[:8]}"


def test_same_struct_name_different_shape_is_disambiguated() -> None:
    def meta(*fields: str) -> Dict[str, Any]:
        return {
            "name": "m",
            "internalType": "struct Metadata",
            "type": "tuple",
            "components": [{"name": f, "type": "uint256"} for f in fields],
        }

    raw = {
        "A": [{"type": "function", "name": "a", "inputs": [meta("x")]}],
        "B": [{"type": "function", "name": "b", "inputs": [meta("x", "y")]}],
    }
    bundle = Pipeline(_config(bundles=(BundleSpec("ab.ts", ("A", "B")),))).run(raw).bundle("ab.ts")
    first, second = bundle.types
    assert bundle.type_name(first) == "Metadata"
    assert bundle.type_name(second) == f"Metadata_{second.type_id[:8]}"
    assert [d.code for d in bundle.diagnostics if d.code == NAMING_CONFLICT_RESOLVED] == [NAMING_CONFLICT_RESOLVED]


def test_run_is_deterministic(raw_artifacts: Dict[str, Any]) -> None:
    first = Pipeline(_config()).run(copy.deepcopy(raw_artifacts))
    second = Pipeline(_config()).run(copy.deepcopy(raw_artifacts))
    assert [b.to_dict() for b in first.bundles] == [b.to_dict() for b in second.bundles]


def test_parallel_matches_sequential(raw_artifacts: Dict[str, Any]) -> None:
    sequential = Pipeline(_config(workers=1)).run(raw_artifacts)
    parallel = Pipeline(_config(workers=4)).run(raw_artifacts)
    assert [b.to_dict() for b in parallel.bundles] == [b.to_dict() for b in sequential.bundles]
    assert parallel.stats == sequential.stats


def test_dedup_statistics(raw_artifacts: Dict[str, Any]) -> None:
    result = Pipeline(_config()).run(raw_artifacts)
    run_level = result.diagnostics[-1]
    assert run_level.code == DEDUP_STATISTICS and run_level.bundle is None
    assert run_level.context["canonical_types"] == result.stats.canonical_types
    assert result.stats.deduplicated > 0
    per_bundle = [d for d in result.diagnostics if d.code == DEDUP_STATISTICS and d.bundle]
    assert len(per_bundle) == len(BUNDLES)


def test_unknown_contract_fails_fast(raw_artifacts: Dict[str, Any]) -> None:
    bundles = BUNDLES + (BundleSpec("abi/missing.ts", ("MultiWebAuthNRecoveryAction",)),)
    with pytest.raises(UnknownContractReference) as ei:
        Pipeline(_config(bundles=bundles)).run(raw_artifacts)
    assert ei.value.contract == "MultiWebAuthNRecoveryAction"


def test_failures_stay_inside_their_bundle(raw_artifacts: Dict[str, Any]) -> None:
    raw_artifacts["Broken"] = [{"type": "function", "name": "f", "inputs": [{"name": "a", "type": "uint9"}]}]
    bundles = (
        BundleSpec("abi/missing.ts", ("MultiWebAuthNRecoveryAction",)),
        BundleSpec("abi/broken.ts", ("ContentRegistry", "Broken")),
    ) + BUNDLES
    result = Pipeline(_config(bundles=bundles, fail_fast=False, workers=3)).run(raw_artifacts)
    assert not result.ok
    assert [(f.bundle, type(f.error)) for f in result.failures] == [
        ("abi/missing.ts", UnknownContractReference),
        ("abi/broken.ts", MalformedTypeSignature),
    ]
    assert [b.name for b in result.bundles] == [b.name for b in BUNDLES]


def test_reject_policy_only_fails_the_clashing_bundle(raw_artifacts: Dict[str, Any]) -> None:
    cfg = _config(fail_fast=False, policy=ReconcilePolicy(errors="reject"))
    result = Pipeline(cfg).run(raw_artifacts)
    failed = {f.bundle for f in result.failures}
    assert failed == {"abi/kernel-v2-abis.ts", "abi/kernel.json"}
    assert all(isinstance(f.error, RejectedConflict) for f in result.failures)
    assert {b.name for b in result.bundles} == {"abi/kernel-v3-abis.ts", "abi/frak-abis.ts"}


def test_explicit_bundle_specs_override_config(raw_artifacts: Dict[str, Any]) -> None:
    result = Pipeline(_config()).run(raw_artifacts, [("only.ts", ["ContentRegistry"])])
    assert [b.name for b in result.bundles] == ["only.ts"]


def test_generate_bindings_renders_by_extension(tmp_path, raw_artifacts: Dict[str, Any]) -> None:
    bundles = BUNDLES + (BundleSpec("abi/kernel_v2.py", ("MultiWebAuthNValidatorV2",)),)
    outputs, result = generate_bindings(_config(bundles=bundles, out_dir=tmp_path), raw_artifacts)
    assert result.ok
    assert list(outputs) == [tmp_path / b.name for b in bundles]
    assert "export const multiWebAuthNValidatorV2Abi" in outputs[tmp_path / "abi/kernel-v2-abis.ts"]
    assert outputs[tmp_path / "abi/kernel.json"].lstrip().startswith("{")
    assert "MULTI_WEB_AUTH_N_VALIDATOR_V2_ABI" in outputs[tmp_path / "abi/kernel_v2.py"]
