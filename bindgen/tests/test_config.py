from __future__ import annotations

import json
from pathlib import Path

import pytest

from bindgen.config import (
    BindgenConfig,
    BundleSpec,
    ReconcilePolicy,
    coerce_bundle_specs,
    config_from_mapping,
    load_config,
    normalize_contract_name,
)
from bindgen.errors import ConfigError

CONFIG_YAML = """\
artifacts: out/
out_dir: generated
workers: 4
conflicts:
  events: rename
  errors: reject
bundles:
  - out: abi/frak-abis.ts
    contracts:
      - ContentRegistry.json
      - ReferralRegistry.json
  - out: abi/kernel-v2-abis.ts
    emitter: typescript
    contracts: [MultiWebAuthNRecoveryAction, MultiWebAuthNValidatorV2]
"""


def test_defaults() -> None:
    cfg = load_config(env={})
    assert cfg == BindgenConfig()
    assert cfg.workers == 1 and cfg.fail_fast is True
    assert cfg.policy == ReconcilePolicy()


def test_yaml_file(tmp_path: Path) -> None:
    path = tmp_path / "bindgen.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    cfg = load_config(path, env={})
    assert cfg.source == path
    assert cfg.artifacts_dir == tmp_path.resolve() / "out"
    assert cfg.out_dir == tmp_path.resolve() / "generated"
    assert cfg.workers == 4
    assert cfg.policy.errors == "reject" and cfg.policy.events == "rename"
    assert [b.name for b in cfg.bundles] == ["abi/frak-abis.ts", "abi/kernel-v2-abis.ts"]
    assert cfg.bundles[0].contracts == ("ContentRegistry", "ReferralRegistry")
    assert cfg.bundles[1].emitter == "typescript"
    assert cfg.contract_names() == (
        "ContentRegistry",
        "ReferralRegistry",
        "MultiWebAuthNRecoveryAction",
        "MultiWebAuthNValidatorV2",
    )


def test_json_file(tmp_path: Path) -> None:
    path = tmp_path / "bindgen.json"
    path.write_text(json.dumps({"bundles": [{"outputIdentifier": "a.ts", "include": ["A"]}]}), encoding="utf-8")
    cfg = load_config(path, env={})
    assert cfg.bundles == (BundleSpec("a.ts", ("A",)),)


def test_env_and_overrides_take_precedence(tmp_path: Path) -> None:
    path = tmp_path / "bindgen.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    env = {
        "BINDGEN_CONFIG": str(path),
        "BINDGEN_WORKERS": "2",
        "BINDGEN_FAIL_FAST": "no",
        "BINDGEN_EVENT_CONFLICTS": "REJECT",
        "BINDGEN_OUT_DIR": str(tmp_path / "env-out"),
    }
    cfg = load_config(env=env, overrides={"workers": 8, "out_dir": None})
    assert cfg.source == path
    assert cfg.workers == 8
    assert cfg.fail_fast is False
    assert cfg.policy.events == "reject"
    assert cfg.policy.errors == "reject"
    assert cfg.out_dir == tmp_path / "env-out"


@pytest.mark.parametrize(
    "data",
    [
        {"workers": 0},
        {"workers": "many"},
        {"fail_fast": "perhaps"},
        {"conflicts": {"events": "ignore"}},
        {"conflicts": "rename"},
        {"bundles": {"out": "a.ts"}},
        {"bundles": [{"contracts": ["A"]}]},
        {"bundles": [{"out": "a.ts", "contracts": "A"}]},
        {"bundles": [{"out": "a.ts", "contracts": ["A"]}, {"out": "a.ts", "contracts": ["B"]}]},
        ["not", "a", "mapping"],
    ],
)
def test_invalid_config(data) -> None:
    with pytest.raises(ConfigError):
        config_from_mapping(data)


def test_unreadable_files(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml", env={})
    bad = tmp_path / "bad.yaml"
    bad.write_text("bundles: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError) as ei:
        load_config(bad, env={})
    assert ei.value.context["path"] == str(bad)


def test_bad_env_value() -> None:
    with pytest.raises(ConfigError):
        load_config(env={"BINDGEN_WORKERS": "lots"})


@pytest.mark.parametrize(
    "raw, name",
    [
        ("ContentRegistry.json", "ContentRegistry"),
        ("out/ContentRegistry.sol/ContentRegistry.json", "ContentRegistry"),
        ("ContentRegistry", "ContentRegistry"),
        ("  Foo  ", "Foo"),
    ],
)
def test_normalize_contract_name(raw: str, name: str) -> None:
    assert normalize_contract_name(raw) == name


def test_coerce_rejects_odd_shapes() -> None:
    with pytest.raises(ConfigError):
        coerce_bundle_specs([42])
    with pytest.raises(ConfigError):
        coerce_bundle_specs([("a.ts", "A")])
    with pytest.raises(ConfigError):
        BundleSpec("", ("A",))
