from __future__ import annotations
"""
bindgen.config: bundle descriptors, reconciliation policy and run options.

Configuration precedence (lowest → highest):
  1) Hardcoded defaults below
  2) A YAML or JSON config file (`bindgen.yaml`, `bindgen.json`, ...)
  3) Environment variables (BINDGEN_*)
  4) Explicit overrides (CLI flags)

Environment variables:
  - BINDGEN_CONFIG            (path)   config file used when none is passed
  - BINDGEN_ARTIFACTS         (path)   compiled artifacts root, default: out/
  - BINDGEN_OUT_DIR           (path)   where bundle outputs are written, default: .
  - BINDGEN_WORKERS           (int)    bundle workers, default: 1
  - BINDGEN_FAIL_FAST         (bool)   abort the run on the first fatal error, default: true
  - BINDGEN_EVENT_CONFLICTS   (str)    "rename" | "reject", default: rename
  - BINDGEN_ERROR_CONFLICTS   (str)    "rename" | "reject", default: rename

Config file shape (mirrors one output-per-group code generation configs):

    artifacts: out/
    out_dir: .
    workers: 4
    conflicts: {events: rename, errors: rename}
    bundles:
      - out: abi/kernel-v2-abis.ts
        contracts:
          - MultiWebAuthNRecoveryAction.json
          - MultiWebAuthNValidatorV2.json

Contract names may be given with a ".json" suffix or as artifact paths; only
the contract name is kept.
"""

import json
import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import yaml

from .errors import ConfigError

__all__ = [
    "CONFLICT_POLICIES",
    "ReconcilePolicy",
    "BundleSpec",
    "BindgenConfig",
    "normalize_contract_name",
    "coerce_bundle_specs",
    "config_from_mapping",
    "load_config",
]

CONFLICT_POLICIES = ("rename", "reject")

_TRUE = ("1", "true", "t", "yes", "y", "on")
_FALSE = ("0", "false", "f", "no", "n", "off")


# -------------------------- Data classes --------------------------


@dataclass(frozen=True)
class ReconcilePolicy:
    """How event/error name clashes across contracts are handled."""
    events: str = "rename"
    errors: str = "rename"
    separator: str = "_"

    def for_kind(self, kind: str) -> str:
        if kind == "event":
            return self.events
        if kind == "error":
            return self.errors
        return "overload"

    def validate(self) -> None:
        for label, value in (("events", self.events), ("errors", self.errors)):
            if value not in CONFLICT_POLICIES:
                raise ConfigError(
                    f"conflicts.{label} must be one of {', '.join(CONFLICT_POLICIES)}",
                    value=value,
                )
        if not self.separator or not self.separator.replace("_", "a").isalnum():
            raise ConfigError("conflicts.separator must be identifier characters", value=self.separator)


@dataclass(frozen=True)
class BundleSpec:
    """One output unit: identifier + ordered contract names."""
    name: str
    contracts: Tuple[str, ...]
    emitter: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConfigError("bundle name must be a non-empty string", value=repr(self.name))
        object.__setattr__(self, "contracts", tuple(self.contracts))


@dataclass(frozen=True)
class BindgenConfig:
    bundles: Tuple[BundleSpec, ...] = ()
    artifacts_dir: Path = Path("out")
    out_dir: Path = Path(".")
    workers: int = 1
    fail_fast: bool = True
    policy: ReconcilePolicy = field(default_factory=ReconcilePolicy)
    source: Optional[Path] = None

    def validate(self) -> None:
        if self.workers < 1:
            raise ConfigError("workers must be >= 1", value=self.workers)
        self.policy.validate()
        seen = set()
        for b in self.bundles:
            if b.name in seen:
                raise ConfigError("duplicate bundle name", bundle=b.name)
            seen.add(b.name)

    def bundle(self, name: str) -> BundleSpec:
        for b in self.bundles:
            if b.name == name:
                return b
        raise ConfigError("no such bundle", bundle=name)

    def contract_names(self) -> Tuple[str, ...]:
        """Every referenced contract, first-mention order."""
        out: Dict[str, None] = {}
        for b in self.bundles:
            for c in b.contracts:
                out.setdefault(c, None)
        return tuple(out)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "bundles": [asdict(b) for b in self.bundles],
            "artifacts_dir": str(self.artifacts_dir),
            "out_dir": str(self.out_dir),
            "workers": self.workers,
            "fail_fast": self.fail_fast,
            "policy": asdict(self.policy),
            "source": str(self.source) if self.source else None,
        }


# -------------------------- Coercion helpers --------------------------


def normalize_contract_name(name: Any) -> str:
    """'out/Foo.sol/Foo.json' → 'Foo'; 'Foo.json' → 'Foo'; 'Foo' → 'Foo'."""
    if not isinstance(name, str) or not name.strip():
        raise ConfigError("contract name must be a non-empty string", value=repr(name))
    leaf = PurePosixPath(name.strip().replace("\\", "/")).name
    if leaf.endswith(".json"):
        leaf = leaf[: -len(".json")]
    if not leaf:
        raise ConfigError("contract name must be a non-empty string", value=repr(name))
    return leaf


def _bundle_from_mapping(raw: Mapping[str, Any], index: int) -> BundleSpec:
    name = raw.get("out") or raw.get("outputIdentifier") or raw.get("name")
    if not name:
        raise ConfigError(f"bundles[{index}] needs an 'out' identifier")
    contracts = raw.get("contracts", raw.get("include"))
    if not isinstance(contracts, (list, tuple)):
        raise ConfigError(f"bundles[{index}].contracts must be a list", bundle=name)
    emitter = raw.get("emitter") or raw.get("lang")
    return BundleSpec(
        name=str(name),
        contracts=tuple(normalize_contract_name(c) for c in contracts),
        emitter=str(emitter) if emitter else None,
    )


def coerce_bundle_specs(
    spec: Iterable[Union[BundleSpec, Mapping[str, Any], Sequence[Any]]],
) -> Tuple[BundleSpec, ...]:
    """Accept BundleSpec objects, descriptor mappings or (name, contracts) pairs."""
    out = []
    for i, item in enumerate(spec):
        if isinstance(item, BundleSpec):
            out.append(item)
        elif isinstance(item, Mapping):
            out.append(_bundle_from_mapping(item, i))
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            name, contracts = item
            if not isinstance(contracts, (list, tuple)):
                raise ConfigError(f"bundles[{i}] contracts must be a list", bundle=name)
            out.append(BundleSpec(name=name, contracts=tuple(normalize_contract_name(c) for c in contracts)))
        else:
            raise ConfigError(f"bundles[{i}] has an unsupported shape", value=repr(item))
    return tuple(out)


def _as_bool(raw: Any, label: str) -> bool:
    if isinstance(raw, bool):
        return raw
    val = str(raw).strip().lower()
    if val in _TRUE:
        return True
    if val in _FALSE:
        return False
    raise ConfigError(f"{label} must be a boolean", value=raw)


def _as_int(raw: Any, label: str) -> int:
    if isinstance(raw, bool):
        raise ConfigError(f"{label} must be an integer", value=raw)
    try:
        return int(str(raw), 0) if isinstance(raw, str) else int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{label} must be an integer", value=raw) from e


def _resolve_path(raw: Any, base_dir: Optional[Path]) -> Path:
    p = Path(str(raw)).expanduser()
    if not p.is_absolute() and base_dir is not None:
        p = base_dir / p
    return p


def config_from_mapping(data: Mapping[str, Any], *, base_dir: Optional[Path] = None) -> BindgenConfig:
    """Build a config from an already-parsed mapping; relative paths resolve against base_dir."""
    if not isinstance(data, Mapping):
        raise ConfigError("config root must be a mapping")
    bundles_raw = data.get("bundles", [])
    if not isinstance(bundles_raw, (list, tuple)):
        raise ConfigError("'bundles' must be a list")

    conflicts = data.get("conflicts") or {}
    if not isinstance(conflicts, Mapping):
        raise ConfigError("'conflicts' must be a mapping")
    policy = ReconcilePolicy(
        events=str(conflicts.get("events", "rename")),
        errors=str(conflicts.get("errors", "rename")),
        separator=str(conflicts.get("separator", "_")),
    )

    cfg = BindgenConfig(
        bundles=coerce_bundle_specs(bundles_raw),
        artifacts_dir=_resolve_path(data.get("artifacts", "out"), base_dir),
        out_dir=_resolve_path(data.get("out_dir", "."), base_dir),
        workers=_as_int(data.get("workers", 1), "workers"),
        fail_fast=_as_bool(data.get("fail_fast", True), "fail_fast"),
        policy=policy,
    )
    cfg.validate()
    return cfg


def _read_file(path: Path) -> Mapping[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read config file: {e}", path=str(path)) from e
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot parse config file: {e}", path=str(path)) from e
    return data or {}


def _apply_env(cfg: BindgenConfig, env: Mapping[str, str]) -> BindgenConfig:
    changes: Dict[str, Any] = {}
    if env.get("BINDGEN_ARTIFACTS"):
        changes["artifacts_dir"] = Path(env["BINDGEN_ARTIFACTS"]).expanduser()
    if env.get("BINDGEN_OUT_DIR"):
        changes["out_dir"] = Path(env["BINDGEN_OUT_DIR"]).expanduser()
    if env.get("BINDGEN_WORKERS"):
        changes["workers"] = _as_int(env["BINDGEN_WORKERS"], "BINDGEN_WORKERS")
    if env.get("BINDGEN_FAIL_FAST"):
        changes["fail_fast"] = _as_bool(env["BINDGEN_FAIL_FAST"], "BINDGEN_FAIL_FAST")
    policy_changes: Dict[str, str] = {}
    if env.get("BINDGEN_EVENT_CONFLICTS"):
        policy_changes["events"] = env["BINDGEN_EVENT_CONFLICTS"].strip().lower()
    if env.get("BINDGEN_ERROR_CONFLICTS"):
        policy_changes["errors"] = env["BINDGEN_ERROR_CONFLICTS"].strip().lower()
    if policy_changes:
        changes["policy"] = replace(cfg.policy, **policy_changes)
    return replace(cfg, **changes) if changes else cfg


def load_config(
    path: Optional[Union[str, os.PathLike[str]]] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> BindgenConfig:
    """
    Build a BindgenConfig from file + environment + explicit overrides.

    `overrides` keys match BindgenConfig fields; None values are ignored.
    """
    env = os.environ if env is None else env
    if path is None and env.get("BINDGEN_CONFIG"):
        path = env["BINDGEN_CONFIG"]

    if path is not None:
        p = Path(path).expanduser()
        cfg = config_from_mapping(_read_file(p), base_dir=p.resolve().parent)
        cfg = replace(cfg, source=p)
    else:
        cfg = BindgenConfig()

    cfg = _apply_env(cfg, env)
    if overrides:
        cfg = replace(cfg, **{k: v for k, v in overrides.items() if v is not None})
    cfg.validate()
    return cfg
