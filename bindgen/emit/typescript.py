"""
TypeScript emitter.

Renders a bundle the way the wagmi CLI foundry plugin lays out its output
files: a banner per contract followed by

    export const multiWebAuthNValidatorV3Abi = [ ... ] as const

plus, ahead of the contracts, one `export type` alias per canonical struct
(declared before any struct embedding it) and, at the end, a bindings table
giving the reconciled name of every overload / renamed event or error.
Object literals follow prettier's layout: inline when they fit in 80
columns, one member per line otherwise.
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any, Dict, List

from ..common import __version__ as MODEL_VERSION
from ..common.model import ResolvedBundle, TypeRef
from ..utils import camel

_WIDTH = 80
_BANNER = "/" * 166
_IDENT_CHARS = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_$")


def _ts_str(s: str) -> str:
    return "'" + s.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _ts_key(k: str) -> str:
    if k and not k[0].isdigit() and set(k) <= _IDENT_CHARS:
        return k
    return _ts_str(k)


def _inline(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    if v is None:
        return "null"
    if isinstance(v, int):
        return str(v)
    if isinstance(v, str):
        return _ts_str(v)
    if isinstance(v, (list, tuple)):
        return "[" + ", ".join(_inline(x) for x in v) + "]"
    if isinstance(v, dict):
        if not v:
            return "{}"
        return "{ " + ", ".join(f"{_ts_key(k)}: {_inline(x)}" for k, x in v.items()) + " }"
    raise TypeError(f"cannot render {type(v).__name__} as a TypeScript literal")


def ts_literal(v: Any, indent: int = 0, used: int = 0) -> str:
    """Prettier-like literal: inline if `indent + used + len + 1` fits, else one member per line."""
    flat = _inline(v)
    if not isinstance(v, (list, tuple, dict)) or not v or indent + used + len(flat) + 1 <= _WIDTH:
        return flat
    pad = " " * (indent + 2)
    lines: List[str] = []
    if isinstance(v, dict):
        for k, x in v.items():
            key = _ts_key(k)
            lines.append(f"{pad}{key}: {ts_literal(x, indent + 2, len(key) + 2)},")
        return "{\n" + "\n".join(lines) + "\n" + " " * indent + "}"
    for x in v:
        lines.append(f"{pad}{ts_literal(x, indent + 2)},")
    return "[\n" + "\n".join(lines) + "\n" + " " * indent + "]"


def ts_type(t: TypeRef, bundle: ResolvedBundle) -> str:
    if t.kind in ("uint", "int"):
        return "number" if (t.bits or 256) <= 48 else "bigint"
    if t.kind in ("address", "bytes"):
        return "`0x${string}`"
    if t.kind == "bool":
        return "boolean"
    if t.kind == "string":
        return "string"
    if t.kind == "array":
        assert t.array_item is not None
        return f"readonly {ts_type(t.array_item, bundle)}[]"
    if t.kind == "tuple":
        if t.canonical is not None:
            return bundle.type_name(t.canonical)
        return "readonly [" + ", ".join(ts_type(c.type, bundle) for c in t.components) + "]"
    return "unknown"


def _banner(title: str) -> List[str]:
    return [_BANNER, f"// {title}", _BANNER, ""]


class TypeScriptEmitter:
    name = "typescript"
    extension = ".ts"

    def render(self, bundle: ResolvedBundle) -> str:
        lines: List[str] = [
            "// This file was generated by abi-bindgen (typescript). Do not edit by hand.",
            f"// bundle: {bundle.name} (model {MODEL_VERSION})",
            "",
        ]

        if bundle.types:
            lines.extend(_banner("Structs"))
            for t in bundle.types:
                lines.append(f"export type {bundle.type_name(t)} = {{")
                for i, f in enumerate(t.fields):
                    lines.append(f"  {_ts_key(f.name or f'field{i}')}: {ts_type(f.type, bundle)}")
                lines.append("}")
                lines.append("")

        for contract in bundle.contract_names:
            abi = [r.entry.to_abi() for r in bundle.entries_for(contract)]
            lines.extend(_banner(contract))
            lines.append(f"export const {camel(contract)}Abi = {ts_literal(abi)} as const")
            lines.append("")

        lines.extend(_banner("Bindings"))
        table = self._bindings(bundle)
        lines.append(f"export const {self._bundle_ident(bundle.name)}Bindings = {ts_literal(table)} as const")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _bundle_ident(name: str) -> str:
        p = PurePosixPath(name)
        return camel(str(p.with_suffix("")) if p.suffix else name)

    @staticmethod
    def _bindings(bundle: ResolvedBundle) -> Dict[str, Dict[str, List[str]]]:
        table: Dict[str, Dict[str, List[str]]] = {}
        for r in bundle.entries:
            if r.entry.is_contract_scoped:
                continue
            section = table.setdefault(r.kind + "s", {})
            section.setdefault(r.binding_name, []).append(r.signature)
        return table
