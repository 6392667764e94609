"""
Python emitter.

One frozen dataclass per canonical struct (dependencies first), one
`<CONTRACT>_ABI` constant per contract (decoded from an embedded JSON string
so the literal stays byte-stable), and a `BINDINGS` table keyed by kind and
reconciled binding name.
"""

from __future__ import annotations

import json
import keyword
import re
from typing import Dict, List

from ..common import __version__ as MODEL_VERSION
from ..common.model import ResolvedBundle, TypeRef
from ..utils import snake

_NON_ID = re.compile(r"[^A-Za-z0-9_]")


def py_ident(s: str, fallback: str = "x") -> str:
    s2 = _NON_ID.sub("_", s.strip()) or fallback
    if keyword.iskeyword(s2):
        s2 += "_"
    if s2[0].isdigit():
        s2 = "_" + s2
    return s2


def py_type(t: TypeRef, bundle: ResolvedBundle) -> str:
    if t.kind in ("uint", "int"):
        return "int"
    if t.kind == "bool":
        return "bool"
    if t.kind in ("string", "address"):
        return "str"
    if t.kind == "bytes":
        return "bytes"
    if t.kind == "array":
        assert t.array_item is not None
        return f"List[{py_type(t.array_item, bundle)}]"
    if t.kind == "tuple":
        if t.canonical is not None:
            return py_ident(bundle.type_name(t.canonical))
        elems = [py_type(c.type, bundle) for c in t.components]
        return f"Tuple[{', '.join(elems)}]" if elems else "Tuple[()]"
    return "Any"


class PythonEmitter:
    name = "python"
    extension = ".py"

    def render(self, bundle: ResolvedBundle) -> str:
        lines: List[str] = []
        lines.append("# This file was generated by abi-bindgen (python). Do not edit by hand.")
        lines.append(f"# bundle: {bundle.name} (model {MODEL_VERSION})")
        lines.append("from __future__ import annotations")
        lines.append("")
        lines.append("import json")
        lines.append("from dataclasses import dataclass")
        lines.append("from typing import Any, Dict, List, Tuple")
        lines.append("")

        for t in bundle.types:
            lines.append("")
            lines.append("@dataclass(frozen=True)")
            lines.append(f"class {py_ident(bundle.type_name(t))}:")
            lines.append(f'    """{t.abi_signature}"""')
            if not t.fields:
                lines.append("    pass")
            for i, f in enumerate(t.fields):
                lines.append(f"    {py_ident(f.name, f'field{i}')}: {py_type(f.type, bundle)}")
            lines.append("")

        exported: List[str] = []
        for contract in bundle.contract_names:
            const = snake(contract).upper() + "_ABI"
            abi = [r.entry.to_abi() for r in bundle.entries_for(contract)]
            abi_str = json.dumps(abi, separators=(",", ":"), ensure_ascii=False)
            lines.append("")
            lines.append(f"# {contract}")
            lines.append(f"{const}: List[Dict[str, Any]] = json.loads({json.dumps(abi_str)})")
            exported.append(const)

        bindings: Dict[str, Dict[str, List[str]]] = {}
        for r in bundle.entries:
            if r.entry.is_contract_scoped:
                continue
            bindings.setdefault(r.kind + "s", {}).setdefault(r.binding_name, []).append(r.signature)
        lines.append("")
        lines.append(
            f"BINDINGS: Dict[str, Dict[str, List[str]]] = json.loads({json.dumps(json.dumps(bindings, sort_keys=True))})"
        )
        lines.append("")
        names = [py_ident(bundle.type_name(t)) for t in bundle.types] + exported + ["BINDINGS"]
        lines.append("__all__ = [" + ", ".join(json.dumps(n) for n in names) + "]")
        return "\n".join(lines) + "\n"
