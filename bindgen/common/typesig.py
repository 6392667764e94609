from __future__ import annotations

"""
Type-string parsing

Turns ABI parameter objects (`{"name", "type", "internalType", "components"}`)
and bare type strings into `TypeRef` trees.

Accepted forms:
  - "uint256", "int8", "uint" / "int" (⇒ 256 bits)
  - "address", "bool", "string", "bytes", "bytes1".."bytes32"
  - "tuple" with a `components` list
  - inline tuples "(uint256,(address,bool)[])" as used in human-readable ABIs
  - any of the above followed by array suffixes "[]" / "[N]" (left to right,
    innermost first: "uint8[2][]" is a dynamic array of uint8[2])

Anything else raises `MalformedTypeSignature` carrying the offending string.
"""

import re
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from ..errors import MalformedTypeSignature
from .model import Param, TypeRef

__all__ = ["parse_type", "parse_param", "parse_params", "split_top_level"]

_INT_RE = re.compile(r"^(u?int)(\d*)$")
_BYTES_RE = re.compile(r"^bytes(\d*)$")
_DIMS_RE = re.compile(r"^(\[\d*\])*$")
_DIM_RE = re.compile(r"\[(\d*)\]")


def parse_type(
    type_string: Any,
    components: Optional[Sequence[Any]] = None,
    label: Optional[str] = None,
) -> TypeRef:
    """Parse one ABI type string (plus tuple components, if any) into a TypeRef."""
    if not isinstance(type_string, str) or not type_string.strip():
        raise MalformedTypeSignature("type must be a non-empty string", type=repr(type_string))
    s = type_string.strip()

    base_str, dims = _split_dims(s)
    ref = _parse_base(base_str, s, components, label)
    for dim in dims:
        ref = TypeRef(kind="array", array_item=ref, array_len=dim)
    return ref


def parse_param(raw: Any, index: int = 0, *, allow_indexed: bool = False) -> Param:
    if not isinstance(raw, Mapping):
        raise MalformedTypeSignature(f"parameter #{index} must be an object", type=repr(raw))
    name = raw.get("name") or ""
    if not isinstance(name, str):
        raise MalformedTypeSignature(f"parameter #{index} name must be a string", type=repr(name))
    internal = raw.get("internalType") or ""
    label = internal if isinstance(internal, str) and internal else None
    try:
        typ = parse_type(raw.get("type"), raw.get("components"), label)
    except MalformedTypeSignature as e:
        raise e.with_context(param=name or f"#{index}")
    indexed = bool(raw.get("indexed")) if allow_indexed else False
    return Param(name=name, type=typ, internal_type=internal or "", indexed=indexed)


def parse_params(raw: Any, *, allow_indexed: bool = False) -> Tuple[Param, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise MalformedTypeSignature("parameter list must be an array", type=repr(raw))
    return tuple(parse_param(p, i, allow_indexed=allow_indexed) for i, p in enumerate(raw))


# ---- helpers ----

def _split_dims(s: str) -> Tuple[str, List[Optional[int]]]:
    """Split 'T[2][]' into ('T', [2, None]); validates bracket balance."""
    if s.startswith("("):
        close = _matching_paren(s)
        base, rest = s[: close + 1], s[close + 1:]
    else:
        cut = s.find("[")
        base, rest = (s, "") if cut < 0 else (s[:cut], s[cut:])
        if ")" in base or "]" in base:
            raise MalformedTypeSignature("unbalanced brackets in type", type=s)
    if not _DIMS_RE.match(rest):
        raise MalformedTypeSignature("malformed array suffix", type=s)
    dims: List[Optional[int]] = []
    for d in _DIM_RE.findall(rest):
        if d == "":
            dims.append(None)
            continue
        n = int(d)
        if n <= 0:
            raise MalformedTypeSignature("fixed array length must be positive", type=s)
        dims.append(n)
    return base, dims


def _matching_paren(s: str) -> int:
    depth = 0
    for i, ch in enumerate(s):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
            if depth < 0:
                break
    raise MalformedTypeSignature("unbalanced tuple brackets", type=s)


def split_top_level(inner: str) -> List[str]:
    """Split 'a,(b,c),d[]' on commas that are not nested in parentheses."""
    parts: List[str] = []
    depth = 0
    buf: List[str] = []
    for ch in inner:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise MalformedTypeSignature("unbalanced tuple brackets", type=inner)
        if ch == "," and depth == 0:
            parts.append("".join(buf).strip())
            buf = []
            continue
        buf.append(ch)
    if depth != 0:
        raise MalformedTypeSignature("unbalanced tuple brackets", type=inner)
    tail = "".join(buf).strip()
    if tail or parts:
        parts.append(tail)
    return parts


def _parse_base(
    base: str,
    full: str,
    components: Optional[Sequence[Any]],
    label: Optional[str],
) -> TypeRef:
    if base.startswith("("):
        pieces = split_top_level(base[1:-1])
        if any(p == "" for p in pieces):
            raise MalformedTypeSignature("empty tuple component", type=full)
        comps = tuple(Param(name="", type=parse_type(p)) for p in pieces)
        return TypeRef(kind="tuple", components=comps, label=label)

    low = base.lower()
    if low == "tuple":
        if components is None:
            raise MalformedTypeSignature("'tuple' type requires components", type=full)
        return TypeRef(kind="tuple", components=parse_params(components), label=label)

    um = _INT_RE.match(low)
    if um:
        kind = "uint" if um.group(1) == "uint" else "int"
        bits = int(um.group(2)) if um.group(2) else 256
        if bits < 8 or bits > 256 or bits % 8 != 0:
            raise MalformedTypeSignature(f"invalid integer width {bits}", type=full)
        return TypeRef(kind=kind, bits=bits)

    bm = _BYTES_RE.match(low)
    if bm:
        if not bm.group(1):
            return TypeRef(kind="bytes")
        n = int(bm.group(1))
        if n < 1 or n > 32:
            raise MalformedTypeSignature(f"invalid bytesN width {n}", type=full)
        return TypeRef(kind="bytes", size=n)

    if low in ("bool", "address", "string"):
        return TypeRef(kind=low)

    raise MalformedTypeSignature("unknown type", type=full)
