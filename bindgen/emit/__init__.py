"""
Binding emitters
================

An emitter renders one `ResolvedBundle` into target-language source text. The
pipeline hands it types that are already deduplicated and topologically
sorted, and entries that are already reconciled; an emitter must never redo
either step, it only renders.

Built-in emitters:
- ``typescript``: struct type aliases + one ``export const fooAbi = [...] as const``
  per contract + a bindings table
- ``python``: frozen dataclasses for structs + ABI constants + a bindings table
- ``json``: the resolved model as canonical JSON

Additional emitters can be registered with ``register_emitter``.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Dict, List, Protocol, Union, runtime_checkable

from ..common.model import ResolvedBundle
from ..errors import ConfigError

__all__ = [
    "BindingEmitter",
    "register_emitter",
    "get_emitter",
    "emitter_for_path",
    "available_emitters",
]


@runtime_checkable
class BindingEmitter(Protocol):
    name: str
    extension: str

    def render(self, bundle: ResolvedBundle) -> str:
        ...


_EMITTERS: Dict[str, BindingEmitter] = {}


def register_emitter(emitter: BindingEmitter, *, replace: bool = False) -> None:
    if not isinstance(emitter, BindingEmitter):
        raise TypeError(f"{emitter!r} does not implement BindingEmitter")
    if emitter.name in _EMITTERS and not replace:
        raise ConfigError("emitter already registered", emitter=emitter.name)
    _EMITTERS[emitter.name] = emitter


def get_emitter(name: str) -> BindingEmitter:
    try:
        return _EMITTERS[name]
    except KeyError:
        raise ConfigError(
            f"unknown emitter (available: {', '.join(available_emitters())})", emitter=name
        ) from None


def emitter_for_path(path: Union[str, PurePath]) -> BindingEmitter:
    """Pick an emitter from the output file extension ('.ts', '.py', '.json')."""
    suffix = PurePath(str(path)).suffix.lower()
    for emitter in _EMITTERS.values():
        if emitter.extension == suffix:
            return emitter
    raise ConfigError("no emitter for output extension; set 'emitter' explicitly", out=str(path))


def available_emitters() -> List[str]:
    return sorted(_EMITTERS)


def _register_builtins() -> None:
    from .json_model import JsonEmitter
    from .python import PythonEmitter
    from .typescript import TypeScriptEmitter

    for emitter in (TypeScriptEmitter(), PythonEmitter(), JsonEmitter()):
        register_emitter(emitter, replace=True)


_register_builtins()
