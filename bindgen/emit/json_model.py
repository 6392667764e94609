"""Canonical JSON dump of a resolved bundle (handy for diffing and for other toolchains)."""

from __future__ import annotations

from ..common import __version__ as MODEL_VERSION
from ..common.model import ResolvedBundle
from ..utils import canonical_json_str


class JsonEmitter:
    name = "json"
    extension = ".json"

    def render(self, bundle: ResolvedBundle) -> str:
        doc = {"modelVersion": MODEL_VERSION, "bundle": bundle.to_dict()}
        return canonical_json_str(doc, indent=2) + "\n"
