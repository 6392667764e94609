"""
Binding generator: common model & type parsing
===============================================

This package exposes the *language-agnostic* model every stage of the
pipeline passes along and every emitter consumes.

Public surface:
- Model dataclasses: ``TypeRef``, ``Param``, ``AbiEntry``,
  ``ContractArtifact``, ``CanonicalType``, ``Bundle``, ``Conflict``,
  ``ReconciledEntry``, ``ResolvedBundle``, ``Diagnostic``.
- Type parsing: ``parse_type`` / ``parse_params``.

Implementations live in ``model.py`` and ``typesig.py`` respectively.
"""

from .model import (
    CONTRACT_SCOPED_KINDS,
    DECLARATION_DIVERGENCE,
    DEDUP_STATISTICS,
    ENTRY_KINDS,
    NAMING_CONFLICT_RESOLVED,
    AbiEntry,
    Bundle,
    CanonicalType,
    Conflict,
    ContractArtifact,
    Diagnostic,
    Param,
    ReconciledEntry,
    Resolution,
    ResolvedBundle,
    TypeRef,
)
from .typesig import parse_params, parse_type

__all__ = [
    # model
    "TypeRef",
    "Param",
    "AbiEntry",
    "ContractArtifact",
    "CanonicalType",
    "Bundle",
    "Conflict",
    "Resolution",
    "ReconciledEntry",
    "ResolvedBundle",
    "Diagnostic",
    "ENTRY_KINDS",
    "CONTRACT_SCOPED_KINDS",
    "NAMING_CONFLICT_RESOLVED",
    "DECLARATION_DIVERGENCE",
    "DEDUP_STATISTICS",
    # parsing
    "parse_type",
    "parse_params",
]

# Bumped when the resolved-model *output contract* changes in a way that
# could affect emitted bindings. Emitters embed this for reproducibility.
__version__ = "0.1.0"
