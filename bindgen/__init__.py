"""
bindgen
=======

Typed contract bindings from compiled ABI artifacts.

The core turns decoded artifacts into resolved, deduplicated bundles:

    from bindgen import Pipeline, load_config

    cfg = load_config("bindgen.yaml")
    result = Pipeline(cfg).run({"MultiWebAuthNValidatorV2": abi_v2, ...})
    for bundle in result.bundles:
        ...

Emitters (``bindgen.emit``) render a ``ResolvedBundle`` into source text; the
``bindgen`` command line wires discovery, generation and writing together.
"""

from .common.model import (
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
from .config import BindgenConfig, BundleSpec, ReconcilePolicy, load_config
from .emit import BindingEmitter, get_emitter, register_emitter
from .errors import (
    ArtifactNotFound,
    BindgenError,
    ConfigError,
    CyclicTypeDefinition,
    DuplicateAbiEntry,
    MalformedAbiEntry,
    MalformedTypeSignature,
    RejectedConflict,
    UnknownContractReference,
    UnknownEntryKind,
)
from .interner import TypeInterner
from .loader import load_artifact, load_artifacts
from .partition import partition
from .pipeline import Pipeline, RunResult, generate_bindings
from .reconcile import reconcile
from .version import __version__

__all__ = [
    "__version__",
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
    # stages
    "load_artifact",
    "load_artifacts",
    "TypeInterner",
    "partition",
    "reconcile",
    "Pipeline",
    "RunResult",
    "generate_bindings",
    # config
    "BindgenConfig",
    "BundleSpec",
    "ReconcilePolicy",
    "load_config",
    # emitters
    "BindingEmitter",
    "get_emitter",
    "register_emitter",
    # errors
    "BindgenError",
    "ConfigError",
    "ArtifactNotFound",
    "MalformedAbiEntry",
    "UnknownEntryKind",
    "MalformedTypeSignature",
    "DuplicateAbiEntry",
    "CyclicTypeDefinition",
    "UnknownContractReference",
    "RejectedConflict",
]
