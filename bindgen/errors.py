"""
Typed error classes for the binding generator.

Every fatal condition the pipeline can hit is a subclass of ``BindgenError``
so callers can catch a specific failure mode while still being able to catch
the base class. Errors carry a short machine-readable ``code`` and a
``context`` mapping (contract, entry, signature, bundle, ...) that locates the
offending input.

Non-fatal findings are *not* exceptions; see ``bindgen.common.model.Diagnostic``.
"""

from __future__ import annotations

from typing import Any, Dict

__all__ = [
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


class BindgenError(Exception):
    """Base class for all generator errors."""

    code: str = "bindgen_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    def with_context(self, **context: Any) -> "BindgenError":
        """Attach extra location info without overwriting what is already set."""
        for k, v in context.items():
            if v is not None:
                self.context.setdefault(k, v)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        where = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} [{where}]"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": dict(self.context),
        }


class ConfigError(BindgenError):
    """Invalid configuration file, environment value or bundle descriptor."""

    code = "config_error"


class ArtifactNotFound(BindgenError):
    """A compiled artifact file could not be located or decoded."""

    code = "artifact_not_found"


class MalformedAbiEntry(BindgenError):
    """An ABI entry does not have the standard ABI JSON shape."""

    code = "malformed_abi_entry"


class UnknownEntryKind(MalformedAbiEntry):
    """An ABI entry carries an unrecognized ``type`` tag."""

    code = "unknown_entry_kind"


class MalformedTypeSignature(BindgenError):
    """A parameter type string could not be parsed."""

    code = "malformed_type_signature"


class DuplicateAbiEntry(BindgenError):
    """Two entries of one artifact share kind, name and input signature."""

    code = "duplicate_abi_entry"


class CyclicTypeDefinition(BindgenError):
    """A composite type contains itself by value."""

    code = "cyclic_type_definition"


class UnknownContractReference(BindgenError):
    """A bundle lists a contract that was never loaded."""

    code = "unknown_contract_reference"

    def __init__(self, bundle: str, contract: str) -> None:
        super().__init__(
            f"bundle {bundle!r} references unknown contract {contract!r}",
            bundle=bundle,
            contract=contract,
        )
        self.bundle = bundle
        self.contract = contract


class RejectedConflict(BindgenError):
    """A naming conflict the active policy refuses to resolve."""

    code = "rejected_conflict"
