from __future__ import annotations

"""
Bundle partitioning

Groups loaded contracts into named output bundles following the configured
descriptors, preserving declaration order (which later decides tie-breaks in
reconciliation). A contract may be listed by several bundles; each bundle
gets its own `Bundle` and is reconciled on its own.
"""

import logging
from typing import Any, Iterable, List, Mapping, Union

from .common.model import Bundle, ContractArtifact
from .config import BundleSpec, coerce_bundle_specs
from .errors import ConfigError, UnknownContractReference

__all__ = ["partition", "partition_one"]

log = logging.getLogger(__name__)


def partition_one(all_contracts: Mapping[str, ContractArtifact], spec: BundleSpec) -> Bundle:
    """Resolve one bundle descriptor; raises UnknownContractReference on a missing name."""
    names: List[str] = []
    for name in spec.contracts:
        if name in names:
            log.warning("partition: bundle %s lists %s more than once; keeping the first", spec.name, name)
            continue
        if name not in all_contracts:
            raise UnknownContractReference(spec.name, name)
        names.append(name)
    return Bundle(
        name=spec.name,
        contract_names=tuple(names),
        contracts=tuple(all_contracts[n] for n in names),
    )


def partition(
    all_contracts: Mapping[str, ContractArtifact],
    bundle_spec: Iterable[Union[BundleSpec, Mapping[str, Any], tuple]],
) -> List[Bundle]:
    """
    Build every bundle in configuration order.

    `bundle_spec` items may be BundleSpec objects, descriptor mappings
    (`{"out": ..., "contracts": [...]}`) or `(bundle_name, [contract, ...])`
    pairs.
    """
    specs = coerce_bundle_specs(bundle_spec)
    seen = set()
    bundles = []
    for spec in specs:
        if spec.name in seen:
            raise ConfigError("duplicate bundle name", bundle=spec.name)
        seen.add(spec.name)
        bundles.append(partition_one(all_contracts, spec))
    log.debug("partition: %d bundles", len(bundles))
    return bundles
