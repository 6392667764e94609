from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from bindgen.interner import TypeInterner
from bindgen.loader import load_artifact


def _pubkey(name: str = "pubKey", internal: str = "struct WebAuthNPubKey") -> Dict[str, Any]:
    return {
        "name": name,
        "internalType": internal,
        "type": "tuple",
        "components": [
            {"name": "x", "internalType": "uint256", "type": "uint256"},
            {"name": "y", "internalType": "uint256", "type": "uint256"},
        ],
    }


VALIDATOR_V2_ABI: List[Dict[str, Any]] = [
    {
        "type": "constructor",
        "inputs": [{"name": "_p256Verifier", "internalType": "address", "type": "address"}],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "getPasskey",
        "inputs": [{"name": "_smartWallet", "internalType": "address", "type": "address"}],
        "outputs": [
            {"name": "", "internalType": "bytes32", "type": "bytes32"},
            _pubkey(""),
        ],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "isInitialized",
        "inputs": [{"name": "smartAccount", "internalType": "address", "type": "address"}],
        "outputs": [{"name": "", "internalType": "bool", "type": "bool"}],
        "stateMutability": "view",
    },
    {
        "type": "event",
        "name": "WebAuthnPublicKeyAdded",
        "inputs": [
            {"name": "smartAccount", "internalType": "address", "type": "address", "indexed": True},
            {"name": "authenticatorIdHash", "internalType": "bytes32", "type": "bytes32", "indexed": True},
            {"name": "x", "internalType": "uint256", "type": "uint256", "indexed": False},
            {"name": "y", "internalType": "uint256", "type": "uint256", "indexed": False},
        ],
        "anonymous": False,
    },
    {
        "type": "error",
        "name": "AlreadyInitialized",
        "inputs": [{"name": "smartAccount", "internalType": "address", "type": "address"}],
    },
]

VALIDATOR_V3_ABI: List[Dict[str, Any]] = [
    {"type": "constructor", "inputs": [], "stateMutability": "nonpayable"},
    {
        "type": "function",
        "name": "getPasskey",
        "inputs": [
            {"name": "_smartWallet", "internalType": "address", "type": "address"},
            {"name": "_authenticatorId", "internalType": "bytes32", "type": "bytes32"},
        ],
        "outputs": [
            {"name": "", "internalType": "bytes32", "type": "bytes32"},
            _pubkey(""),
        ],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getPasskey",
        "inputs": [{"name": "_smartWallet", "internalType": "address", "type": "address"}],
        "outputs": [
            {"name": "", "internalType": "bytes32", "type": "bytes32"},
            _pubkey(""),
        ],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "setRecovery",
        "inputs": [
            {
                "name": "config",
                "internalType": "struct RecoveryConfig",
                "type": "tuple",
                "components": [
                    {"name": "guardian", "internalType": "address", "type": "address"},
                    _pubkey("key"),
                ],
            }
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "event",
        "name": "WebAuthnPublicKeyAdded",
        "inputs": [
            {"name": "smartAccount", "internalType": "address", "type": "address", "indexed": True},
            {"name": "authenticatorIdHash", "internalType": "bytes32", "type": "bytes32", "indexed": True},
            {"name": "x", "internalType": "uint256", "type": "uint256", "indexed": False},
            {"name": "y", "internalType": "uint256", "type": "uint256", "indexed": False},
        ],
        "anonymous": False,
    },
    {
        "type": "event",
        "name": "WebAuthnPublicKeyRemoved",
        "inputs": [
            {"name": "smartAccount", "internalType": "address", "type": "address", "indexed": True},
            {"name": "authenticatorIdHash", "internalType": "bytes32", "type": "bytes32", "indexed": True},
        ],
        "anonymous": False,
    },
    {
        "type": "error",
        "name": "AlreadyInitialized",
        "inputs": [{"name": "smartAccount", "internalType": "address", "type": "address"}],
    },
]

# An ERC-4337 style contract; shares nothing with the validators except the
# point shape, which it declares as an unlabeled tuple.
PAYMASTER_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "validatePaymasterUserOp",
        "inputs": [
            {
                "name": "userOp",
                "internalType": "struct PackedUserOperation",
                "type": "tuple",
                "components": [
                    {"name": "sender", "internalType": "address", "type": "address"},
                    {"name": "nonce", "internalType": "uint256", "type": "uint256"},
                    {"name": "initCode", "internalType": "bytes", "type": "bytes"},
                    {"name": "callData", "internalType": "bytes", "type": "bytes"},
                    {"name": "accountGasLimits", "internalType": "bytes32", "type": "bytes32"},
                    {"name": "preVerificationGas", "internalType": "uint256", "type": "uint256"},
                    {"name": "gasFees", "internalType": "bytes32", "type": "bytes32"},
                    {"name": "paymasterAndData", "internalType": "bytes", "type": "bytes"},
                    {"name": "signature", "internalType": "bytes", "type": "bytes"},
                ],
            },
            {"name": "userOpHash", "internalType": "bytes32", "type": "bytes32"},
            {"name": "maxCost", "internalType": "uint256", "type": "uint256"},
        ],
        "outputs": [
            {"name": "context", "internalType": "bytes", "type": "bytes"},
            {"name": "validationData", "internalType": "uint256", "type": "uint256"},
        ],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "setSigningKey",
        "inputs": [
            {
                "name": "key",
                "type": "tuple",
                "components": [
                    {"name": "x", "type": "uint256"},
                    {"name": "y", "type": "uint256"},
                ],
            }
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "error",
        "name": "AlreadyInitialized",
        "inputs": [
            {"name": "smartAccount", "internalType": "address", "type": "address"},
            {"name": "owner", "internalType": "address", "type": "address"},
        ],
    },
    {"type": "receive", "stateMutability": "payable"},
]

CONTENT_REGISTRY_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "getMetadata",
        "inputs": [{"name": "_contentId", "internalType": "uint256", "type": "uint256"}],
        "outputs": [
            {
                "name": "",
                "internalType": "struct ContentRegistry.Metadata",
                "type": "tuple",
                "components": [
                    {"name": "contentType", "internalType": "bytes4", "type": "bytes4"},
                    {"name": "domainHash", "internalType": "bytes32", "type": "bytes32"},
                ],
            }
        ],
        "stateMutability": "view",
    },
    {
        "type": "event",
        "name": "ContentMinted",
        "inputs": [
            {"name": "id", "internalType": "uint256", "type": "uint256", "indexed": True},
            {"name": "domainHash", "internalType": "bytes32", "type": "bytes32", "indexed": False},
        ],
        "anonymous": False,
    },
]


@pytest.fixture()
def raw_artifacts() -> Dict[str, Any]:
    """Fresh copies, keyed by contract name, in a stable order."""
    return copy.deepcopy(
        {
            "MultiWebAuthNValidatorV2": VALIDATOR_V2_ABI,
            "MultiWebAuthNValidatorV3": VALIDATOR_V3_ABI,
            "InteractionPaymaster": PAYMASTER_ABI,
            "ContentRegistry": CONTENT_REGISTRY_ABI,
        }
    )


@pytest.fixture()
def interner() -> TypeInterner:
    return TypeInterner()


@pytest.fixture()
def loaded(raw_artifacts: Dict[str, Any], interner: TypeInterner):
    """Loaded and interned artifacts (what the reconciler expects)."""
    return {
        name: interner.resolve_artifact(load_artifact(name, raw))
        for name, raw in raw_artifacts.items()
    }


@pytest.fixture()
def artifacts_dir(tmp_path: Path, raw_artifacts: Dict[str, Any]) -> Path:
    """A foundry-style `out/` tree holding every fixture artifact."""
    root = tmp_path / "out"
    for name, abi in raw_artifacts.items():
        d = root / f"{name}.sol"
        d.mkdir(parents=True)
        (d / f"{name}.json").write_text(
            json.dumps({"abi": abi, "bytecode": {"object": "0x"}}), encoding="utf-8"
        )
    return root
