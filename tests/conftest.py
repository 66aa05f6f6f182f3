"""Shared fixtures for the ffigen tests."""

import copy
from pathlib import Path

import pytest

from ffigen.config import GeneratorOptions
from ffigen.loader import ModelLoader

SAMPLES_DIR = Path(__file__).parent.parent / "samples"

# One module, one fallible function over a 64-byte credential returning a 1-byte scalar
SCENARIO = {
    "types": [
        {"name": "Credential", "kind": "buffer", "size": 64},
        {"name": "Bool8", "kind": "scalar", "size": 1},
    ],
    "modules": [
        {
            "name": "auth",
            "functions": [
                {
                    "name": "verifyCredential",
                    "params": [{"name": "credential", "type": "Credential"}],
                    "returns": "Bool8",
                    "fallible": True,
                },
            ],
        },
    ],
}

SCENARIO_IDL = """
buffer Credential[64];
scalar Bool8[1];

module auth {
    fallible verifyCredential(Credential credential) -> Bool8;
};
"""

# Exercises out parameters, enums, 8-byte scalars and infallible functions
MIXED = {
    "types": [
        {"name": "GroupMasterKey", "kind": "buffer", "size": 32, "module": "groups"},
        {"name": "GroupSecretParams", "kind": "buffer", "size": 289},
        {"name": "Counter", "kind": "scalar", "size": 8},
        {"name": "ReceiptLevel", "kind": "enum", "variants": ["Basic", "Premium"]},
    ],
    "modules": [
        {
            "name": "groups",
            "functions": [
                {
                    "name": "deriveSecretParams",
                    "params": [
                        {"name": "masterKey", "type": "GroupMasterKey"},
                        {"name": "level", "type": "ReceiptLevel"},
                        {"name": "secretParams", "type": "GroupSecretParams", "direction": "out"},
                    ],
                    "returns": "Counter",
                },
                {
                    "name": "getLevel",
                    "params": [{"name": "secretParams", "type": "GroupSecretParams"}],
                    "returns": "ReceiptLevel",
                    "fallible": True,
                },
                {
                    "name": "forget",
                    "params": [{"name": "masterKey", "type": "GroupMasterKey"}],
                },
            ],
        },
    ],
}


@pytest.fixture
def scenario_raw():
    return copy.deepcopy(SCENARIO)


@pytest.fixture
def scenario_model(scenario_raw):
    return ModelLoader(scenario_raw).build()


@pytest.fixture
def mixed_model():
    return ModelLoader(copy.deepcopy(MIXED)).build()


@pytest.fixture
def options():
    return GeneratorOptions()


@pytest.fixture
def sample_idl():
    return SAMPLES_DIR / "zkgroup.idl"


@pytest.fixture
def scenario_idl(tmp_path):
    path = tmp_path / "scenario.idl"
    path.write_text(SCENARIO_IDL)
    return path


def _read_tree(root: Path) -> dict[str, str]:
    """Every file under root, keyed by its relative posix path"""
    return {
        p.relative_to(root).as_posix(): p.read_text()
        for p in sorted(root.rglob("*")) if p.is_file()
    }


@pytest.fixture
def read_tree():
    return _read_tree
