"""
Deploys Starknet contracts through the Universal Deployer Contract.
This file contains monkeypatches used across the project. Advice for monkeypatch atomicity:
- Define a patching function
    - The function should import the places to be patched
    - The function can define the implementation to use for overwriting
- Call the patching function
"""

# pylint: disable=import-outside-toplevel

__version__ = "0.1.0"


def _patch_pedersen_hash():
    """
    Improves performance by substituting the default Python implementation of Pedersen hash
    with Software Mansion's Python wrapper of C++ implementation.
    Salt search calls the hash several times per tried salt, so this matters.
    """

    import starkware.crypto.signature.fast_pedersen_hash
    from crypto_cpp_py.cpp_bindings import cpp_hash as patched_pedersen_hash

    starkware.crypto.signature.fast_pedersen_hash.pedersen_hash = patched_pedersen_hash


_patch_pedersen_hash()
