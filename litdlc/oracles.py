# litdlc/oracles.py
"""
Oracle registry adapter.

Oracle indices are local to each lit node, so this is run once per node:
look the key up, register it only when it is missing.
"""

import logging

from coincurve import PublicKey

from litdlc.contracts import PUBKEY_BYTES
from litdlc.errors import ConfigError

log = logging.getLogger("litdlc.oracles")

ORACLE_NAME = "Tutorial"


def validate_point(data: bytes, what: str = "public key") -> bytes:
    """Check that `data` is a 33-byte compressed secp256k1 point."""
    if len(data) != PUBKEY_BYTES:
        raise ConfigError(f"{what} must be {PUBKEY_BYTES} bytes, got {len(data)}")
    try:
        PublicKey(data)
    except ValueError as e:
        raise ConfigError(f"{what} is not a valid compressed secp256k1 point: {data.hex()}") from e
    return data


def find_oracle(oracles, pubkey: bytes):
    for oracle in oracles:
        if oracle.pubkey == pubkey:
            return oracle
    return None


def ensure_oracle(node, pubkey: bytes, name: str = ORACLE_NAME) -> int:
    """Return the node-local index of the oracle, registering it if absent.

    Not retried on failure: a blind second AddOracle could leave two records
    for one key.
    """
    oracle = find_oracle(node.list_oracles(), pubkey)
    if oracle is not None:
        log.info(f"{node!r}: oracle {pubkey.hex()[:16]}... already known as #{oracle.idx}")
        return oracle.idx

    oracle = node.add_oracle(pubkey.hex(), name)
    log.info(f"{node!r}: registered oracle {pubkey.hex()[:16]}... as #{oracle.idx}")
    return oracle.idx
