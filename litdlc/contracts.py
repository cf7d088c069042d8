# litdlc/contracts.py
"""
Contract and oracle records as lit reports them over RPC.

Status values and field names follow lit's lnutil.DlcContract so that a
reply can be decoded without a translation table on the node side.
"""

import base64
import binascii
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional

PUBKEY_BYTES = 33
SIG_BYTES = 32


class ContractStatus(IntEnum):
    DRAFT = 0
    ACTIVE = 1
    CLOSED = 2
    OFFERED_BY_ME = 3
    OFFERED_TO_ME = 4
    DECLINED = 5
    ACCEPTED = 6
    ACKNOWLEDGED = 7
    ERROR = 8
    SIGNED = 9
    SETTLING = 10

    @property
    def settled(self):
        return self in (ContractStatus.SETTLING, ContractStatus.CLOSED)


def decode_bytes(value, size: Optional[int] = None) -> bytes:
    """Decode a byte field from a lit JSON reply.

    Go encodes [N]byte as an array of ints and []byte as base64. Strings are
    always read as base64; hex values come from config and oracles, see
    decode_hex.
    """
    if value is None:
        raw = b""
    elif isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, list):
        raw = bytes(value)
    elif isinstance(value, str):
        try:
            raw = base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise ValueError(f"not base64: {value!r}") from e
    else:
        raise ValueError(f"cannot decode bytes from {type(value).__name__}")

    return _check_size(raw, size)


def decode_hex(value, size: Optional[int] = None) -> bytes:
    """Decode a hex string, as used by config values and oracle APIs."""
    if isinstance(value, (bytes, bytearray)):
        return _check_size(bytes(value), size)
    if not isinstance(value, str):
        raise ValueError(f"cannot decode hex from {type(value).__name__}")
    try:
        raw = bytes.fromhex(value.strip())
    except ValueError as e:
        raise ValueError(f"not hex: {value!r}") from e
    return _check_size(raw, size)


def _check_size(raw: bytes, size: Optional[int]) -> bytes:
    if size is not None and len(raw) != size:
        raise ValueError(f"expected {size} bytes, got {len(raw)}")
    return raw


def encode_fixed(data: bytes) -> List[int]:
    """Encode bytes the way Go's encoding/json expects a [N]byte array."""
    return list(data)


@dataclass
class Oracle:
    idx: int
    pubkey: bytes
    name: str = ""

    @classmethod
    def from_rpc(cls, obj):
        return cls(
            idx=int(obj["Idx"]),
            pubkey=decode_bytes(obj.get("A")),
            name=obj.get("Name", ""),
        )


@dataclass
class Division:
    """Two-point payout curve.

    value_fully_ours: oracle value at/after which the offering side gets everything.
    value_fully_theirs: oracle value at/after which the counterparty gets everything.
    """

    value_fully_ours: int
    value_fully_theirs: int
    total: int = 0

    def __post_init__(self):
        if self.value_fully_ours == self.value_fully_theirs:
            raise ValueError("division thresholds must differ")

    def allocation(self, value: int) -> int:
        """Offering side's share of `total` for an attested value.

        Between the thresholds this is a floored linear interpolation, a local
        preview of the node's own rule.
        """
        ours, theirs = self.value_fully_ours, self.value_fully_theirs
        if ours > theirs:
            if value >= ours:
                return self.total
            if value <= theirs:
                return 0
            return self.total * (value - theirs) // (ours - theirs)

        if value <= ours:
            return self.total
        if value >= theirs:
            return 0
        return self.total * (theirs - value) // (theirs - ours)


@dataclass
class Contract:
    idx: int
    status: ContractStatus
    their_idx: int = 0
    peer_idx: int = 0
    coin_type: int = 0
    oracle_pubkey: bytes = b""
    r_point: bytes = b""
    settlement_time: int = 0
    our_funding: int = 0
    their_funding: int = 0
    division: List[dict] = field(default_factory=list)

    @classmethod
    def from_rpc(cls, obj):
        return cls(
            idx=int(obj["Idx"]),
            status=ContractStatus(int(obj.get("Status", 0))),
            their_idx=int(obj.get("TheirIdx", 0) or 0),
            peer_idx=int(obj.get("PeerIdx", 0) or 0),
            coin_type=int(obj.get("CoinType", 0) or 0),
            oracle_pubkey=decode_bytes(obj.get("OracleA")),
            r_point=decode_bytes(obj.get("OracleR")),
            settlement_time=int(obj.get("OracleTimestamp", 0) or 0),
            our_funding=int(obj.get("OurFundingAmount", 0) or 0),
            their_funding=int(obj.get("TheirFundingAmount", 0) or 0),
            division=list(obj.get("Division") or []),
        )
