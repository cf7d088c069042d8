# litdlc/config.py
"""
Tutorial configuration.

Defaults reproduce the lit DLC tutorial: two regtest nodes on localhost,
the tutorial oracle's key, R-point and its published attestation for
June 13, 2018 midnight UTC.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

from litdlc.contracts import PUBKEY_BYTES, SIG_BYTES, decode_hex
from litdlc.errors import ConfigError
from litdlc.oracles import ORACLE_NAME, validate_point

# -------------------------
# Defaults
# -------------------------

LIT1_HOST = "localhost"
LIT1_PORT = 8001
LIT2_HOST = "localhost"
LIT2_PORT = 8002

LIT1_LISTEN = ":2448"
LIT2_LISTEN = ":2449"

ORACLE_PUBKEY = "03c0d496ef6656fe102a689abc162ceeae166832d826f8750c94d797c92eedd465"
R_POINT = "027168bba1aaecce0500509df2ff5e35a4f55a26a8af7ceacd346045eceb1786ad"
ORACLE_VALUE = 15161
ORACLE_SIG = "9e349c50db6d07d5d8b12b7ada7f91d13af742653ff57ffb0b554170536faeac"

SETTLEMENT_TIME = 1528848000  # June 13, 2018 00:00 UTC
COIN_TYPE = 257               # bitcoin regtest
FUNDING_SATS = 100000000      # 1 BTC per side
VALUE_FULLY_OURS = 20000
VALUE_FULLY_THEIRS = 10000

PEER_IDX = 1
EXCHANGE_DELAY = 2.0
EXCHANGE_POLL_INTERVAL = 0.5
EXCHANGE_MAX_ATTEMPTS = 10
POLL_INTERVAL = 0.5


@dataclass
class ContractTerms:
    r_point: bytes
    settlement_time: int = SETTLEMENT_TIME
    coin_type: int = COIN_TYPE
    our_funding: int = FUNDING_SATS
    their_funding: int = FUNDING_SATS
    value_fully_ours: int = VALUE_FULLY_OURS
    value_fully_theirs: int = VALUE_FULLY_THEIRS


@dataclass
class Attestation:
    value: int
    signature: bytes


@dataclass
class TutorialConfig:
    oracle_pubkey: bytes
    terms: ContractTerms
    attestation: Attestation

    lit1_host: str = LIT1_HOST
    lit1_port: int = LIT1_PORT
    lit2_host: str = LIT2_HOST
    lit2_port: int = LIT2_PORT
    lit1_listen: str = LIT1_LISTEN
    lit2_listen: str = LIT2_LISTEN

    oracle_name: str = ORACLE_NAME
    peer_idx: int = PEER_IDX

    exchange_delay: float = EXCHANGE_DELAY
    exchange_poll_interval: float = EXCHANGE_POLL_INTERVAL
    exchange_max_attempts: int = EXCHANGE_MAX_ATTEMPTS

    poll_interval: float = POLL_INTERVAL
    activation_timeout: Optional[float] = None
    activation_max_attempts: Optional[int] = None

    oracle_url: Optional[str] = None

    @property
    def lit2_listen_port(self) -> int:
        """Port part of lit2's listen address (":2449" -> 2449)."""
        try:
            return int(self.lit2_listen.rsplit(":", 1)[-1])
        except ValueError:
            raise ConfigError(f"cannot read a port from listen address {self.lit2_listen!r}")

    def with_overrides(self, **changes):
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def default(cls):
        return cls(
            oracle_pubkey=parse_point(ORACLE_PUBKEY, "oracle public key"),
            terms=ContractTerms(r_point=parse_point(R_POINT, "R-point")),
            attestation=Attestation(value=ORACLE_VALUE, signature=parse_sig(ORACLE_SIG)),
        )

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        cfg = cls.default()

        try:
            return cfg.with_overrides(
                lit1_host=env.get("LIT1_HOST"),
                lit1_port=_int_or_none(env.get("LIT1_PORT")),
                lit2_host=env.get("LIT2_HOST"),
                lit2_port=_int_or_none(env.get("LIT2_PORT")),
                exchange_delay=_float_or_none(env.get("DLC_EXCHANGE_DELAY")),
                poll_interval=_float_or_none(env.get("DLC_POLL_INTERVAL")),
                activation_timeout=_float_or_none(env.get("DLC_ACTIVATION_TIMEOUT")),
                oracle_url=env.get("DLC_ORACLE_URL") or None,
            )
        except ValueError as e:
            raise ConfigError(f"bad environment setting: {e}") from e


def parse_point(hex_str: str, what: str) -> bytes:
    try:
        raw = decode_hex(hex_str, PUBKEY_BYTES)
    except ValueError as e:
        raise ConfigError(f"{what}: {e}") from e
    return validate_point(raw, what)


def parse_sig(hex_str: str) -> bytes:
    try:
        return decode_hex(hex_str, SIG_BYTES)
    except ValueError as e:
        raise ConfigError(f"oracle signature: {e}") from e


def _int_or_none(value):
    return int(value) if value not in (None, "") else None


def _float_or_none(value):
    return float(value) if value not in (None, "") else None
