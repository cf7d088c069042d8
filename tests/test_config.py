"""
Tests for tutorial configuration
"""
import pytest

from litdlc.config import ORACLE_PUBKEY, TutorialConfig, parse_point, parse_sig
from litdlc.errors import ConfigError


def test_defaults_match_tutorial():
    cfg = TutorialConfig.default()

    assert cfg.oracle_pubkey.hex() == ORACLE_PUBKEY
    assert len(cfg.terms.r_point) == 33
    assert cfg.attestation.value == 15161
    assert len(cfg.attestation.signature) == 32
    assert cfg.terms.our_funding == cfg.terms.their_funding == 100000000
    assert (cfg.terms.value_fully_ours, cfg.terms.value_fully_theirs) == (20000, 10000)
    assert (cfg.lit1_port, cfg.lit2_port) == (8001, 8002)
    assert cfg.lit2_listen_port == 2449
    assert cfg.activation_timeout is None
    assert cfg.activation_max_attempts is None


def test_from_env_overrides():
    cfg = TutorialConfig.from_env({
        "LIT1_HOST": "node-a",
        "LIT2_PORT": "9002",
        "DLC_EXCHANGE_DELAY": "0.25",
        "DLC_ACTIVATION_TIMEOUT": "60",
        "DLC_ORACLE_URL": "",
    })

    assert cfg.lit1_host == "node-a"
    assert cfg.lit1_port == 8001
    assert cfg.lit2_port == 9002
    assert cfg.exchange_delay == 0.25
    assert cfg.activation_timeout == 60.0
    assert cfg.oracle_url is None


def test_from_env_bad_number():
    with pytest.raises(ConfigError, match="bad environment"):
        TutorialConfig.from_env({"LIT1_PORT": "eight-thousand"})


def test_with_overrides_ignores_none():
    cfg = TutorialConfig.default().with_overrides(lit1_host=None, poll_interval=2.0)
    assert cfg.lit1_host == "localhost"
    assert cfg.poll_interval == 2.0


def test_bad_listen_address():
    cfg = TutorialConfig.default().with_overrides(lit2_listen="localhost")
    with pytest.raises(ConfigError):
        cfg.lit2_listen_port


class TestParsing:
    def test_point_wrong_size(self):
        with pytest.raises(ConfigError, match="R-point"):
            parse_point("02abcd", "R-point")

    def test_point_not_hex(self):
        with pytest.raises(ConfigError):
            parse_point("zz" * 33, "oracle public key")

    def test_sig_wrong_size(self):
        with pytest.raises(ConfigError, match="signature"):
            parse_sig("00" * 31)

    def test_sig_whitespace_stripped(self):
        assert parse_sig("  " + "ab" * 32 + "\n") == bytes([0xAB]) * 32
