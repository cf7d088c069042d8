"""
Tests for the oracle REST API client
"""
from unittest.mock import Mock

import pytest
import requests

from litdlc.config import ORACLE_PUBKEY, ORACLE_SIG, R_POINT, TutorialConfig
from litdlc.errors import ConfigError, OracleApiError
from litdlc.oracle_api import OracleApi, load_from_oracle


def json_reply(data):
    resp = Mock()
    resp.json.return_value = data
    return resp


@pytest.fixture
def session():
    routes = {
        "https://oracle.example/api/pubkey": {"A": ORACLE_PUBKEY},
        "https://oracle.example/api/rpoint/1/1528848000": {"R": R_POINT},
        f"https://oracle.example/api/publication/{R_POINT}": {"value": 15161, "signature": ORACLE_SIG},
    }
    session = Mock()
    session.get.side_effect = lambda url, timeout: json_reply(routes[url])
    return session


@pytest.fixture
def api(session):
    return OracleApi("https://oracle.example/", session=session)


def test_pubkey(api):
    assert api.pubkey().hex() == ORACLE_PUBKEY


def test_rpoint(api):
    assert api.rpoint(1, 1528848000).hex() == R_POINT


def test_publication(api):
    att = api.publication(bytes.fromhex(R_POINT))
    assert att.value == 15161
    assert att.signature.hex() == ORACLE_SIG


def test_load_from_oracle_replaces_key_material(api):
    cfg = TutorialConfig.default().with_overrides(oracle_pubkey=b"\x02" * 33)
    loaded = load_from_oracle(cfg, api)

    assert loaded.oracle_pubkey.hex() == ORACLE_PUBKEY
    assert loaded.terms.r_point.hex() == R_POINT
    assert loaded.terms.settlement_time == cfg.terms.settlement_time
    assert loaded.attestation.value == 15161
    # input config untouched
    assert cfg.oracle_pubkey == b"\x02" * 33


def test_missing_field():
    session = Mock()
    session.get.return_value = json_reply({"B": "..."})
    with pytest.raises(OracleApiError, match="missing 'A'"):
        OracleApi("https://oracle.example", session=session).pubkey()


def test_unpublished_attestation():
    session = Mock()
    resp = Mock()
    resp.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
    session.get.return_value = resp

    with pytest.raises(OracleApiError, match="404"):
        OracleApi("https://oracle.example", session=session).publication(bytes.fromhex(R_POINT))


def test_invalid_key_from_oracle():
    session = Mock()
    session.get.return_value = json_reply({"A": "05" + ORACLE_PUBKEY[2:]})
    with pytest.raises(ConfigError):
        OracleApi("https://oracle.example", session=session).pubkey()
