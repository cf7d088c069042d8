"""
Tests for the JSON-RPC node client wire format
"""
from unittest.mock import Mock

import pytest
import requests

from litdlc.config import ORACLE_SIG, R_POINT
from litdlc.contracts import ContractStatus
from litdlc.errors import RpcRemoteError, RpcTransportError
from litdlc.node_client import NodeClient


def reply(result=None, error=None, request_id=1):
    resp = Mock()
    resp.json.return_value = {"id": request_id, "result": result, "error": error}
    return resp


@pytest.fixture
def session():
    session = Mock()
    session.post.return_value = reply({})
    return session


@pytest.fixture
def client(session):
    return NodeClient("localhost", 8001, session=session)


def sent(session):
    args, kwargs = session.post.call_args
    return args[0], kwargs["json"]


class TestRequests:
    def test_listen(self, client, session):
        client.listen(":2448")

        url, payload = sent(session)
        assert url == "http://localhost:8001/oneoff"
        assert payload["method"] == "LitRPC.Listen"
        assert payload["params"] == [{"Port": ":2448"}]
        assert session.post.call_args[1]["timeout"] == 30

    def test_request_ids_increase(self, client, session):
        client.listen(":1")
        first = sent(session)[1]["id"]
        client.listen(":2")
        assert sent(session)[1]["id"] == first + 1

    def test_connect_builds_ln_address(self, client, session):
        client.connect("ln1abc", "localhost", 2449)
        assert sent(session)[1]["params"] == [{"LNAddr": "ln1abc@localhost:2449"}]

    def test_rpoint_sent_as_byte_array(self, client, session):
        client.set_contract_rpoint(1, bytes.fromhex(R_POINT))

        params = sent(session)[1]["params"][0]
        assert params["CIdx"] == 1
        assert params["RPoint"] == list(bytes.fromhex(R_POINT))
        assert len(params["RPoint"]) == 33

    def test_settle_sends_signature_array(self, client, session):
        client.settle_contract(4, 15161, bytes.fromhex(ORACLE_SIG))

        _, payload = sent(session)
        assert payload["method"] == "LitRPC.SettleContract"
        params = payload["params"][0]
        assert params["CIdx"] == 4
        assert params["OracleValue"] == 15161
        assert params["OracleSig"] == list(bytes.fromhex(ORACLE_SIG))

    def test_settle_rejects_short_signature_locally(self, client, session):
        with pytest.raises(ValueError):
            client.settle_contract(4, 15161, b"\x00" * 31)
        session.post.assert_not_called()


class TestReplies:
    def test_ln_address(self, client, session):
        session.post.return_value = reply({"LisIpPorts": [":2449"], "Adr": "ln1xyz"})
        assert client.get_ln_address() == "ln1xyz"

    def test_missing_ln_address(self, client, session):
        session.post.return_value = reply({"LisIpPorts": []})
        with pytest.raises(RpcRemoteError):
            client.get_ln_address()

    def test_list_oracles(self, client, session):
        key = list(range(33))
        session.post.return_value = reply({"Oracles": [{"Idx": 1, "A": key, "Name": "Tutorial"}]})

        oracles = client.list_oracles()
        assert len(oracles) == 1
        assert oracles[0].pubkey == bytes(key)

    def test_list_oracles_null(self, client, session):
        session.post.return_value = reply({"Oracles": None})
        assert client.list_oracles() == []

    def test_get_contract(self, client, session):
        session.post.return_value = reply({"Contract": {"Idx": 2, "Status": 1}})

        contract = client.get_contract(2)
        assert contract.idx == 2
        assert contract.status is ContractStatus.ACTIVE
        assert sent(session)[1]["params"] == [{"Idx": 2}]


class TestErrors:
    def test_remote_error(self, client, session):
        session.post.return_value = reply(error="contract 9 not found")

        with pytest.raises(RpcRemoteError) as exc:
            client.get_contract(9)
        assert exc.value.method == "LitRPC.GetContract"
        assert "contract 9 not found" in str(exc.value)

    def test_connection_refused(self, client, session):
        session.post.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(RpcTransportError, match="connection refused"):
            client.list_contracts()

    def test_http_error(self, client, session):
        resp = Mock()
        resp.raise_for_status.side_effect = requests.HTTPError("502 Bad Gateway")
        session.post.return_value = resp

        with pytest.raises(RpcTransportError, match="502"):
            client.list_contracts()

    def test_invalid_json(self, client, session):
        resp = Mock()
        resp.json.side_effect = ValueError("Expecting value")
        session.post.return_value = resp

        with pytest.raises(RpcTransportError, match="invalid JSON"):
            client.list_contracts()

    def test_unknown_status_is_malformed_reply(self, client, session):
        session.post.return_value = reply({"Contract": {"Idx": 1, "Status": 42}})

        with pytest.raises(RpcTransportError, match="malformed reply") as exc:
            client.new_contract()
        assert exc.value.method == "LitRPC.NewContract"

    def test_missing_key_is_malformed_reply(self, client, session):
        session.post.return_value = reply({"Success": True})

        with pytest.raises(RpcTransportError, match="malformed reply"):
            client.add_oracle("03" + "00" * 32, "Tutorial")

    def test_bad_byte_field_is_malformed_reply(self, client, session):
        session.post.return_value = reply({"Contracts": [{"Idx": 1, "Status": 0, "OracleR": "??"}]})

        with pytest.raises(RpcTransportError, match="malformed reply"):
            client.list_contracts()

    def test_non_object_result(self, client, session):
        session.post.return_value = reply(["not", "an", "object"])

        with pytest.raises(RpcTransportError, match="malformed reply"):
            client.get_contract(1)

    def test_non_object_reply(self, client, session):
        resp = Mock()
        resp.json.return_value = ["not", "rpc"]
        session.post.return_value = resp

        with pytest.raises(RpcTransportError):
            client.list_contracts()
