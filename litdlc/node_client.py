# litdlc/node_client.py
"""
Lit Node RPC Client

Talks JSON-RPC to a lit node's one-shot HTTP endpoint:

  POST http://<host>:<port>/oneoff
  {"method": "LitRPC.<Name>", "params": [{...}], "id": n}

Every call is a blocking request/response. Transport problems raise
RpcTransportError, errors reported by the node raise RpcRemoteError.
"""

import itertools
import logging
from typing import List, Optional

import requests

from litdlc.contracts import (
    PUBKEY_BYTES,
    SIG_BYTES,
    Contract,
    Oracle,
    decode_bytes,
    encode_fixed,
)
from litdlc.errors import RpcRemoteError, RpcTransportError

log = logging.getLogger("litdlc.rpc")

RPC_PATH = "/oneoff"
RPC_TIMEOUT = 30


class NodeClient:
    def __init__(self, host: str, port: int, session=None, timeout: float = RPC_TIMEOUT):
        self.host = host
        self.port = port
        self.url = f"http://{host}:{port}{RPC_PATH}"
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self._ids = itertools.count(1)

    def __repr__(self):
        return f"NodeClient({self.host}:{self.port})"

    def call(self, method: str, **params) -> dict:
        """Invoke LitRPC.<method> and return the decoded result object."""
        full_method = f"LitRPC.{method}"
        request_id = next(self._ids)
        payload = {"method": full_method, "params": [params], "id": request_id}
        log.debug(f"{self.host}:{self.port} -> {full_method} {params}")

        try:
            resp = self.session.post(self.url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as e:
            raise RpcTransportError(full_method, str(e)) from e
        except ValueError as e:
            raise RpcTransportError(full_method, f"invalid JSON reply: {e}") from e

        if not isinstance(body, dict):
            raise RpcTransportError(full_method, f"unexpected reply: {body!r}")
        if body.get("error"):
            raise RpcRemoteError(full_method, str(body["error"]))

        result = body.get("result")
        log.debug(f"{self.host}:{self.port} <- {full_method} {result}")
        if result is None:
            return {}
        if not isinstance(result, dict):
            raise RpcTransportError(full_method, f"malformed reply: result is {type(result).__name__}")
        return result

    def _decode(self, method: str, decoder):
        """Run a reply decoder, turning a malformed reply into an RPC error."""
        try:
            return decoder()
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise RpcTransportError(f"LitRPC.{method}", f"malformed reply: {e!r}") from e

    # -------------------------
    # Networking
    # -------------------------

    def listen(self, port: str):
        self.call("Listen", Port=port)

    def get_ln_address(self) -> str:
        reply = self.call("GetListeningPorts")
        adr = reply.get("Adr")
        if not adr:
            raise RpcRemoteError("LitRPC.GetListeningPorts", "node reported no address")
        return adr

    def connect(self, ln_address: str, host: str, port: int):
        self.call("Connect", LNAddr=f"{ln_address}@{host}:{port}")

    # -------------------------
    # Oracles
    # -------------------------

    def list_oracles(self) -> List[Oracle]:
        reply = self.call("ListOracles")
        return self._decode(
            "ListOracles", lambda: [Oracle.from_rpc(o) for o in reply.get("Oracles") or []]
        )

    def add_oracle(self, key_hex: str, name: str) -> Oracle:
        reply = self.call("AddOracle", Key=key_hex, Name=name)
        return self._decode("AddOracle", lambda: Oracle.from_rpc(reply["Oracle"]))

    # -------------------------
    # Contracts
    # -------------------------

    def new_contract(self) -> Contract:
        reply = self.call("NewContract")
        return self._decode("NewContract", lambda: Contract.from_rpc(reply["Contract"]))

    def set_contract_oracle(self, contract_idx: int, oracle_idx: int):
        self.call("SetContractOracle", CIdx=contract_idx, OIdx=oracle_idx)

    def set_contract_settlement_time(self, contract_idx: int, timestamp: int):
        self.call("SetContractSettlementTime", CIdx=contract_idx, Time=timestamp)

    def set_contract_coin_type(self, contract_idx: int, coin_type: int):
        self.call("SetContractCoinType", CIdx=contract_idx, CoinType=coin_type)

    def set_contract_rpoint(self, contract_idx: int, r_point: bytes):
        r_point = decode_bytes(r_point, PUBKEY_BYTES)
        self.call("SetContractRPoint", CIdx=contract_idx, RPoint=encode_fixed(r_point))

    def set_contract_funding(self, contract_idx: int, our_amount: int, their_amount: int):
        self.call(
            "SetContractFunding",
            CIdx=contract_idx,
            OurAmount=our_amount,
            TheirAmount=their_amount,
        )

    def set_contract_division(self, contract_idx: int, value_fully_ours: int, value_fully_theirs: int):
        self.call(
            "SetContractDivision",
            CIdx=contract_idx,
            ValueFullyOurs=value_fully_ours,
            ValueFullyTheirs=value_fully_theirs,
        )

    def offer_contract(self, contract_idx: int, peer_idx: int):
        self.call("OfferContract", CIdx=contract_idx, PeerIdx=peer_idx)

    def list_contracts(self) -> List[Contract]:
        reply = self.call("ListContracts")
        return self._decode(
            "ListContracts", lambda: [Contract.from_rpc(c) for c in reply.get("Contracts") or []]
        )

    def accept_contract(self, contract_idx: int):
        self.call("AcceptContract", CIdx=contract_idx)

    def get_contract(self, contract_idx: int) -> Contract:
        reply = self.call("GetContract", Idx=contract_idx)
        return self._decode("GetContract", lambda: Contract.from_rpc(reply["Contract"]))

    def settle_contract(self, contract_idx: int, oracle_value: int, oracle_sig: bytes) -> Optional[dict]:
        oracle_sig = decode_bytes(oracle_sig, SIG_BYTES)
        return self.call(
            "SettleContract",
            CIdx=contract_idx,
            OracleValue=oracle_value,
            OracleSig=encode_fixed(oracle_sig),
        )
