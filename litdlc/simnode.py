# litdlc/simnode.py
"""
Simulated Lit Nodes
Lit DLC Tutorial v1

In-memory stand-ins for a pair of regtest lit nodes, serving the same
JSON-RPC surface the tutorial uses:

  POST /oneoff          — LitRPC.<Method> calls
  POST /sim/generate    — mine blocks (activates accepted contracts)
  GET  /health          — node status

Contracts follow lit's status flow: draft -> offered -> accepted ->
active (after the next block) -> closed (on settlement). Settlement only
succeeds with the signature published for the contract's R-point and value.

Usage:
  python3 -m litdlc.simnode                       # nodes on :8001 and :8002
  python3 -m litdlc.simnode --auto-mine 4         # mine every 4th GetContract
"""

import argparse
import hashlib
import logging
import threading
from typing import Dict, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
import uvicorn

from litdlc import config as defaults
from litdlc.contracts import PUBKEY_BYTES, SIG_BYTES, ContractStatus, Division, decode_bytes, decode_hex

log = logging.getLogger("litdlc.simnode")

MAX_ORACLE_VALUE = 99999  # five decimal digits
EMPTY_POINT = [0] * PUBKEY_BYTES


class SimError(Exception):
    pass


class SimNetwork:
    """A regtest chain shared by several simulated nodes."""

    def __init__(self, auto_mine_every: Optional[int] = None, max_oracle_value: int = MAX_ORACLE_VALUE):
        self.nodes: Dict[str, "SimNode"] = {}
        self.height = 0
        self.publications: Dict[Tuple[bytes, int], bytes] = {}
        self.auto_mine_every = auto_mine_every
        self.max_oracle_value = max_oracle_value
        self.lock = threading.RLock()

    def add_node(self, name: str) -> "SimNode":
        node = SimNode(name, self)
        self.nodes[name] = node
        return node

    def publish(self, r_point: bytes, value: int, signature: bytes):
        """Record what the oracle signed for an R-point."""
        self.publications[(bytes(r_point), int(value))] = bytes(signature)

    def generate(self, blocks: int = 1) -> int:
        with self.lock:
            for _ in range(blocks):
                self.height += 1
                for node in self.nodes.values():
                    node.confirm_funding()
            log.info(f"mined {blocks} block(s), height {self.height}")
            return self.height

    def find_by_address(self, adr: str) -> Optional["SimNode"]:
        for node in self.nodes.values():
            if node.ln_address == adr:
                return node
        return None


class SimNode:
    def __init__(self, name: str, network: SimNetwork):
        self.name = name
        self.network = network
        self.ln_address = "ln1" + hashlib.sha256(name.encode()).hexdigest()[:38]
        self.listening = []
        self.peers = []
        self.oracles = []
        self.contracts: Dict[int, dict] = {}
        self.links: Dict[int, Tuple["SimNode", int]] = {}
        self.terms: Dict[int, dict] = {}
        self.calls = []
        self.failures: Dict[str, str] = {}
        self._get_contract_calls = 0

    def __repr__(self):
        return f"SimNode({self.name})"

    def fail_next(self, method: str, message: str):
        """Make the next call to `method` return an RPC error."""
        self.failures[method] = message

    def dispatch(self, method: str, params: dict):
        name = method.split(".", 1)[-1]
        handler = getattr(self, f"rpc_{name}", None)
        self.calls.append(name)
        if handler is None:
            raise SimError(f"rpc: can't find method {method}")
        if name in self.failures:
            raise SimError(self.failures.pop(name))
        with self.network.lock:
            return handler(params or {})

    # -------------------------
    # Helpers
    # -------------------------

    def _contract(self, idx) -> dict:
        contract = self.contracts.get(int(idx))
        if contract is None:
            raise SimError(f"contract {idx} not found")
        return contract

    def _draft(self, idx) -> dict:
        contract = self._contract(idx)
        if contract["Status"] != ContractStatus.DRAFT:
            raise SimError(f"contract {idx} is not a draft")
        return contract

    def _new_contract(self) -> dict:
        idx = len(self.contracts) + 1
        contract = {
            "Idx": idx,
            "TheirIdx": 0,
            "PeerIdx": 0,
            "CoinType": 0,
            "OracleA": list(EMPTY_POINT),
            "OracleR": list(EMPTY_POINT),
            "OracleTimestamp": 0,
            "OurFundingAmount": 0,
            "TheirFundingAmount": 0,
            "Division": [],
            "Status": int(ContractStatus.DRAFT),
        }
        self.contracts[idx] = contract
        self.terms[idx] = {}
        return contract

    def _set_status(self, idx: int, status: ContractStatus):
        self.contracts[idx]["Status"] = int(status)

    def _set_both(self, idx: int, status: ContractStatus):
        self._set_status(idx, status)
        peer, their_idx = self.links[idx]
        peer._set_status(their_idx, status)

    def _knows_oracle(self, pubkey: list) -> bool:
        return any(o["A"] == pubkey for o in self.oracles)

    def confirm_funding(self):
        for contract in self.contracts.values():
            if contract["Status"] == ContractStatus.ACCEPTED:
                contract["Status"] = int(ContractStatus.ACTIVE)

    # -------------------------
    # Networking
    # -------------------------

    def rpc_Listen(self, params):
        port = params.get("Port", "")
        for node in self.network.nodes.values():
            if port in node.listening:
                raise SimError(f"listen tcp {port}: bind: address already in use")
        self.listening.append(port)
        return {"LisIpPorts": list(self.listening)}

    def rpc_GetListeningPorts(self, params):
        return {"LisIpPorts": list(self.listening), "Adr": self.ln_address}

    def rpc_Connect(self, params):
        target = params.get("LNAddr", "")
        adr, _, hostport = target.partition("@")
        port = ":" + hostport.rsplit(":", 1)[-1] if hostport else ""
        peer = self.network.find_by_address(adr)
        if peer is None or peer is self:
            raise SimError(f"can't connect to {target}: unknown node")
        if port not in peer.listening:
            raise SimError(f"can't connect to {target}: connection refused")
        if peer not in self.peers:
            self.peers.append(peer)
        if self not in peer.peers:
            peer.peers.append(self)
        return {"Status": f"connected to peer {self.peers.index(peer) + 1}"}

    # -------------------------
    # Oracles
    # -------------------------

    def rpc_ListOracles(self, params):
        return {"Oracles": [dict(o) for o in self.oracles]}

    def rpc_AddOracle(self, params):
        try:
            pubkey = list(decode_hex(params.get("Key", ""), PUBKEY_BYTES))
        except ValueError as e:
            raise SimError(f"invalid oracle key: {e}") from e
        if self._knows_oracle(pubkey):
            raise SimError("oracle already exists")
        oracle = {"Idx": len(self.oracles) + 1, "A": pubkey, "Name": params.get("Name", ""), "Url": ""}
        self.oracles.append(oracle)
        return {"Oracle": dict(oracle)}

    # -------------------------
    # Contract drafting
    # -------------------------

    def rpc_NewContract(self, params):
        return {"Contract": dict(self._new_contract())}

    def rpc_SetContractOracle(self, params):
        contract = self._draft(params.get("CIdx"))
        oidx = int(params.get("OIdx", 0))
        if not 1 <= oidx <= len(self.oracles):
            raise SimError(f"oracle {oidx} not found")
        contract["OracleA"] = list(self.oracles[oidx - 1]["A"])
        return {"Success": True}

    def rpc_SetContractSettlementTime(self, params):
        contract = self._draft(params.get("CIdx"))
        contract["OracleTimestamp"] = int(params.get("Time", 0))
        return {"Success": True}

    def rpc_SetContractCoinType(self, params):
        contract = self._draft(params.get("CIdx"))
        contract["CoinType"] = int(params.get("CoinType", 0))
        return {"Success": True}

    def rpc_SetContractRPoint(self, params):
        contract = self._draft(params.get("CIdx"))
        try:
            contract["OracleR"] = list(decode_bytes(params.get("RPoint"), PUBKEY_BYTES))
        except ValueError as e:
            raise SimError(f"invalid R-point: {e}") from e
        return {"Success": True}

    def rpc_SetContractFunding(self, params):
        contract = self._draft(params.get("CIdx"))
        ours, theirs = int(params.get("OurAmount", 0)), int(params.get("TheirAmount", 0))
        if ours < 0 or theirs < 0:
            raise SimError("funding amounts must not be negative")
        contract["OurFundingAmount"] = ours
        contract["TheirFundingAmount"] = theirs
        return {"Success": True}

    def rpc_SetContractDivision(self, params):
        idx = int(params.get("CIdx", 0))
        contract = self._draft(idx)
        total = contract["OurFundingAmount"] + contract["TheirFundingAmount"]
        if total == 0:
            raise SimError("set contract funding before the division")
        try:
            division = Division(
                int(params.get("ValueFullyOurs", 0)),
                int(params.get("ValueFullyTheirs", 0)),
                total,
            )
        except ValueError as e:
            raise SimError(str(e)) from e
        self.terms[idx]["division"] = division
        contract["Division"] = [
            {"OracleValue": v, "ValueOurs": division.allocation(v)}
            for v in (division.value_fully_theirs, division.value_fully_ours)
        ]
        return {"Success": True}

    # -------------------------
    # Offer / accept
    # -------------------------

    def rpc_OfferContract(self, params):
        idx = int(params.get("CIdx", 0))
        contract = self._draft(idx)
        peer_idx = int(params.get("PeerIdx", 0))
        if not 1 <= peer_idx <= len(self.peers):
            raise SimError(f"peer {peer_idx} not connected")
        if contract["OracleA"] == EMPTY_POINT or contract["OracleR"] == EMPTY_POINT:
            raise SimError("contract has no oracle or R-point")
        if "division" not in self.terms[idx]:
            raise SimError("contract has no division")

        peer = self.peers[peer_idx - 1]
        mirrored = peer._new_contract()
        division = self.terms[idx]["division"]
        mirrored.update(
            TheirIdx=idx,
            PeerIdx=peer.peers.index(self) + 1,
            CoinType=contract["CoinType"],
            OracleA=list(contract["OracleA"]),
            OracleR=list(contract["OracleR"]),
            OracleTimestamp=contract["OracleTimestamp"],
            OurFundingAmount=contract["TheirFundingAmount"],
            TheirFundingAmount=contract["OurFundingAmount"],
            Status=int(ContractStatus.OFFERED_TO_ME),
        )
        peer.terms[mirrored["Idx"]]["division"] = Division(
            division.value_fully_theirs, division.value_fully_ours, division.total
        )

        contract["PeerIdx"] = peer_idx
        contract["Status"] = int(ContractStatus.OFFERED_BY_ME)
        self.links[idx] = (peer, mirrored["Idx"])
        peer.links[mirrored["Idx"]] = (self, idx)
        log.info(f"{self.name}: offered contract {idx} to {peer.name} (their #{mirrored['Idx']})")
        return {"Success": True}

    def rpc_ListContracts(self, params):
        return {"Contracts": [dict(c) for c in self.contracts.values()]}

    def rpc_AcceptContract(self, params):
        idx = int(params.get("CIdx", 0))
        contract = self._contract(idx)
        if contract["Status"] != ContractStatus.OFFERED_TO_ME:
            raise SimError(f"contract {idx} is not offered to me")
        if not self._knows_oracle(contract["OracleA"]):
            raise SimError("oracle of contract is not known on this node")
        self._set_both(idx, ContractStatus.ACCEPTED)
        return {"Success": True}

    def rpc_GetContract(self, params):
        contract = self._contract(params.get("Idx", 0))
        self._get_contract_calls += 1
        every = self.network.auto_mine_every
        if every and self._get_contract_calls % every == 0:
            self.network.generate(1)
        return {"Contract": dict(contract)}

    # -------------------------
    # Settlement
    # -------------------------

    def rpc_SettleContract(self, params):
        idx = int(params.get("CIdx", 0))
        contract = self._contract(idx)
        if contract["Status"] != ContractStatus.ACTIVE:
            raise SimError(f"contract {idx} is not active")

        value = int(params.get("OracleValue", -1))
        if not 0 <= value <= self.network.max_oracle_value:
            raise SimError(f"oracle value {value} out of range")
        try:
            sig = decode_bytes(params.get("OracleSig"), SIG_BYTES)
        except ValueError as e:
            raise SimError(f"invalid oracle signature: {e}") from e

        expected = self.network.publications.get((bytes(contract["OracleR"]), value))
        if expected is None or expected != sig:
            raise SimError("oracle signature does not match contract R-point and value")

        self._set_both(idx, ContractStatus.CLOSED)
        ours = self.terms[idx]["division"].allocation(value)
        settle_tx = hashlib.sha256(f"settle:{self.name}:{idx}:{value}".encode()).digest()
        claim_tx = hashlib.sha256(settle_tx).digest()
        log.info(f"{self.name}: settled contract {idx} at {value}, ours {ours}")
        return {"Success": True, "SettleTxHash": list(settle_tx), "ClaimTxHash": list(claim_tx)}


# -------------------------
# HTTP surface
# -------------------------

def create_app(node: SimNode) -> FastAPI:
    app = FastAPI(title=f"Simulated lit node {node.name}", version="v1")

    @app.post("/oneoff")
    async def oneoff(request: Request):
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse({"id": None, "result": None, "error": "invalid JSON"})
        if not isinstance(body, dict):
            return JSONResponse({"id": None, "result": None, "error": "expected a JSON-RPC object"})
        request_id = body.get("id")
        method = body.get("method", "")
        params = body.get("params") or [{}]
        # dispatch blocks on the network lock; keep it off the event loop
        try:
            result = await run_in_threadpool(node.dispatch, method, params[0])
        except SimError as e:
            log.info(f"{node.name}: {method} -> error: {e}")
            return JSONResponse({"id": request_id, "result": None, "error": str(e)})
        return JSONResponse({"id": request_id, "result": result, "error": None})

    @app.post("/sim/generate")
    def generate(blocks: int = 1):
        return {"height": node.network.generate(blocks)}

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "node": node.name,
            "ln_address": node.ln_address,
            "height": node.network.height,
            "contracts": len(node.contracts),
            "oracles": len(node.oracles),
        }

    return app


def tutorial_network(auto_mine_every: Optional[int] = None, names=("lit1", "lit2")):
    """Network with the tutorial oracle's attestation already published."""
    network = SimNetwork(auto_mine_every=auto_mine_every)
    for name in names:
        network.add_node(name)
    network.publish(
        bytes.fromhex(defaults.R_POINT),
        defaults.ORACLE_VALUE,
        bytes.fromhex(defaults.ORACLE_SIG),
    )
    return network


def main(argv=None):
    parser = argparse.ArgumentParser(description="Simulated lit nodes for the DLC tutorial")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument(
        "--ports",
        nargs=2,
        type=int,
        default=[defaults.LIT1_PORT, defaults.LIT2_PORT],
        help="RPC ports for lit1 and lit2 (default: 8001 8002)",
    )
    parser.add_argument(
        "--auto-mine",
        type=int,
        default=None,
        help="Mine a block every N GetContract calls (default: off)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )

    network = tutorial_network(auto_mine_every=args.auto_mine)
    servers = []
    for node, port in zip(network.nodes.values(), args.ports):
        print(f"Simulated lit node {node.name} on :{port}")
        print(f"  LN address: {node.ln_address}")
        servers.append(uvicorn.Server(uvicorn.Config(create_app(node), host=args.host, port=port)))

    for server in servers[:-1]:
        threading.Thread(target=server.run, daemon=True).start()
    servers[-1].run()


if __name__ == "__main__":
    main()
