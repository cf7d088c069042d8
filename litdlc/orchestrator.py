# litdlc/orchestrator.py
"""
DLC Lifecycle Orchestrator

Runs one contract through its whole life between two lit nodes:

  INIT -> CONNECTED -> ORACLE_READY -> DRAFTED -> OFFERED
       -> EXCHANGED -> ACCEPTED -> ACTIVE -> SETTLED

Phases run strictly in order. The first failing node call ends the run with
a PhaseError naming the phase; nothing is rolled back.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from litdlc.builder import build_contract
from litdlc.contracts import Contract, ContractStatus
from litdlc.errors import ActivationTimeout, DlcError, NoContractToAccept, PhaseError
from litdlc.oracles import ensure_oracle
from litdlc.peers import connect_peers
from litdlc.polling import sleep, wait_until

log = logging.getLogger("litdlc.orchestrator")


class Phase(str, Enum):
    INIT = "init"
    CONNECTED = "connected"
    ORACLE_READY = "oracle-ready"
    DRAFTED = "drafted"
    OFFERED = "offered"
    EXCHANGED = "exchanged"
    ACCEPTED = "accepted"
    ACTIVE = "active"
    SETTLED = "settled"


@dataclass
class OracleIndices:
    """Oracle index on each node. They need not match."""

    ours: int
    theirs: int


@dataclass
class LifecycleResult:
    ln_address: str
    oracle: OracleIndices
    contract_idx: int
    accepted_idx: int
    settle_reply: Optional[dict]
    final_status: Optional[ContractStatus]


def select_offer(contracts, their_idx: Optional[int] = None) -> Optional[Contract]:
    """Pick the contract to accept from a node's contract list.

    Only OFFERED_TO_ME contracts qualify. If `their_idx` is given and a
    contract reports which index it has on the offering node, the two must
    match; contracts that do not report it fall back to first match.
    """
    for contract in contracts:
        if contract.status != ContractStatus.OFFERED_TO_ME:
            continue
        if their_idx is None or not contract.their_idx or contract.their_idx == their_idx:
            return contract
    return None


class ContractLifecycle:
    def __init__(
        self,
        config,
        lit1,
        lit2,
        confirm: Optional[Callable[[], None]] = None,
        cancel: Optional[threading.Event] = None,
        out: Callable[[str], None] = print,
    ):
        self.config = config
        self.lit1 = lit1
        self.lit2 = lit2
        self.confirm = confirm or (lambda: None)
        self.cancel = cancel
        self.out = out
        self.phase = Phase.INIT

    def _advance(self, target: Phase, fn, *args):
        log.debug(f"{self.phase.value} -> {target.value}")
        try:
            result = fn(*args)
        except DlcError as e:
            raise PhaseError(target.value, e) from e
        self.phase = target
        log.info(f"phase: {target.value}")
        return result

    # -------------------------
    # Phases
    # -------------------------

    def connect(self) -> str:
        cfg = self.config
        return connect_peers(
            self.lit1,
            self.lit2,
            cfg.lit1_listen,
            cfg.lit2_listen,
            cfg.lit2_host,
            cfg.lit2_listen_port,
        )

    def ensure_oracles(self) -> OracleIndices:
        # lit2 never gets an index passed to it, but it must know the oracle
        # before the offer arrives or it cannot accept it.
        cfg = self.config
        ours = ensure_oracle(self.lit1, cfg.oracle_pubkey, cfg.oracle_name)
        theirs = ensure_oracle(self.lit2, cfg.oracle_pubkey, cfg.oracle_name)
        return OracleIndices(ours=ours, theirs=theirs)

    def offer(self, contract_idx: int):
        self.lit1.offer_contract(contract_idx, self.config.peer_idx)

    def wait_for_exchange(self, contract_idx: int) -> bool:
        """Give the offer time to reach lit2, then check that it did.

        Returns False if the offer never showed up; the accept phase then
        reports it.
        """
        cfg = self.config
        sleep(cfg.exchange_delay, self.cancel)
        if (cfg.exchange_max_attempts or 0) <= 0:
            return True

        def offer_visible():
            return select_offer(self.lit2.list_contracts(), contract_idx) is not None

        try:
            wait_until(
                offer_visible,
                cfg.exchange_poll_interval,
                max_attempts=cfg.exchange_max_attempts,
                cancel=self.cancel,
                what=f"offer of contract #{contract_idx}",
            )
        except ActivationTimeout as e:
            log.warning(str(e))
            return False
        return True

    def accept(self, contract_idx: int) -> Contract:
        offered = select_offer(self.lit2.list_contracts(), contract_idx)
        if offered is None:
            raise NoContractToAccept()
        self.lit2.accept_contract(offered.idx)
        return offered

    def wait_for_active(self, contract_idx: int) -> int:
        cfg = self.config

        def is_active():
            return self.lit1.get_contract(contract_idx).status == ContractStatus.ACTIVE

        return wait_until(
            is_active,
            cfg.poll_interval,
            max_attempts=cfg.activation_max_attempts,
            timeout=cfg.activation_timeout,
            cancel=self.cancel,
            what=f"contract #{contract_idx} active",
        )

    def settle(self, contract_idx: int):
        att = self.config.attestation
        reply = self.lit1.settle_contract(contract_idx, att.value, att.signature)
        return reply, self.final_status(contract_idx)

    def final_status(self, contract_idx: int) -> Optional[ContractStatus]:
        """Status read after settlement. SettleContract has already succeeded,
        so a failure here is reported but does not fail the run."""
        try:
            return self.lit1.get_contract(contract_idx).status
        except DlcError as e:
            log.warning(f"contract #{contract_idx} settled, but its status could not be read: {e}")
            return None

    # -------------------------
    # Full run
    # -------------------------

    def run(self) -> LifecycleResult:
        out = self.out

        out("Connecting nodes together...")
        ln_address = self._advance(Phase.CONNECTED, self.connect)

        out("Ensuring oracle is available...")
        oracle = self._advance(Phase.ORACLE_READY, self.ensure_oracles)
        out(f"  Oracle index: lit1 #{oracle.ours}, lit2 #{oracle.theirs}")

        out("Creating the contract...")
        contract = self._advance(
            Phase.DRAFTED, build_contract, self.lit1, oracle.ours, self.config.terms
        )
        out(f"  Contract index: #{contract.idx}")

        out("Offering the contract to the other peer...")
        self._advance(Phase.OFFERED, self.offer, contract.idx)

        out("Waiting for the contract to be exchanged...")
        self._advance(Phase.EXCHANGED, self.wait_for_exchange, contract.idx)

        out("Accepting the contract on the other peer...")
        accepted = self._advance(Phase.ACCEPTED, self.accept, contract.idx)

        out("Waiting for the contract to be activated...")
        self._advance(Phase.ACTIVE, self.wait_for_active, contract.idx)

        out("Contract active. Generate a block on regtest and press enter")
        self.confirm()

        out("Settling the contract...")
        reply, status = self._advance(Phase.SETTLED, self.settle, contract.idx)

        out(
            "Contract settled. Mine two blocks to ensure contract outputs are "
            "claimed back to the nodes' wallets.\n\nDone."
        )
        return LifecycleResult(
            ln_address=ln_address,
            oracle=oracle,
            contract_idx=contract.idx,
            accepted_idx=accepted.idx,
            settle_reply=reply,
            final_status=status,
        )
