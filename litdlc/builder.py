# litdlc/builder.py
"""
Contract builder.

Creates an empty draft on one node and configures it call by call. The
first failing call aborts the build; the half-configured draft stays on the
node.
"""

import logging

from litdlc.contracts import Contract

log = logging.getLogger("litdlc.builder")


def build_contract(node, oracle_idx: int, terms) -> Contract:
    # Create a new empty draft contract
    contract = node.new_contract()
    idx = contract.idx
    log.info(f"{node!r}: draft contract #{idx} created")

    node.set_contract_oracle(idx, oracle_idx)
    node.set_contract_settlement_time(idx, terms.settlement_time)
    node.set_contract_coin_type(idx, terms.coin_type)
    node.set_contract_rpoint(idx, terms.r_point)
    node.set_contract_funding(idx, terms.our_funding, terms.their_funding)

    # Everything to us at value_fully_ours, everything to them at value_fully_theirs
    node.set_contract_division(idx, terms.value_fully_ours, terms.value_fully_theirs)

    log.info(
        f"{node!r}: contract #{idx} configured "
        f"(oracle #{oracle_idx}, funding {terms.our_funding}/{terms.their_funding}, "
        f"division {terms.value_fully_ours}/{terms.value_fully_theirs})"
    )
    return contract
