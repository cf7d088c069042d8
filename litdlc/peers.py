# litdlc/peers.py
"""Link the two lit nodes so contract offers can travel between them."""

import logging

log = logging.getLogger("litdlc.peers")


def connect_peers(lit1, lit2, lit1_listen: str, lit2_listen: str, lit2_host: str, lit2_port: int) -> str:
    """Make both nodes listen, then connect lit1 to lit2.

    Returns lit2's LN address. Any failure propagates immediately; nothing
    after the failing call is attempted.
    """
    lit1.listen(lit1_listen)
    lit2.listen(lit2_listen)

    ln_address = lit2.get_ln_address()
    lit1.connect(ln_address, lit2_host, lit2_port)
    log.info(f"{lit1!r} connected to {ln_address}@{lit2_host}:{lit2_port}")
    return ln_address
