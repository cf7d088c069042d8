# litdlc/tutorial.py
"""
Lit DLC Tutorial — operator entry point

Runs a full contract between two lit nodes: connect, register the oracle,
draft, offer, accept, wait for activation, settle. Pauses once before
settlement so a block can be generated on regtest.

Usage:
  python3 -m litdlc.tutorial                          # lit nodes on :8001 and :8002
  python3 -m litdlc.tutorial --oracle-url URL         # key material from an oracle API
  python3 -m litdlc.tutorial --yes --activation-timeout 60

Environment: LIT1_HOST, LIT1_PORT, LIT2_HOST, LIT2_PORT, DLC_EXCHANGE_DELAY,
DLC_POLL_INTERVAL, DLC_ACTIVATION_TIMEOUT, DLC_ORACLE_URL. Flags win.
"""

import argparse
import logging
import sys

from litdlc.config import TutorialConfig
from litdlc.errors import DlcError, PhaseError
from litdlc.node_client import NodeClient
from litdlc.oracle_api import OracleApi, load_from_oracle
from litdlc.orchestrator import ContractLifecycle

log = logging.getLogger("litdlc")


def build_parser():
    parser = argparse.ArgumentParser(description="Run a DLC between two lit nodes")
    parser.add_argument("--lit1-host")
    parser.add_argument("--lit1-port", type=int)
    parser.add_argument("--lit2-host")
    parser.add_argument("--lit2-port", type=int)
    parser.add_argument("--oracle-url", help="Fetch pubkey, R-point and attestation from this oracle")
    parser.add_argument("--exchange-delay", type=float, help="Seconds to let the offer propagate (default: 2)")
    parser.add_argument("--poll-interval", type=float, help="Seconds between activation checks (default: 0.5)")
    parser.add_argument("--activation-timeout", type=float, help="Give up waiting for activation after N seconds")
    parser.add_argument("--yes", action="store_true", help="Do not wait for enter before settling")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log RPC traffic")
    return parser


def load_config(args) -> TutorialConfig:
    cfg = TutorialConfig.from_env().with_overrides(
        lit1_host=args.lit1_host,
        lit1_port=args.lit1_port,
        lit2_host=args.lit2_host,
        lit2_port=args.lit2_port,
        oracle_url=args.oracle_url,
        exchange_delay=args.exchange_delay,
        poll_interval=args.poll_interval,
        activation_timeout=args.activation_timeout,
    )
    if cfg.oracle_url:
        print(f"Fetching oracle data from {cfg.oracle_url}...")
        cfg = load_from_oracle(cfg, OracleApi(cfg.oracle_url))
    return cfg


def wait_for_enter():
    input()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )

    try:
        cfg = load_config(args)
        lit1 = NodeClient(cfg.lit1_host, cfg.lit1_port)
        lit2 = NodeClient(cfg.lit2_host, cfg.lit2_port)
        lifecycle = ContractLifecycle(
            cfg,
            lit1,
            lit2,
            confirm=None if args.yes else wait_for_enter,
        )
        result = lifecycle.run()
    except PhaseError as e:
        log.error(f"aborted in phase {e.phase}: {e.cause}")
        print(f"\n✗ Failed while entering phase '{e.phase}': {e.cause}")
        return 1
    except DlcError as e:
        log.error(str(e))
        print(f"\n✗ {e}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130

    status = result.final_status.name if result.final_status is not None else "unknown"
    print(f"  Final status of contract #{result.contract_idx}: {status}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
