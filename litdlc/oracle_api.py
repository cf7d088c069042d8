# litdlc/oracle_api.py
"""
Oracle REST API client

Fetches the key material a contract needs from a running oracle instead of
hard-coding it:

  GET /api/pubkey                        -> {"A": <hex>}
  GET /api/rpoint/{datasource}/{ts}      -> {"R": <hex>}
  GET /api/publication/{R}               -> {"value": <int>, "signature": <hex>}

Signatures are passed through as opaque bytes; verifying them is the lit
node's job at settlement.
"""

import logging
from dataclasses import replace

import requests

from litdlc.config import Attestation, parse_point, parse_sig
from litdlc.errors import OracleApiError

log = logging.getLogger("litdlc.oracle_api")

TIMEOUT = 10
DATASOURCE_BTCUSD = 1


class OracleApi:
    def __init__(self, base_url: str, session=None, timeout: float = TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _get(self, path):
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            raise OracleApiError(f"GET {url} failed: {e}") from e
        except ValueError as e:
            raise OracleApiError(f"GET {url} returned invalid JSON: {e}") from e

    def pubkey(self) -> bytes:
        data = self._get("/api/pubkey")
        return parse_point(_field(data, "A"), "oracle public key")

    def rpoint(self, datasource: int, timestamp: int) -> bytes:
        data = self._get(f"/api/rpoint/{datasource}/{timestamp}")
        return parse_point(_field(data, "R"), "R-point")

    def publication(self, r_point: bytes) -> Attestation:
        """Value and signature the oracle published for an R-point.

        Raises OracleApiError until the oracle has published.
        """
        data = self._get(f"/api/publication/{r_point.hex()}")
        return Attestation(
            value=int(_field(data, "value")),
            signature=parse_sig(_field(data, "signature")),
        )


def _field(data, name):
    if not isinstance(data, dict) or name not in data:
        raise OracleApiError(f"oracle reply is missing '{name}': {data!r}")
    return data[name]


def load_from_oracle(config, api: OracleApi, datasource: int = DATASOURCE_BTCUSD):
    """Return a copy of `config` with key, R-point and attestation from the oracle."""
    pubkey = api.pubkey()
    r_point = api.rpoint(datasource, config.terms.settlement_time)
    attestation = api.publication(r_point)
    log.info(
        f"oracle {api.base_url}: pubkey {pubkey.hex()[:16]}..., "
        f"R {r_point.hex()[:16]}..., value {attestation.value}"
    )

    terms = replace(config.terms, r_point=r_point)
    return config.with_overrides(oracle_pubkey=pubkey, terms=terms, attestation=attestation)
