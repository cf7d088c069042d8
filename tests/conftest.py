"""
Pytest configuration and fixtures

Nodes are simulated lit nodes driven over their real JSON-RPC endpoint
through FastAPI's TestClient, so no network or regtest setup is needed.
"""
import pytest
from fastapi.testclient import TestClient

from litdlc.config import TutorialConfig
from litdlc.node_client import NodeClient
from litdlc.simnode import create_app, tutorial_network


def client_for(node, port):
    return NodeClient("localhost", port, session=TestClient(create_app(node)))


@pytest.fixture
def network():
    return tutorial_network()


@pytest.fixture
def lit1_node(network):
    return network.nodes["lit1"]


@pytest.fixture
def lit2_node(network):
    return network.nodes["lit2"]


@pytest.fixture
def lit1(lit1_node):
    return client_for(lit1_node, 8001)


@pytest.fixture
def lit2(lit2_node):
    return client_for(lit2_node, 8002)


@pytest.fixture
def config():
    """Tutorial config with every wait shortened to zero."""
    return TutorialConfig.default().with_overrides(
        exchange_delay=0,
        exchange_poll_interval=0,
        exchange_max_attempts=3,
        poll_interval=0,
        activation_max_attempts=50,
    )


@pytest.fixture
def make_client():
    return client_for
