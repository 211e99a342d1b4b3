"""Fixtures for API tests."""
import json

import pytest
from fastapi.testclient import TestClient

from nodebook.api.main import create_app
from nodebook.core.config import ConfigManager
from nodebook.core.manager import NodeManager
from nodebook.store.jsonl_store import NodeStore


@pytest.fixture
def data_dir(tmp_path):
    """Data directory the API starts with."""
    return tmp_path / "data"


@pytest.fixture
def config_manager(tmp_path, data_dir):
    """Config manager backed by a file in the temp directory."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"data_dir": str(data_dir), "auto_tag": False}), encoding="utf-8")
    return ConfigManager(path)


@pytest.fixture
def node_manager(data_dir):
    """Node manager without automatic tagging."""
    return NodeManager(NodeStore(data_dir / "nodes.jsonl", auto_tag=False))


@pytest.fixture
def client(config_manager, node_manager):
    """Create test client."""
    app = create_app(config_manager=config_manager, node_manager=node_manager)
    with TestClient(app) as client:
        yield client
