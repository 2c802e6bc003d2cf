"""
Pytest fixtures for bridge tests.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Add project root to path for stdio_bridge imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Keep tests away from a real /data volume or ~/.stdio-bridge
os.environ["BRIDGE_DATA_PATH"] = tempfile.mkdtemp(prefix="stdio_bridge_test_")

FAKE_SERVER = Path(__file__).parent / "fixtures" / "fake_rpc_server.py"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_server_command() -> list[str]:
    """argv running the fake framed JSON-RPC server."""
    return [sys.executable, "-u", str(FAKE_SERVER)]


@pytest.fixture
def bridge_settings(temp_dir: Path):
    """Minimal valid settings with short timeouts."""
    from stdio_bridge.configs import BridgeSettings

    return BridgeSettings(
        bridge_token="test-secret",
        public_hostname="bridge.test",
        credential_dir=temp_dir / ".mcp-auth",
        request_timeout=5,
    )
