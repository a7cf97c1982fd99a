"""Shared pytest fixtures for Tripdesk tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from helpers import TEST_JWT_SECRET  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_gateway_client():
    """Reset the module-level gateway client between tests.

    The payments router caches its client on first use; a client left over
    from one test would otherwise leak into the next.
    """
    import tripdesk.api.routes.payments as payments_module

    payments_module._gateway_client = None
    yield
    payments_module._gateway_client = None


@pytest.fixture(autouse=True)
def _session_secret(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
