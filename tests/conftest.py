"""
Shared fixtures.

No real API calls in tests: Gemini models are replaced by fakes that
return canned answers (see tests.factories).
"""

from types import SimpleNamespace

import pytest

from moneygrowth.audit import AuditLogger
from moneygrowth.config import GeminiSettings
from moneygrowth.orchestrator import StateFlow
from moneygrowth.services.storage import InMemoryAuditStorage, InMemoryStateStorage
from moneygrowth.store import FinanceStore


@pytest.fixture
def store():
    """A fresh store with the single default user."""
    return FinanceStore()


@pytest.fixture
def family(store):
    """Two users in one group; the view is still the first user."""
    ana = store.users[0]
    luis = store.add_user("Luis")
    group = store.add_group("Casa", [ana.id, luis.id])
    return SimpleNamespace(store=store, ana=ana, luis=luis, group=group)


@pytest.fixture
def unconfigured_settings():
    return GeminiSettings(api_key=None)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def state_storage():
    return InMemoryStateStorage()


@pytest.fixture
def state_flow(store, state_storage, audit_storage):
    return StateFlow(
        store=store,
        state_storage=state_storage,
        audit_logger=AuditLogger(audit_storage),
    )
