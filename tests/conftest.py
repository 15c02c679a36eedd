"""
Pytest fixtures for admin console core tests.
"""

import os
import tempfile
from typing import AsyncIterator, List, Sequence

import pytest
import pytest_asyncio

from admincore.database import create_engine_and_sessions, init_db
from admincore.errors import AuditSinkUnavailable
from admincore.kernel.events.audit_logger import AuditLogger
from admincore.kernel.events.audit_types import AuditEntry, AuditFilter
from admincore.kernel.events.sinks import AuditSink
from admincore.kernel.identity.actor import Actor
from admincore.kernel.identity.jwt import JWTManager
from admincore.kernel.registry.manifest import DEFAULT_MANIFEST, parse_manifest
from admincore.kernel.registry.module_registry import ModuleRegistry
from admincore.plugins.builtin import build_default_catalog
from admincore.plugins.catalog import ModuleCatalog


class MemoryAuditSink(AuditSink):
    """In-memory sink that can be switched off to simulate an outage."""

    def __init__(self):
        self.entries: List[AuditEntry] = []
        self.available = True
        self.write_calls = 0

    async def write(self, entries: Sequence[AuditEntry]) -> None:
        self.write_calls += 1
        if not self.available:
            raise AuditSinkUnavailable("sink offline")
        self.entries.extend(entries)

    async def query(self, audit_filter: AuditFilter) -> AsyncIterator[AuditEntry]:
        remaining = audit_filter.limit
        ordered = sorted(self.entries, key=lambda e: e.timestamp, reverse=audit_filter.newest_first)
        for entry in ordered:
            if remaining is not None and remaining <= 0:
                return
            if audit_filter.matches(entry):
                yield entry
                if remaining is not None:
                    remaining -= 1


# A manifest with a module no stock role can reach except through "all"
TEST_MANIFEST = [
    {"id": "dashboard", "display_name": "Dashboard", "required_capability": None},
    {"id": "users-roles", "display_name": "Users & Roles", "required_capability": "users"},
    {"id": "polls-system", "display_name": "Polls System", "required_capability": "polls", "version": "2.1.0"},
    {"id": "analytics-logs", "display_name": "Analytics & Logs", "required_capability": "analytics"},
    {"id": "billing-module", "display_name": "Billing", "required_capability": "billing"},
    {"id": "security-audit", "display_name": "Security Audit", "required_capability": "all"},
]


@pytest.fixture
def memory_sink() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest.fixture
def audit(memory_sink: MemoryAuditSink) -> AuditLogger:
    """Audit logger without a background flusher; entries stay buffered until flushed."""
    return AuditLogger(memory_sink, capacity=100, retry_interval=0.01)


@pytest.fixture
def registry() -> ModuleRegistry:
    return ModuleRegistry.from_manifest(TEST_MANIFEST)


@pytest.fixture
def catalog() -> ModuleCatalog:
    return build_default_catalog(parse_manifest(TEST_MANIFEST))


@pytest.fixture
def default_registry() -> ModuleRegistry:
    return ModuleRegistry.from_manifest(DEFAULT_MANIFEST)


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin-1", role="admin")


@pytest.fixture
def moderator() -> Actor:
    return Actor(id="mod-1", role="moderator")


@pytest.fixture
def plain_user() -> Actor:
    return Actor(id="user-1", role="user")


@pytest.fixture
def jwt_manager() -> JWTManager:
    """Create a JWT manager for tests."""
    return JWTManager(
        secret_key="test-secret-key-for-testing-only",
        algorithm="HS256",
        access_token_expire_minutes=30,
    )


@pytest_asyncio.fixture
async def sqlite_db():
    """
    Temp-file SQLite database with the core tables.

    Yields (engine, session_maker). File-based so every connection sees
    the same database.
    """
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    engine, session_maker = create_engine_and_sessions(f"sqlite+aiosqlite:///{tmp.name}")
    await init_db(engine)
    try:
        yield engine, session_maker
    finally:
        await engine.dispose()
        for suffix in ("", "-wal", "-shm"):
            try:
                os.unlink(tmp.name + suffix)
            except OSError:
                pass
