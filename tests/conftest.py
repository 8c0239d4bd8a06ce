import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("RELAY_PERMIT_TOKEN", "test-token")
os.environ.setdefault("RELAY_REDIS_URL", "")
os.environ.setdefault("RELAY_WEBHOOK_SECRET", "")
os.environ.setdefault("RELAY_LOG_JSON", "false")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from app.core.config import AppSettings, get_settings  # noqa: E402

get_settings.cache_clear()

from app.main import create_app  # noqa: E402
from app.relay.runtime import RelayRuntime  # noqa: E402
from app.relay.store import InMemoryEventStore  # noqa: E402
from app.services.policy_backend import (  # noqa: E402
    PolicyBackendUnavailableError,
    PrincipalAlreadyExistsError,
    PrincipalNotFoundError,
    RoleAlreadyAssignedError,
)


class FakePolicyBackend:
    """In-process stand-in for Permit with the same conflict semantics."""

    def __init__(self) -> None:
        self.available = True
        self.fail_assign = False
        self.unreachable_principals: Set[str] = set()
        self.principals: Set[str] = set()
        self.grants: Set[Tuple[str, str, str]] = set()
        self.calls: List[Tuple[str, ...]] = []
        self.closed = False

    def _check(self, principal: str) -> None:
        if not self.available or principal in self.unreachable_principals:
            raise PolicyBackendUnavailableError("Permit unreachable")

    async def create_principal(self, key: str) -> Dict[str, str]:
        self.calls.append(("create", key))
        self._check(key)
        if key in self.principals:
            raise PrincipalAlreadyExistsError(f"User '{key}' already exists", status_code=409)
        self.principals.add(key)
        return {"key": key}

    async def assign_role(self, principal: str, role: str, tenant: str) -> Dict[str, str]:
        self.calls.append(("assign", principal, role, tenant))
        self._check(principal)
        if self.fail_assign:
            raise PolicyBackendUnavailableError("role assignment timed out")
        grant = (principal, role, tenant)
        if grant in self.grants:
            raise RoleAlreadyAssignedError("already assigned", status_code=409)
        self.grants.add(grant)
        return {"user": principal, "role": role, "tenant": tenant}

    async def remove_principal(self, key: str) -> None:
        self.calls.append(("remove", key))
        self._check(key)
        if key not in self.principals:
            raise PrincipalNotFoundError(f"User '{key}' does not exist", status_code=404)
        self.principals.discard(key)
        self.grants = {grant for grant in self.grants if grant[0] != key}

    async def aclose(self) -> None:
        self.closed = True


def member_added(login: str = "alice", role: Optional[str] = "admin") -> Dict[str, object]:
    membership: Dict[str, object] = {"user": {"login": login}}
    if role is not None:
        membership["role"] = role
    return {"action": "member_added", "membership": membership}


def member_removed(login: str = "bob") -> Dict[str, object]:
    return {"action": "member_removed", "membership": {"user": {"login": login}}}


@pytest.fixture()
def backend() -> FakePolicyBackend:
    return FakePolicyBackend()


@pytest.fixture()
def store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture()
def settings() -> AppSettings:
    return AppSettings(_env_file=None)


@pytest.fixture()
def runtime(store: InMemoryEventStore, backend: FakePolicyBackend) -> RelayRuntime:
    return RelayRuntime.assemble(store=store, backend=backend, tenant="default")


@pytest.fixture()
def client(settings: AppSettings, runtime: RelayRuntime) -> TestClient:
    app = create_app(settings, runtime=runtime)
    with TestClient(app) as test_client:
        yield test_client
