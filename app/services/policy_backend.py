"""Permit.io client used to materialize and retract GitHub members."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol
from urllib.parse import quote

import httpx

from app.core.config import AppSettings

logger = logging.getLogger("app.services.policy_backend")


class PolicyBackendError(Exception):
    """Base exception for policy backend operations."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PolicyBackendUnavailableError(PolicyBackendError):
    """Raised when the backend cannot be reached or times out."""


class PrincipalAlreadyExistsError(PolicyBackendError):
    """Raised when creating a user that is already present."""


class RoleAlreadyAssignedError(PolicyBackendError):
    """Raised when the role grant already exists."""


class PrincipalNotFoundError(PolicyBackendError):
    """Raised when removing a user that is already absent."""


class PolicyBackend(Protocol):
    """Operations the relay needs from the authorization backend."""

    async def create_principal(self, key: str) -> Dict[str, Any]:
        ...

    async def assign_role(self, principal: str, role: str, tenant: str) -> Dict[str, Any]:
        ...

    async def remove_principal(self, key: str) -> None:
        ...

    async def aclose(self) -> None:
        ...


class PermitClient(PolicyBackend):
    """
    Thin async client for the Permit.io facts API.

    Only maps status codes to exceptions; idempotency policy lives in the
    delivery layer.
    """

    def __init__(
        self,
        *,
        api_url: str,
        token: str,
        project: str,
        environment: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._facts_path = f"/v2/facts/{quote(project, safe='')}/{quote(environment, safe='')}"
        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "PermitClient":
        return cls(
            api_url=settings.permit_api_url,
            token=settings.require_permit_token(),
            project=settings.permit_project,
            environment=settings.permit_environment,
            timeout=settings.permit_timeout_seconds,
            transport=transport,
        )

    async def create_principal(self, key: str) -> Dict[str, Any]:
        response = await self._request("POST", f"{self._facts_path}/users", json={"key": key})
        if response.status_code == httpx.codes.CONFLICT:
            raise PrincipalAlreadyExistsError(f"User '{key}' already exists", status_code=response.status_code)
        self._raise_for_status(response, f"create user '{key}'")
        logger.info("permit_user_created", extra={"principal": key})
        return self._json(response)

    async def assign_role(self, principal: str, role: str, tenant: str) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            f"{self._user_path(principal)}/roles",
            json={"role": role, "tenant": tenant},
        )
        if response.status_code == httpx.codes.CONFLICT:
            raise RoleAlreadyAssignedError(
                f"Role '{role}' already assigned to '{principal}' in '{tenant}'",
                status_code=response.status_code,
            )
        self._raise_for_status(response, f"assign role '{role}' to '{principal}'")
        logger.info(
            "permit_role_assigned",
            extra={"principal": principal, "role": role, "tenant": tenant},
        )
        return self._json(response)

    async def remove_principal(self, key: str) -> None:
        response = await self._request("DELETE", self._user_path(key))
        if response.status_code == httpx.codes.NOT_FOUND:
            raise PrincipalNotFoundError(f"User '{key}' does not exist", status_code=response.status_code)
        self._raise_for_status(response, f"delete user '{key}'")
        logger.info("permit_user_deleted", extra={"principal": key})

    async def aclose(self) -> None:
        await self._client.aclose()

    def _user_path(self, key: str) -> str:
        return f"{self._facts_path}/users/{quote(key, safe='')}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            logger.error(
                "permit_request_error",
                extra={"method": method, "url": url, "error": str(exc)},
            )
            raise PolicyBackendUnavailableError(f"Failed to reach Permit: {exc}") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        logger.error(
            "permit_http_error",
            extra={
                "operation": operation,
                "status_code": response.status_code,
                "detail": response.text,
            },
        )
        raise PolicyBackendError(
            f"Permit failed to {operation}: {response.status_code}",
            status_code=response.status_code,
        )

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}
