"""Apply a pending event to the policy backend and classify the outcome."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.relay.schemas import EventOperation, EventRecord
from app.services.policy_backend import (
    PolicyBackend,
    PolicyBackendError,
    PrincipalAlreadyExistsError,
    PrincipalNotFoundError,
    RoleAlreadyAssignedError,
)

LOGGER = logging.getLogger("app.relay.delivery")


class DeliveryOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    RETRYABLE_FAILURE = "retryable_failure"
    NON_RETRYABLE_FAILURE = "non_retryable_failure"


@dataclass(frozen=True)
class DeliveryResult:
    outcome: DeliveryOutcome
    reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is DeliveryOutcome.SUCCEEDED

    @property
    def should_remove(self) -> bool:
        """Only retryable failures keep the record pending."""

        return self.outcome is not DeliveryOutcome.RETRYABLE_FAILURE

    @classmethod
    def success(cls) -> "DeliveryResult":
        return cls(DeliveryOutcome.SUCCEEDED)

    @classmethod
    def retry(cls, reason: str) -> "DeliveryResult":
        return cls(DeliveryOutcome.RETRYABLE_FAILURE, reason)

    @classmethod
    def invalid(cls, reason: str) -> "DeliveryResult":
        return cls(DeliveryOutcome.NON_RETRYABLE_FAILURE, reason)


class MembershipDelivery:
    """Translates membership events into idempotent Permit calls."""

    def __init__(self, backend: PolicyBackend) -> None:
        self._backend = backend

    async def deliver(self, record: EventRecord) -> DeliveryResult:
        if record.operation is EventOperation.APPLY_GRANT:
            result = await self._apply_grant(record)
        elif record.operation is EventOperation.RETRACT_GRANT:
            result = await self._retract_grant(record)
        else:
            LOGGER.info("relay_event_ignored", extra={**record.log_context(), "action": record.action})
            result = DeliveryResult.success()

        self._log_result(record, result)
        return result

    async def _apply_grant(self, record: EventRecord) -> DeliveryResult:
        if not record.principal or not record.role:
            return DeliveryResult.invalid("Invalid membership data: user.login and role are required")

        try:
            try:
                await self._backend.create_principal(record.principal)
            except PrincipalAlreadyExistsError:
                LOGGER.info("relay_principal_exists", extra=record.log_context())

            try:
                await self._backend.assign_role(record.principal, record.role, record.tenant)
            except RoleAlreadyAssignedError:
                LOGGER.info("relay_role_already_assigned", extra={**record.log_context(), "role": record.role})
        except PolicyBackendError as exc:
            return DeliveryResult.retry(str(exc))
        return DeliveryResult.success()

    async def _retract_grant(self, record: EventRecord) -> DeliveryResult:
        if not record.principal:
            return DeliveryResult.invalid("Invalid membership data: user.login is required")

        try:
            await self._backend.remove_principal(record.principal)
        except PrincipalNotFoundError:
            LOGGER.info("relay_principal_already_absent", extra=record.log_context())
        except PolicyBackendError as exc:
            return DeliveryResult.retry(str(exc))
        return DeliveryResult.success()

    @staticmethod
    def _log_result(record: EventRecord, result: DeliveryResult) -> None:
        extra = {**record.log_context(), "outcome": result.outcome.value, "reason": result.reason}
        if result.outcome is DeliveryOutcome.SUCCEEDED:
            LOGGER.info("relay_delivery_succeeded", extra=extra)
        elif result.outcome is DeliveryOutcome.RETRYABLE_FAILURE:
            LOGGER.warning("relay_delivery_failed_retryable", extra=extra)
        else:
            LOGGER.error("relay_delivery_rejected", extra=extra)
