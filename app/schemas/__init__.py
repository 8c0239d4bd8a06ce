"""Response schemas for the relay API."""

from app.schemas.webhook import PendingEventResponse, SweepResponse, WebhookAcceptedResponse  # noqa: F401
