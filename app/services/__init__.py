"""Clients and helpers for systems outside the relay."""

from app.services.policy_backend import PermitClient, PolicyBackend  # noqa: F401
