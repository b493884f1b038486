"""FastAPI dependencies for components built once at startup."""
from __future__ import annotations

from fastapi import Request

from ..services.bland import BlandClient
from ..services.reconciliation import CallPoller
from .config import Settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_bland_client(request: Request) -> BlandClient:
    return request.app.state.bland_client


def get_call_poller(request: Request) -> CallPoller:
    return request.app.state.call_poller
