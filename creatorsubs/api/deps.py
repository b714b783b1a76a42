"""Shared FastAPI dependencies."""

from fastapi import Request

from creatorsubs.features.container import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    """Service container built once in create_app()."""
    return request.app.state.services
