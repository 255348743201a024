"""HTTP surface: payment webhooks and admin actions."""

from ybs.web.app import create_app, start_server, stop_server
from ybs.web.container import ServiceContainer, build_container

__all__ = [
    "ServiceContainer",
    "build_container",
    "create_app",
    "start_server",
    "stop_server",
]
