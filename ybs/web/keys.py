"""Typed application keys."""

from aiohttp import web

from ybs.web.container import ServiceContainer

CONTAINER_KEY = web.AppKey("container", ServiceContainer)
