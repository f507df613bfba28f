"""JSON HTTP API for the dashboard (aiohttp).

Routes:
    GET    /api/servers                 status of every server
    POST   /api/servers                 add a server (JSON or form body)
    GET    /api/servers/{id}            decoded register snapshot
    DELETE /api/servers/{id}            remove a server
    GET    /api/servers/config/{id}     server configuration and status
    POST   /api/servers/config/{id}     merge register blocks
    GET    /api/serverstatus/{id}       status of one server
    POST   /api/config/upload           import a configuration document
    GET    /api/config                  export the configuration document

Errors are returned as ``{"success": false, "error": message}``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from aiohttp import web

from .exceptions import (
    AddressRangeError,
    ConfigurationError,
    DuplicateServerError,
    ServerNotFoundError,
)
from .models import ConfigFile, ServerConfig, blocks_from_list
from .registry import ServerRegistry

_LOGGER = logging.getLogger(__name__)

REGISTRY_KEY = web.AppKey("registry", ServerRegistry)

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"success": False, "error": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    """Translate domain errors into JSON error responses."""
    try:
        return await handler(request)
    except ServerNotFoundError as err:
        return _error(str(err), 404)
    except DuplicateServerError as err:
        return _error(str(err), 409)
    except AddressRangeError as err:
        _LOGGER.error("Stored configuration is inconsistent: %s", err)
        return _error(str(err), 500)
    except ConfigurationError as err:
        _LOGGER.info("Rejected configuration: %s", err)
        return _error(str(err), 400)


def _registry(request: web.Request) -> ServerRegistry:
    return request.app[REGISTRY_KEY]


async def _read_json(request: web.Request) -> Any:
    try:
        return await request.json()
    except ValueError as err:
        raise ConfigurationError(f"Invalid JSON: {err}") from err


async def list_servers(request: web.Request) -> web.Response:
    snapshots = await _registry(request).status_snapshots()
    return web.json_response({"servers": [snapshot.to_dict() for snapshot in snapshots]})


async def add_server(request: web.Request) -> web.Response:
    if request.content_type == "application/json":
        data = await _read_json(request)
    else:
        data = dict(await request.post())
    config = ServerConfig.from_dict(data)
    await _registry(request).add(config)
    return web.json_response({"success": True}, status=201)


async def get_server(request: web.Request) -> web.Response:
    state = await _registry(request).get(request.match_info["server_id"])
    readings, last_data = await state.read_registers()
    return web.json_response(
        {
            "success": True,
            "data": [reading.to_dict() for reading in readings],
            "lastDataReceived": last_data.isoformat() if last_data else None,
        }
    )


async def delete_server(request: web.Request) -> web.Response:
    await _registry(request).remove(request.match_info["server_id"])
    return web.json_response({"success": True})


async def get_server_config(request: web.Request) -> web.Response:
    state = await _registry(request).get(request.match_info["server_id"])
    return web.json_response(await state.to_dict())


async def update_server_config(request: web.Request) -> web.Response:
    state = await _registry(request).get(request.match_info["server_id"])
    data = await _read_json(request)
    if not isinstance(data, dict):
        raise ConfigurationError("request body must be a JSON object")
    blocks = blocks_from_list(data.get("registerBlocks"))
    await state.apply_blocks(blocks)
    return web.json_response({"success": True})


async def get_server_status(request: web.Request) -> web.Response:
    state = await _registry(request).get(request.match_info["server_id"])
    snapshot = await state.status()
    return web.json_response(snapshot.to_dict())


async def upload_config(request: web.Request) -> web.Response:
    if request.content_type == "multipart/form-data":
        form = await request.post()
        upload = form.get("config")
        if upload is None or isinstance(upload, str):
            raise ConfigurationError("Failed to get file: missing 'config' upload")
        try:
            data = json.loads(upload.file.read())
        except ValueError as err:
            raise ConfigurationError(f"Invalid JSON: {err}") from err
    else:
        data = await _read_json(request)

    config = ConfigFile.from_dict(data)
    states = await _registry(request).import_config(config)
    _LOGGER.info("Imported %d servers", len(states))
    return web.json_response({"success": True, "servers": [state.id for state in states]})


async def get_config(request: web.Request) -> web.Response:
    return web.json_response(await _registry(request).export_config())


async def _close_registry(app: web.Application) -> None:
    await app[REGISTRY_KEY].close()


def create_app(registry: ServerRegistry | None = None) -> web.Application:
    """Build the aiohttp application around *registry*.

    The registry is closed (all pollers stopped) on application cleanup.
    """
    app = web.Application(middlewares=[error_middleware])
    app[REGISTRY_KEY] = registry if registry is not None else ServerRegistry()
    app.router.add_get("/api/servers", list_servers)
    app.router.add_post("/api/servers", add_server)
    app.router.add_get("/api/servers/config/{server_id}", get_server_config)
    app.router.add_post("/api/servers/config/{server_id}", update_server_config)
    app.router.add_get("/api/servers/{server_id}", get_server)
    app.router.add_delete("/api/servers/{server_id}", delete_server)
    app.router.add_get("/api/serverstatus/{server_id}", get_server_status)
    app.router.add_post("/api/config/upload", upload_config)
    app.router.add_get("/api/config", get_config)
    app.on_cleanup.append(_close_registry)
    return app


__all__ = ["REGISTRY_KEY", "create_app", "error_middleware"]
