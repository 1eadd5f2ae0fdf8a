"""HTTP control API.

``GET /api/status`` returns the status snapshot as JSON, ``POST /api/control``
runs ``start``/``stop``/``restart``/``check`` and answers with
``{"success": ..., "message": ...}``.
"""

from __future__ import annotations

import logging

from aiohttp import web

from core.lifecycle import BridgeController

LOGGER = logging.getLogger(__name__)

CONTROLLER_KEY = web.AppKey("controller", BridgeController)
KNOWN_ACTIONS = {"start", "stop", "restart", "check"}


async def get_status(request: web.Request) -> web.Response:
    controller = request.app[CONTROLLER_KEY]
    return web.json_response(controller.status().to_dict())


async def post_control(request: web.Request) -> web.Response:
    controller = request.app[CONTROLLER_KEY]
    try:
        body = await request.json()
    except ValueError:
        return web.json_response({"success": False, "message": "Invalid JSON body"}, status=400)

    action = body.get("action") if isinstance(body, dict) else None
    if not isinstance(action, str) or action not in KNOWN_ACTIONS:
        return web.json_response({"success": False, "message": "Unknown action"}, status=400)

    LOGGER.info("HTTP control action: %s", action)
    result = await controller.handle_command(action)
    status = 200 if result.success else 500
    return web.json_response({"success": result.success, "message": result.message}, status=status)


def build_app(controller: BridgeController) -> web.Application:
    app = web.Application()
    app[CONTROLLER_KEY] = controller
    app.router.add_get("/api/status", get_status)
    app.router.add_post("/api/control", post_control)
    return app


async def serve(controller: BridgeController, host: str, port: int) -> web.AppRunner:
    """Start the API in the running loop; the caller owns ``runner.cleanup()``."""

    runner = web.AppRunner(build_app(controller))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    LOGGER.info("HTTP control API listening on %s:%s", host, port)
    return runner
