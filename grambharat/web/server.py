"""Async HTTP server for chat clients.

Chat turns stream back as Server-Sent Events. Each turn runs as its own
task feeding a queue; the request handler only drains that queue, so a
client that disconnects does not stop the turn from being saved.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web
from pydantic import ValidationError

from grambharat.chats.models import InvalidRequestError
from grambharat.chats.store import ChatNotFoundError
from grambharat.memory.models import ContextRecord
from grambharat.personas import list_personas

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from grambharat.chats.controller import ChatController, Turn

logger = logging.getLogger(__name__)

CONTROLLER_KEY = web.AppKey("controller", object)
TASKS_KEY = web.AppKey("turn_tasks", set)
CORS_ORIGIN_KEY = web.AppKey("cors_allow_origin", str)

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def format_sse(event: dict[str, Any]) -> bytes:
    """Encode one event as an SSE ``data:`` line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n".encode()


def _controller(request: web.Request) -> ChatController:
    return request.app[CONTROLLER_KEY]


async def _json_body(request: web.Request) -> dict[str, Any]:
    """Parse a JSON object body; an empty body counts as ``{}``."""
    if not request.can_read_body:
        return {}
    try:
        payload = await request.json()
    except ValueError as exc:
        raise InvalidRequestError("invalid JSON") from exc
    if not isinstance(payload, dict):
        raise InvalidRequestError("JSON body must be an object")
    return payload


def _optional_str(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise InvalidRequestError(f"'{key}' must be a string")
    return value


# -- Middleware --------------------------------------------------------------


@web.middleware
async def _error_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Map domain errors to 404 / 400 JSON responses."""
    try:
        return await handler(request)
    except ChatNotFoundError:
        logger.info("Chat not found: %s %s", request.method, request.path)
        return web.json_response({"error": "Chat not found"}, status=404)
    except InvalidRequestError as exc:
        logger.info("Bad request: %s %s: %s", request.method, request.path, exc)
        return web.json_response({"error": str(exc)}, status=400)


@web.middleware
async def _preflight_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Answer CORS preflight requests for every route."""
    if request.method == "OPTIONS":
        return web.Response(status=204)
    return await handler(request)


async def _add_cors_headers(request: web.Request, response: web.StreamResponse) -> None:
    # Runs before headers are sent, so streamed responses get them too.
    response.headers["Access-Control-Allow-Origin"] = request.app[CORS_ORIGIN_KEY]
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"


# -- Turn streaming ----------------------------------------------------------


async def _pump(events: AsyncIterator[dict[str, Any]], queue: asyncio.Queue) -> None:
    """Move controller events into *queue*; ``None`` marks the end."""
    try:
        async for event in events:
            queue.put_nowait(event)
    except Exception:
        logger.exception("Turn task failed")
    finally:
        queue.put_nowait(None)


async def _stream_turn(request: web.Request, turn: Turn) -> web.StreamResponse:
    queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
    task = asyncio.create_task(_pump(_controller(request).run(turn), queue))
    tasks = request.app[TASKS_KEY]
    tasks.add(task)
    task.add_done_callback(tasks.discard)

    response = web.StreamResponse(headers=SSE_HEADERS)
    await response.prepare(request)
    try:
        while (event := await queue.get()) is not None:
            await response.write(format_sse(event))
    except ConnectionResetError:
        logger.info("Client left chat %s mid-stream; turn continues", turn.chat_id)
        return response
    await response.write_eof()
    return response


# -- Handlers ----------------------------------------------------------------


async def _health(request: web.Request) -> web.Response:
    """GET /health: basic liveness check."""
    return web.json_response({"status": "ok"})


async def _list_chats(request: web.Request) -> web.Response:
    return web.json_response(await _controller(request).chats.list_summaries())


async def _create_chat(request: web.Request) -> web.Response:
    chat = await _controller(request).chats.create()
    return web.json_response(chat.summary())


async def _delete_chat(request: web.Request) -> web.Response:
    await _controller(request).chats.delete(request.match_info["chat_id"])
    return web.json_response({"success": True})


async def _get_messages(request: web.Request) -> web.Response:
    chat = await _controller(request).chats.get(request.match_info["chat_id"])
    return web.json_response([m.to_dict() for m in chat.messages])


async def _send_message(request: web.Request) -> web.StreamResponse:
    """POST /api/chats/{chat_id}/messages: stream a reply to a new user message."""
    payload = await _json_body(request)
    message = payload.get("message")
    if not isinstance(message, str) or not message.strip():
        raise InvalidRequestError("Message is required")

    turn = await _controller(request).start_message(
        request.match_info["chat_id"],
        message,
        model=_optional_str(payload, "model"),
        persona=_optional_str(payload, "personality"),
        image=_optional_str(payload, "imageData"),
    )
    return await _stream_turn(request, turn)


async def _regenerate(request: web.Request) -> web.StreamResponse:
    """POST /api/chats/{chat_id}/regenerate: stream a new alternative reply."""
    payload = await _json_body(request)
    turn = await _controller(request).start_regenerate(
        request.match_info["chat_id"],
        _optional_str(payload, "message"),
        model=_optional_str(payload, "model"),
        persona=_optional_str(payload, "personality"),
    )
    return await _stream_turn(request, turn)


async def _switch_alternative(request: web.Request) -> web.Response:
    payload = await _json_body(request)
    active_index = payload.get("activeIndex")
    if isinstance(active_index, bool) or not isinstance(active_index, int):
        raise InvalidRequestError("'activeIndex' must be an integer")

    content = await _controller(request).chats.switch_alternative(
        request.match_info["chat_id"],
        int(request.match_info["index"]),
        active_index,
    )
    return web.json_response({"success": True, "content": content})


async def _get_context(request: web.Request) -> web.Response:
    record = await _controller(request).contexts.get()
    return web.json_response(record.model_dump(by_alias=True, mode="json"))


async def _set_context(request: web.Request) -> web.Response:
    payload = await _json_body(request)
    try:
        record = ContextRecord.model_validate(payload)
    except ValidationError as exc:
        raise InvalidRequestError(f"Invalid context: {exc.error_count()} error(s)") from exc
    saved = await _controller(request).contexts.set(record)
    return web.json_response(saved.model_dump(by_alias=True, mode="json"))


async def _list_memories(request: web.Request) -> web.Response:
    records = await _controller(request).memories.get_all()
    return web.json_response(
        {"memories": [r.model_dump(by_alias=True, mode="json") for r in records]}
    )


async def _list_personas(request: web.Request) -> web.Response:
    return web.json_response(list_personas())


async def _cancel_turns(app: web.Application) -> None:
    tasks = list(app[TASKS_KEY])
    if tasks:
        logger.info("Cancelling %d in-flight turn(s)", len(tasks))
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


def create_web_app(controller: ChatController, cors_allow_origin: str = "*") -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application(middlewares=[_preflight_middleware, _error_middleware])
    app[CONTROLLER_KEY] = controller
    app[TASKS_KEY] = set()
    app[CORS_ORIGIN_KEY] = cors_allow_origin
    app.on_response_prepare.append(_add_cors_headers)
    app.on_cleanup.append(_cancel_turns)

    app.router.add_get("/health", _health)
    app.router.add_get("/api/chats", _list_chats)
    app.router.add_post("/api/chats", _create_chat)
    app.router.add_delete("/api/chats/{chat_id}", _delete_chat)
    app.router.add_get("/api/chats/{chat_id}/messages", _get_messages)
    app.router.add_post("/api/chats/{chat_id}/messages", _send_message)
    app.router.add_post("/api/chats/{chat_id}/regenerate", _regenerate)
    app.router.add_post(
        r"/api/chats/{chat_id}/messages/{index:\d+}/switch", _switch_alternative
    )
    app.router.add_get("/api/context", _get_context)
    app.router.add_post("/api/context", _set_context)
    app.router.add_get("/api/memories", _list_memories)
    app.router.add_get("/api/personas", _list_personas)
    return app


class ChatServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        controller: ChatController,
        host: str,
        port: int,
        cors_allow_origin: str = "*",
    ) -> None:
        self.controller = controller
        self.host = host
        self.port = port
        self.cors_allow_origin = cors_allow_origin
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        app = create_web_app(self.controller, self.cors_allow_origin)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("GramBharat server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("GramBharat server stopped")
