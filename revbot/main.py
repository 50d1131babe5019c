from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel

from revbot.config import AppSettings, load_settings
from revbot.llm.providers.gemini import GeminiProvider
from revbot.llm.types import ChatProvider, UpstreamError
from revbot.persona import EMPTY_REPLY
from revbot.runtime import VoiceRuntime, build_voice_runtime
from revbot.telemetry.logging import configure_logging, get_logger
from revbot.telemetry.tracing import configure_tracing
from revbot.ui.websocket import StatusBridge

logger = get_logger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
}


class ChatRequest(BaseModel):
    text: Any = None

    def prompt(self) -> str:
        """Any truthy value is relayed as text, so numbers survive as their string form."""
        return str(self.text).strip() if self.text else ""


async def read_body(request: Request, limit: int) -> bytes | None:
    """Collect the request body; None as soon as it grows past *limit* bytes."""
    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


def create_app(
    settings: AppSettings | None = None,
    provider: ChatProvider | None = None,
    runtime: VoiceRuntime | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    server = settings.server
    app = FastAPI(title="Rev Voice Relay")
    ui_bridge = StatusBridge()
    app.state.settings = settings
    app.state.provider = provider
    app.state.runtime = runtime
    app.state.ui_bridge = ui_bridge

    app.include_router(ui_bridge.router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[server.allowed_origin],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def guard_request(request: Request, call_next: Any) -> Any:
        started = time.perf_counter()
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > server.max_body_bytes:
            response = JSONResponse({"error": "Payload too large"}, status_code=413)
        else:
            response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        logger.info(
            "http.request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response

    @app.on_event("startup")
    async def startup_event() -> None:
        if app.state.provider is None and settings.gemini.api_key:
            app.state.provider = GeminiProvider(
                settings.gemini.api_key,
                model=settings.gemini.model,
                base_url=settings.gemini.base_url,
                timeout=settings.gemini.timeout_seconds,
            )
        if app.state.runtime is None and settings.session.voice_enabled:
            try:
                app.state.runtime = build_voice_runtime(settings, ui_bridge, provider=app.state.provider)
            except Exception as exc:
                logger.error("voice.runtime.unavailable", error=str(exc))
        if app.state.runtime is not None:
            app.state.runtime.controller.attach_status(ui_bridge)
        logger.info("relay.started", model=settings.gemini.model, voice=app.state.runtime is not None)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        runtime = app.state.runtime
        if runtime is not None:
            await runtime.shutdown()
        provider = app.state.provider
        if provider is not None:
            await provider.aclose()

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/api/chat")
    async def chat_endpoint(request: Request) -> JSONResponse:
        body = await read_body(request, server.max_body_bytes)
        if body is None:
            return JSONResponse({"error": "Payload too large"}, status_code=413)
        try:
            payload = json.loads(body) if body.strip() else {}
        except ValueError:
            return JSONResponse({"error": "Invalid JSON"}, status_code=400)
        chat_request = ChatRequest.model_validate(payload) if isinstance(payload, dict) else ChatRequest()
        user_text = chat_request.prompt()
        if not user_text:
            return JSONResponse({"error": "Empty text"}, status_code=400)
        chat_provider: ChatProvider | None = app.state.provider
        if chat_provider is None:
            logger.error("relay.chat.unconfigured")
            return JSONResponse({"error": "Server error"}, status_code=500)
        try:
            resp = await chat_provider.chat(user_text)
        except UpstreamError as exc:
            logger.error("relay.chat.upstream_error", status=exc.status_code, detail=exc.detail[:500])
            return JSONResponse({"error": "Gemini API error", "detail": exc.detail}, status_code=500)
        except Exception as exc:
            logger.exception("relay.chat.error", error=str(exc))
            return JSONResponse({"error": "Server error"}, status_code=500)
        reply = resp.text.strip() or EMPTY_REPLY
        logger.info("relay.chat.reply", prompt_len=len(user_text), reply_len=len(reply))
        return JSONResponse({"reply": reply})

    def _runtime() -> VoiceRuntime:
        runtime = app.state.runtime
        if runtime is None:
            raise HTTPException(status_code=503, detail="voice runtime unavailable")
        return runtime

    @app.get("/session")
    async def session_state() -> dict[str, Any]:
        return _runtime().snapshot()

    @app.post("/session/toggle")
    async def session_toggle() -> dict[str, Any]:
        snapshot = await _runtime().toggle()
        logger.info("session.endpoint.toggle", session=snapshot["session"])
        return snapshot

    @app.post("/session/start")
    async def session_start() -> dict[str, Any]:
        return await _runtime().start()

    @app.post("/session/stop")
    async def session_stop() -> dict[str, Any]:
        return await _runtime().stop()

    static_dir = server.static_dir
    if static_dir.is_dir():
        _mount_frontend(app, static_dir)

    return app


def _mount_frontend(app: FastAPI, static_dir: Path) -> None:
    root = static_dir.resolve()
    index = root / "index.html"

    @app.get("/{path:path}", include_in_schema=False)
    async def frontend(path: str) -> FileResponse:
        candidate = (root / path).resolve()
        if path and candidate.is_relative_to(root) and candidate.is_file():
            return FileResponse(candidate)
        if not index.is_file():
            raise HTTPException(status_code=404, detail="Not Found")
        return FileResponse(index)


def run() -> None:
    settings = load_settings()
    configure_logging(settings.telemetry.log_level)
    configure_tracing("revbot-relay", settings.telemetry.otlp_endpoint)
    if not settings.gemini.api_key:
        logger.error("relay.config.missing_key", variable="GEMINI_API_KEY")
        sys.exit(1)

    app = create_app(settings)
    logger.info("relay.listen", url=f"http://localhost:{settings.server.port}")
    uvicorn.run(app, host=settings.server.host, port=settings.server.port, log_level=settings.telemetry.log_level.lower())


if __name__ == "__main__":
    run()
