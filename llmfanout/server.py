"""
HTTP surface for the fan-out engine.

Endpoints:
    POST /api/chat          -> {"results": [...]} or NDJSON frames when streaming
    POST /api/validate-key  -> {"ok", "provider", "model"} / {"ok": false, "error"}
    GET  /health            -> {"ok": true}

Streaming is selected with ``?stream=1`` or ``"stream": true`` in the body.
"""
import logging
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from .config import Settings, configure_logging, load_settings
from .dispatcher import ConfigurationError, Dispatcher
from .streaming import StreamingRelay, encode_frame
from .types import StreamFrame

logger = logging.getLogger(__name__)

NDJSON = "application/x-ndjson"


def _wants_stream(request: Request, body: dict) -> bool:
    flag = request.query_params.get("stream", "")
    return flag.lower() in ("1", "true", "yes") or body.get("stream") is True


async def _read_body(request: Request) -> dict:
    body = await request.json()
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


async def _encode(frames: AsyncIterator[StreamFrame]) -> AsyncIterator[bytes]:
    async for frame in frames:
        yield encode_frame(frame)


def create_app(
    settings: Optional[Settings] = None,
    dispatcher: Optional[Dispatcher] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings (Settings, optional): Runtime settings; defaults are used when omitted.
        dispatcher (Dispatcher, optional): Pre-built dispatcher, mainly for tests.

    Returns:
        FastAPI: The configured application.
    """
    settings = settings or Settings()
    dispatcher = dispatcher or Dispatcher(settings=settings)
    relay = StreamingRelay(dispatcher)

    app = FastAPI(title="llmfanout")
    app.state.dispatcher = dispatcher

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.post("/api/chat")
    async def chat(request: Request):
        try:
            body = await _read_body(request)
        except ValueError as e:
            logger.warning("Rejecting malformed chat request: %s", e)
            return JSONResponse({"error": str(e) or "Malformed request body"}, status_code=500)

        messages = body.get("messages", [])
        providers = body.get("providers", {})
        attachments = body.get("attachments", [])

        try:
            if _wants_stream(request, body):
                frames = relay.open(messages, providers, attachments)
                return StreamingResponse(_encode(frames), media_type=NDJSON)

            results = await dispatcher.dispatch(messages, providers, attachments)
        except ConfigurationError as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        except Exception as e:
            logger.exception("Chat request failed")
            return JSONResponse({"error": str(e) or "Server error"}, status_code=500)

        return {"results": results}

    @app.post("/api/validate-key")
    async def validate_key(request: Request):
        try:
            body = await _read_body(request)
        except ValueError as e:
            return JSONResponse({"error": str(e) or "Malformed request body"}, status_code=500)

        provider = body.get("provider")
        api_key = body.get("apiKey")
        if not isinstance(api_key, str) or not api_key.strip():
            return JSONResponse({"error": "Missing apiKey"}, status_code=400)

        try:
            return await dispatcher.validate_key(provider, api_key.strip())
        except ValueError as e:
            return JSONResponse({"error": str(e)}, status_code=400)

    return app


def serve() -> None:
    """Run the service with uvicorn using environment settings."""
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    serve()
