import json
import logging

logger = logging.getLogger(__name__)

# Serverless entrypoint: if the app cannot be imported (bad env, missing
# package) serve a minimal ASGI app that answers 503 instead of crashing
try:
    from plantscan.main import app
except Exception as e:
    logger.error(f"PlantScan failed to start: {e}", exc_info=True)
    _startup_body = json.dumps({
        "success": False,
        "error": "Service is starting up or misconfigured. Please try again later.",
    }).encode("utf-8")

    async def app(scope, receive, send):
        if scope["type"] != "http":
            return
        await send({
            "type": "http.response.start",
            "status": 503,
            "headers": [[b"content-type", b"application/json; charset=utf-8"]],
        })
        await send({"type": "http.response.body", "body": _startup_body})
