import base64
import json
import logging
import os

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from agent import handle
from config import load_settings
from responses import AgentResponse

settings = load_settings()

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger("pwa-agent")

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

app = FastAPI(title="PWA Agent")
app.state.settings = settings
# None means a provider is built from settings on each request
app.state.provider = None


def _to_response(result: AgentResponse) -> Response:
    if result.body is None:
        return Response(status_code=result.status_code, headers=result.headers)
    return JSONResponse(status_code=result.status_code, content=result.body, headers=result.headers)


@app.api_route("/api/pwa-agent", methods=ALL_METHODS)
@app.api_route("/.netlify/functions/pwa-agent", methods=ALL_METHODS)
async def pwa_agent(req: Request):
    body = await req.body()
    # The upstream call blocks; keep it off the event loop
    result = await run_in_threadpool(handle, req.method, body, req.app.state.settings, req.app.state.provider)
    return _to_response(result)


@app.get("/health")
def health():
    return {"ok": True}


def handler(event, context=None):
    """Serverless entry point (Netlify Functions / AWS Lambda proxy event shape)."""
    body = event.get("body")
    if body and event.get("isBase64Encoded"):
        body = base64.b64decode(body)
    result = handle(event.get("httpMethod", ""), body, app.state.settings, app.state.provider)
    return {
        "statusCode": result.status_code,
        "headers": result.headers,
        "body": json.dumps(result.body) if result.body is not None else "",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=int(os.environ.get("PORT", "8000")))
