import logging

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from src.core.contracts.gateway import PrepareContextRequest
from src.core.contracts.orchestrator import OrchestrationContext
from src.gateway.deps import get_http_client, get_orchestrator_url
from src.gateway.middleware import RequestIDMiddleware

log = logging.getLogger("gateway")

app = FastAPI(title="Workflow Orchestrator: Gateway")
app.add_middleware(RequestIDMiddleware)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/chat/context", response_model=OrchestrationContext)
async def chat_context(
    req: PrepareContextRequest,
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
):
    url = f"{get_orchestrator_url().rstrip('/')}/prepare-context"
    headers = {"X-Request-ID": request.state.request_id}
    try:
        r = await client.post(url, json=req.model_dump(), headers=headers)
    except httpx.ConnectError as e:
        log.warning("Orchestrator unreachable at %s: %s", url, e)
        raise HTTPException(status_code=503, detail=f"Orchestrator unavailable: {e}")
    except httpx.TimeoutException as e:
        log.warning("Orchestrator timed out at %s: %s", url, e)
        raise HTTPException(status_code=504, detail="Orchestrator timed out")
    if r.status_code != 200:
        try:
            body = r.json()
        except ValueError:
            body = None
        detail = body.get("detail", r.text) if isinstance(body, dict) else r.text
        raise HTTPException(status_code=r.status_code, detail=detail)
    return OrchestrationContext(**r.json())
