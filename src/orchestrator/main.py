"""Orchestrator FastAPI app: POST /prepare-context -> plan, execute, compile context."""
from __future__ import annotations

import asyncio
import logging
import os
import uuid
from pathlib import Path

from dotenv import load_dotenv

# Load .env so OPENAI_API_KEY, POSTGRES_APP_URL etc. are set when the orchestrator runs standalone
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
for _p in (_PROJECT_ROOT / "config" / "env" / ".env", _PROJECT_ROOT / ".env"):
    if _p.exists():
        load_dotenv(_p, override=False)
        break

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(message)s", datefmt="%H:%M:%S")
log = logging.getLogger("orchestrator")

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from src.core.config.models import DomainConfig
from src.core.contracts.gateway import PrepareContextRequest
from src.core.contracts.orchestrator import ExecutionStatus, OrchestrationContext
from src.core.exceptions import OrchestrationCancelled, PlanGenerationError
from src.core.observability import new_operation_id, preview
from src.orchestrator.deps import get_config, get_orchestrator, get_trace_store
from src.orchestrator.service import AgentOrchestrator
from src.orchestrator.session import RunTraceStore

app = FastAPI(title="Workflow Orchestrator")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

# Non-standard "client closed request", as used by nginx
CLIENT_CLOSED_REQUEST = 499


@app.on_event("startup")
def startup():
    get_config()


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/agents")
def agents(orchestrator: AgentOrchestrator = Depends(get_orchestrator)):
    registry = orchestrator.registry
    out = []
    for name in registry.known_types:
        cfg = registry.get_config(name)
        out.append({
            "name": name,
            "model": cfg.model,
            "temperature": cfg.temperature,
            "tool_options": cfg.tool_options.model_dump(),
        })
    return {"default_agent": registry.default_type, "agents": out}


async def _watch_disconnect(request: Request, cancel_event: asyncio.Event, interval: float = 0.5) -> None:
    while not cancel_event.is_set():
        if await request.is_disconnected():
            log.warning("Client disconnected, cancelling run")
            cancel_event.set()
            return
        await asyncio.sleep(interval)


@app.post("/prepare-context", response_model=OrchestrationContext)
async def prepare_context(
    body: PrepareContextRequest,
    request: Request,
    response: Response,
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
    config: DomainConfig = Depends(get_config),
    store: RunTraceStore | None = Depends(get_trace_store),
):
    op = request.headers.get("x-request-id") or new_operation_id("ctx")
    log.info("PREPARE CONTEXT %s: %s", op, preview(body.message, 200))

    run_id = await store.start(config.domain_id, body.message, op, body.session_id) if store else None
    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        run = await orchestrator.run(body.message, body.agent_hint, cancel_event, op)
    except PlanGenerationError as e:
        log.error("Plan generation failed for %s: %s", op, e)
        if store:
            await store.finish(run_id, "failed", error_message=str(e))
        raise HTTPException(status_code=502, detail="Failed to generate workflow plan")
    except OrchestrationCancelled:
        if store:
            await store.finish(run_id, ExecutionStatus.CANCELLED.value)
        raise HTTPException(status_code=CLIENT_CLOSED_REQUEST, detail="Client closed request")
    except Exception as e:
        log.exception("Orchestration failed for %s", op)
        if store:
            await store.finish(run_id, "failed", error_message=str(e) or type(e).__name__)
        raise
    finally:
        watcher.cancel()

    if store:
        plans = [run.plan]
        if run.result is not None and run.result.replans:
            plans.append(run.result.final_plan)
        await store.finish(
            run_id,
            run.status.value,
            plans=plans,
            completed=run.result.completed if run.result else None,
            target_model_id=run.context.target_model_id,
            iterations=run.result.iterations if run.result else 0,
            replans=run.result.replans if run.result else 0,
        )

    if run.status is ExecutionStatus.CANCELLED:
        raise HTTPException(status_code=CLIENT_CLOSED_REQUEST, detail="Client closed request")

    response.headers["X-Request-ID"] = op
    response.headers["X-Orchestration-Status"] = run.status.value
    if run_id is not None:
        response.headers["X-Run-ID"] = str(run_id)
    return run.context


@app.get("/runs/{run_id}")
async def get_run_trace(run_id: str, store: RunTraceStore | None = Depends(get_trace_store)):
    """Return the stored trace for a run: request, status, latest plan, step outputs."""
    try:
        rid = uuid.UUID(run_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid run_id")
    if store is None:
        raise HTTPException(status_code=503, detail="Run tracing is not configured (POSTGRES_APP_URL not set)")
    trace = await store.load(rid)
    if trace is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return trace


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
