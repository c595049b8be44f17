"""Persist and load orchestration run traces (runs, plans, step outputs) in app Postgres."""
from __future__ import annotations

import json
import logging
import uuid
from typing import Any

import asyncpg

from src.core.contracts.agent import AgentOutput
from src.core.contracts.orchestrator import WorkflowPlan

log = logging.getLogger("session")


async def create_run(
    conn: asyncpg.Connection,
    domain_id: str,
    request: str,
    operation_id: str,
    session_id: str | None = None,
) -> uuid.UUID:
    row = await conn.fetchrow(
        """
        INSERT INTO app.orchestration_runs (domain_id, operation_id, session_id, request, status)
        VALUES ($1, $2, $3, $4, 'running')
        RETURNING id
        """,
        domain_id,
        operation_id,
        session_id,
        request,
    )
    return row["id"]


async def update_run_final(
    conn: asyncpg.Connection,
    run_id: uuid.UUID,
    status: str,
    target_model_id: str | None = None,
    error_message: str | None = None,
    iterations: int | None = None,
    replans: int | None = None,
) -> None:
    await conn.execute(
        """
        UPDATE app.orchestration_runs
        SET status = $1, target_model_id = $2, error_message = $3, iterations = $4, replans = $5, updated_at = now()
        WHERE id = $6
        """,
        status,
        target_model_id,
        error_message,
        iterations,
        replans,
        run_id,
    )


async def save_plan(conn: asyncpg.Connection, run_id: uuid.UUID, plan: WorkflowPlan, generation: int = 0) -> None:
    """generation 0 is the planner's plan; later generations come from re-planning."""
    steps_json = json.dumps([s.model_dump() for s in plan.steps])
    await conn.execute(
        "INSERT INTO app.run_plans (run_id, generation, max_iterations, steps) VALUES ($1, $2, $3, $4::jsonb)",
        run_id,
        generation,
        plan.max_iterations,
        steps_json,
    )


async def save_step_output(
    conn: asyncpg.Connection,
    run_id: uuid.UUID,
    step_index: int,
    agent: str,
    task: str,
    output: AgentOutput,
) -> None:
    await conn.execute(
        """
        INSERT INTO app.run_steps (run_id, step_index, agent, task, result, metadata)
        VALUES ($1, $2, $3, $4, $5, $6::jsonb)
        """,
        run_id,
        step_index,
        agent,
        task,
        output.result,
        output.metadata.model_dump_json(),
    )


async def get_run(conn: asyncpg.Connection, run_id: uuid.UUID) -> dict[str, Any] | None:
    row = await conn.fetchrow(
        """
        SELECT id, domain_id, operation_id, session_id, request, status, target_model_id,
               error_message, iterations, replans, created_at
        FROM app.orchestration_runs WHERE id = $1
        """,
        run_id,
    )
    if not row:
        return None
    return {
        "id": str(row["id"]),
        "domain_id": row["domain_id"],
        "operation_id": row["operation_id"],
        "session_id": row["session_id"],
        "request": row["request"],
        "status": row["status"],
        "target_model_id": row["target_model_id"],
        "error_message": row["error_message"],
        "iterations": row["iterations"],
        "replans": row["replans"],
        "created_at": row["created_at"].isoformat() if row["created_at"] else None,
    }


async def get_run_plan(conn: asyncpg.Connection, run_id: uuid.UUID) -> WorkflowPlan | None:
    """Latest plan generation for the run."""
    row = await conn.fetchrow(
        "SELECT max_iterations, steps FROM app.run_plans WHERE run_id = $1 ORDER BY generation DESC LIMIT 1",
        run_id,
    )
    if not row:
        return None
    steps_raw = row["steps"]
    if isinstance(steps_raw, str):
        steps_raw = json.loads(steps_raw)
    return WorkflowPlan.model_validate({"steps": steps_raw or [], "max_iterations": row["max_iterations"]})


async def get_run_steps(conn: asyncpg.Connection, run_id: uuid.UUID) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        "SELECT step_index, agent, task, result, metadata FROM app.run_steps WHERE run_id = $1 ORDER BY step_index",
        run_id,
    )
    out = []
    for r in rows:
        metadata = r["metadata"]
        if isinstance(metadata, str):
            metadata = json.loads(metadata)
        out.append({
            "step_index": r["step_index"],
            "agent": r["agent"],
            "task": r["task"],
            "result": r["result"],
            "metadata": metadata,
        })
    return out


class RunTraceStore:
    """Best-effort writer over the functions above. Write failures are logged, never raised."""

    def __init__(self, url: str, connect=asyncpg.connect):
        self._url = url
        self._connect = connect

    async def _with_conn(self, fn, *args) -> Any:
        conn = await self._connect(self._url)
        try:
            return await fn(conn, *args)
        finally:
            await conn.close()

    async def start(self, domain_id: str, request: str, operation_id: str, session_id: str | None = None) -> uuid.UUID | None:
        try:
            return await self._with_conn(create_run, domain_id, request, operation_id, session_id)
        except Exception:
            log.exception("Could not record run %s", operation_id)
            return None

    async def finish(
        self,
        run_id: uuid.UUID | None,
        status: str,
        plans: list[WorkflowPlan] | None = None,
        completed: dict[int, AgentOutput] | None = None,
        target_model_id: str | None = None,
        error_message: str | None = None,
        iterations: int | None = None,
        replans: int | None = None,
    ) -> None:
        if run_id is None:
            return
        try:
            conn = await self._connect(self._url)
            try:
                for generation, plan in enumerate(plans or []):
                    await save_plan(conn, run_id, plan, generation)
                final_plan = plans[-1] if plans else None
                for i, output in sorted((completed or {}).items()):
                    step = final_plan.steps[i] if final_plan is not None and i < len(final_plan.steps) else None
                    await save_step_output(conn, run_id, i, step.agent if step else "", step.task if step else "", output)
                await update_run_final(conn, run_id, status, target_model_id, error_message, iterations, replans)
            finally:
                await conn.close()
        except Exception:
            log.exception("Could not record outcome of run %s", run_id)

    async def load(self, run_id: uuid.UUID) -> dict[str, Any] | None:
        conn = await self._connect(self._url)
        try:
            run = await get_run(conn, run_id)
            if run is None:
                return None
            plan = await get_run_plan(conn, run_id)
            steps = await get_run_steps(conn, run_id)
        finally:
            await conn.close()
        run["plan"] = plan.model_dump() if plan else None
        run["steps"] = steps
        return run
