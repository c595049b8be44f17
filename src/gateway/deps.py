import os

import httpx


def get_orchestrator_url() -> str:
    return os.environ.get("ORCHESTRATOR_BASE_URL", "http://127.0.0.1:8000")


async def get_http_client():
    async with httpx.AsyncClient(timeout=120.0) as client:
        yield client
