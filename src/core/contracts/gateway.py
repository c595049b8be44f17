from pydantic import BaseModel


class PrepareContextRequest(BaseModel):
    message: str
    agent_hint: str | None = None
    session_id: str | None = None
