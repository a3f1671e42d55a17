from pydantic import BaseModel


class HealthStatus(BaseModel):
    status: str
    app: str
    version: str
    contest_id: str
