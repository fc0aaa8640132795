from pydantic import BaseModel, Field


class ProblemDetails(BaseModel):
    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: str
    correlation_id: str
    error_code: str
    missing: list[str] = Field(default_factory=list)
