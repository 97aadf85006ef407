"""Visit event handed from the redirect path to the ingestion pipeline."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class VisitEvent(BaseModel):
    """One resolved redirect, before enrichment.

    ``ip_candidates`` keeps every address the request offered, in order of
    preference (forwarded chain, X-Real-IP, socket peer); the pipeline picks
    the first one that parses.
    """

    link_id: int = Field(description="ID of the resolved link")
    short_code: str = Field(description="The short code that was accessed")
    received_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the redirect request was received",
    )
    ip_candidates: list[str] = Field(default_factory=list)
    user_agent: str | None = Field(default=None, description="HTTP User-Agent header")
    referrer: str | None = Field(default=None, description="HTTP Referer header")

    model_config = {"json_schema_extra": {"example": {
        "link_id": 42,
        "short_code": "q3-report",
        "received_at": "2024-01-15T10:30:00Z",
        "ip_candidates": ["8.8.8.8", "10.0.0.2"],
        "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        "referrer": "https://news.ycombinator.com/",
    }}}
