from pydantic import BaseModel, Field


class CollectorRules(BaseModel):
    base_url: str = "http://localhost:5000/api/analytics"
    track_path: str = "/track"
    pageview_path: str = "/pageview"
    timeout_seconds: float = Field(default=10.0, gt=0)
    analytics_version: str = "2.0.0"

class SessionRules(BaseModel):
    ttl_minutes: int = Field(default=30, gt=0)

class QueueRules(BaseModel):
    capacity: int = Field(default=50, gt=0)
    max_retries: int = Field(default=5, gt=0)

class RetryRules(BaseModel):
    initial_delay_seconds: float = Field(default=5.0, ge=0)
    interval_seconds: float = Field(default=300.0, gt=0)
    backoff_base_seconds: float = Field(default=30.0, gt=0)
    backoff_max_seconds: float = Field(default=1800.0, gt=0)
    online_grace_seconds: float = Field(default=2.0, ge=0)

class FieldLimits(BaseModel):
    user_agent: int = 500
    referrer: int = 1000
    url: int = 2000

class NormalizerRules(BaseModel):
    pageview_event_names: list[str] = ["page_view", "pageview"]
    supported_languages: list[str] = [
        "en", "es", "fr", "de", "it", "pt", "ru",
        "ja", "ko", "zh", "ar", "hi", "sw",
    ]
    default_language: str = "en"
    field_limits: FieldLimits = FieldLimits()

class DispatcherRules(BaseModel):
    idempotency_window: int = Field(default=500, gt=0)

class TrackingRules(BaseModel):
    collector: CollectorRules = CollectorRules()
    session: SessionRules = SessionRules()
    queue: QueueRules = QueueRules()
    retry: RetryRules = RetryRules()
    normalizer: NormalizerRules = NormalizerRules()
    dispatcher: DispatcherRules = DispatcherRules()
    lifecycle_events: bool = True
