from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SUPPLIER_ONBOARDING_")

    app_name: str = "Supplier Onboarding Engine"
    contract_version: str = "v1"
    log_level: str = Field(default="INFO")
    duplicate_match_threshold: int = Field(default=75, ge=0, le=100)
    watchlist_match_threshold: int = Field(default=70, ge=0, le=100)
    high_similarity_threshold: int = Field(default=85, ge=0, le=100)
    supplier_watchlist: list[str] = Field(default_factory=list)
    sds_response_window_days: int = Field(default=14)
    sds_escalation_window_days: int = Field(default=45)
    allowed_requester_email_domains: list[str] = Field(
        default_factory=lambda: [
            "@nhs.net",
            "@nhs.uk",
            "@bartshealth.nhs.uk",
            "@nhs.scot",
            "@wales.nhs.uk",
        ]
    )
    side_effect_webhook_url: str | None = Field(default=None)
    upstream_timeout_seconds: float = Field(default=3.0)
    upstream_max_retries: int = Field(default=2)
    upstream_retry_backoff_seconds: float = Field(default=0.2)
    sole_trader_agreement_template: str = "Sole Trader Agreement latest version 22.docx"
    consultancy_agreement_template: str = "BartsConsultancyAgreement.1.2.docx"


settings = Settings()
