from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from notification_relay.models.notification import DEFAULT_ROUTE_SCREEN


class LedgerSettings(BaseModel):
    """Durable ledger storage settings"""

    store_dir: str = Field(
        "./.notification_relay/ledger", description="diskcache directory"
    )
    key_prefix: str = Field(
        "processed_notifications_",
        min_length=1,
        max_length=100,
        description="Per-user key prefix in the durable store",
    )

    @field_validator("key_prefix")
    @classmethod
    def validate_key_prefix(cls, v: str) -> str:
        if any(ch.isspace() for ch in v):
            raise ValueError("key_prefix must not contain whitespace")
        return v


class LoggingSettings(BaseModel):
    """structlog output settings"""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = Field(True, description="JSON lines instead of console")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        if isinstance(v, str):
            return v.upper()
        return v


class DeliverySettings(BaseModel):
    """Local delivery settings"""

    default_screen: str = Field(
        DEFAULT_ROUTE_SCREEN,
        min_length=1,
        max_length=100,
        description="Route injected when a payload carries no screen",
    )


class RelayConfig(BaseModel):
    """Root configuration model"""

    model_config = ConfigDict(extra="forbid")

    ledger: LedgerSettings = Field(default_factory=lambda: LedgerSettings())
    delivery: DeliverySettings = Field(default_factory=lambda: DeliverySettings())
    logging: LoggingSettings = Field(default_factory=lambda: LoggingSettings())
