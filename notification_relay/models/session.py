"""Per sign-in session state."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from notification_relay.models.notification import utc_now


class NotificationSession(BaseModel):
    """One sign-in of one user.

    Created at sign-in, discarded at sign-out. Never persisted.

    Attributes:
        user_id: Signed-in user.
        started_at: SessionStart floor; records created at or before this
            instant are treated as backlog and never delivered.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    started_at: datetime = Field(default_factory=utc_now)

    @field_validator("started_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def restarted(self) -> "NotificationSession":
        """Same user, SessionStart moved to now."""
        return self.model_copy(update={"started_at": utc_now()})
