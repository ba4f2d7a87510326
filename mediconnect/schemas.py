from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List


# ---------------------------------------------------------------------------
# Reminder Schemas
# ---------------------------------------------------------------------------
class Reminder(BaseModel):
    id: int = Field(..., description="Unique identifier (creation timestamp in milliseconds)")
    medicine: str = Field(..., description="Display name of the medicine")
    time: str = Field(..., description="Time of day in 24-hour HH:MM form, no timezone")
    taken: bool = Field(False, description="True once fired today or manually acknowledged")
    last_notified_date: Optional[str] = Field(
        None,
        alias="lastNotifiedDate",
        description="YYYY-MM-DD of the last day this reminder fired",
    )

    # Persisted and served with camelCase keys, constructed with either
    model_config = ConfigDict(populate_by_name=True)

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


class ReminderCreate(BaseModel):
    medicine: str = Field("", description="Medicine name")
    time: str = Field("", description="Time of day in 24-hour HH:MM form")


class ReminderCreated(BaseModel):
    reminder: Reminder = Field(..., description="The reminder that was added")
    message: str = Field(..., description="Confirmation shown to the user")


class ReminderDeleted(BaseModel):
    status: str = Field(..., description="Status of the operation")
    deleted: bool = Field(..., description="Whether a reminder was removed")


class PendingPrompts(BaseModel):
    prompts: List[str] = Field(..., description="Acknowledgment prompts raised since the last poll")


# ---------------------------------------------------------------------------
# Consult Schemas (OpenAPI docs; the handler builds raw payloads)
# ---------------------------------------------------------------------------
class ConsultReply(BaseModel):
    reply: str = Field(..., description="Assistant reply")


class ConsultError(BaseModel):
    error: str = Field(..., description="Error summary")
    details: Optional[str] = Field(None, description="Upstream or exception detail")
