from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from .poll import MAX_OPTIONS
from .value_objects import AgeGroup, DeviceId, Gender, Prefecture
from .vote import ensure_utc

class PollVoteSubmit(BaseModel):
    """Request model for voting on a poll; the device id comes from a header"""
    option_index: int
    prefecture: Prefecture
    age_group: Optional[AgeGroup] = None
    gender: Optional[Gender] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class PollVote(BaseModel):
    """One device's vote on a multi-option poll"""
    id: str
    poll_id: str
    option_index: int = Field(..., ge=0, lt=MAX_OPTIONS)
    device_id: DeviceId
    prefecture: Prefecture
    age_group: Optional[AgeGroup] = None
    gender: Optional[Gender] = None
    voted_at: datetime

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @field_validator('voted_at')
    @classmethod
    def validate_voted_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_serializer('voted_at')
    def serialize_datetime(self, dt: datetime, _info):
        return dt.isoformat()

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "PollVote":
        return cls(
            id=str(doc["_id"]),
            poll_id=doc["poll_id"],
            option_index=doc["option_index"],
            device_id=doc["device_id"],
            prefecture=doc["prefecture"],
            age_group=doc.get("age_group"),
            gender=doc.get("gender"),
            voted_at=doc["voted_at"]
        )
