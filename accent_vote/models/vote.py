from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from .value_objects import AccentType, AgeGroup, DeviceId, Prefecture, VoteId, WordId


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Storage hands back naive datetimes in UTC; make them timezone-aware"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class Vote(BaseModel):
    """A single cast vote on a word's accent.

    Votes are never mutated after creation. All eligibility rules are pure
    functions of ``voted_at`` and the requesting device.
    """
    UNDO_TIME_LIMIT: ClassVar[timedelta] = timedelta(seconds=5)
    VOTE_COOLDOWN: ClassVar[timedelta] = timedelta(hours=24)

    id: VoteId
    word_id: WordId
    accent_type: AccentType
    device_id: DeviceId
    prefecture: Prefecture
    age_group: Optional[AgeGroup] = None
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
    def create(
        cls,
        word_id: Union[WordId, int],
        accent_type: Union[AccentType, str],
        device_id: Union[DeviceId, str],
        prefecture: Union[Prefecture, str],
        age_group: Optional[Union[AgeGroup, str]] = None
    ) -> "Vote":
        """Cast a new vote now. Callers check the word and option exist."""
        return cls(
            id=VoteId.generate(),
            word_id=word_id,
            accent_type=accent_type,
            device_id=device_id,
            prefecture=prefecture,
            age_group=age_group,
            voted_at=utc_now()
        )

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "Vote":
        """Rebuild a vote from a storage row, re-validating every field.

        Accepts snake_case or camelCase keys and a MongoDB ``_id``. Raises
        ``pydantic.ValidationError`` naming the offending field.
        """
        data = dict(data)
        if "_id" in data and "id" not in data:
            data["id"] = data.pop("_id")
        else:
            data.pop("_id", None)
        return cls.model_validate(data)

    def can_be_undone_by(self, device_id: Union[DeviceId, str], now: Optional[datetime] = None) -> bool:
        now = ensure_utc(now) if now else utc_now()
        return (
            self.device_id == DeviceId.model_validate(device_id)
            and now - self.voted_at <= self.UNDO_TIME_LIMIT
        )

    def is_within_24_hours(self, now: Optional[datetime] = None) -> bool:
        now = ensure_utc(now) if now else utc_now()
        return now - self.voted_at < self.VOTE_COOLDOWN

    def is_same_vote(self, device_id: Union[DeviceId, str], word_id: Union[WordId, int]) -> bool:
        return (
            self.device_id == DeviceId.model_validate(device_id)
            and self.word_id == WordId.model_validate(word_id)
        )

    def get_undo_deadline(self) -> datetime:
        return self.voted_at + self.UNDO_TIME_LIMIT

    def get_revote_available_at(self) -> datetime:
        return self.voted_at + self.VOTE_COOLDOWN

    def to_document(self) -> Dict[str, Any]:
        """Storage representation"""
        vote_id = self.id.value
        return {
            "_id": ObjectId(vote_id) if ObjectId.is_valid(vote_id) else vote_id,
            "word_id": self.word_id.value,
            "accent_type": self.accent_type.value,
            "device_id": self.device_id.value,
            "prefecture": self.prefecture.value,
            "age_group": self.age_group.value if self.age_group else None,
            "voted_at": self.voted_at,
        }


class VoteSubmit(BaseModel):
    """Request model for casting a word vote"""
    word_id: int = Field(..., ge=1)
    accent_type: AccentType
    prefecture: Prefecture
    age_group: Optional[AgeGroup] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VoteEligibility(BaseModel):
    """Whether a device may vote on a word right now"""
    word_id: int
    can_vote: bool
    reason: Optional[str] = None
    existing_vote: Optional[Vote] = None
    can_undo: bool = False
    undo_deadline: Optional[datetime] = None
    revote_available_at: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_serializer('undo_deadline', 'revote_available_at')
    def serialize_datetime(self, dt: datetime, _info):
        return dt.isoformat() if dt else None


class VoteHistory(BaseModel):
    """One page of a device's votes; ``count`` is the page size, ``total`` all votes"""
    votes: List[Vote]
    limit: int
    offset: int
    count: int
    total: int
