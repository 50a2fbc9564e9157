from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, computed_field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from enum import Enum

from ..errors import InvalidOption, InvalidPollTransition, PollDeadlinePassed, PollNotActive
from .vote import ensure_utc, utc_now

MIN_OPTIONS = 2
MAX_OPTIONS = 4

class PollStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ENDED = "ended"

# Allowed lifecycle moves: draft -> active -> ended
POLL_TRANSITIONS = {
    PollStatus.DRAFT: {PollStatus.ACTIVE},
    PollStatus.ACTIVE: {PollStatus.ENDED},
    PollStatus.ENDED: set(),
}

def _normalize_options(v: List[str]) -> List[str]:
    normalized = [opt.strip() for opt in v if opt and opt.strip()]
    if len(normalized) < MIN_OPTIONS or len(normalized) > MAX_OPTIONS:
        raise ValueError(f'Polls need between {MIN_OPTIONS} and {MAX_OPTIONS} non-empty options')
    return normalized

# Request/Response models
class PollCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    options: List[str]
    option_thumbnails: Optional[List[Optional[str]]] = None
    is_accent_mode: bool = False
    word_id: Optional[int] = Field(None, ge=1)
    deadline: Optional[datetime] = None
    share_hashtags: Optional[str] = None
    thumbnail_url: Optional[str] = None

    # Create as draft and publish later
    draft: bool = False

    # Admin credentials for managing the poll
    admin_password: Optional[str] = None
    creator_email: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Title cannot be empty')
        return v

    @field_validator('options')
    @classmethod
    def validate_options(cls, v: List[str]) -> List[str]:
        return _normalize_options(v)

    @field_validator('creator_email')
    @classmethod
    def validate_creator_email(cls, v: Optional[str]) -> Optional[str]:
        if v:
            v = v.strip().lower()
            # Basic email validation
            if '@' not in v or '.' not in v:
                raise ValueError('Invalid email format')
        return v

    @model_validator(mode='after')
    def validate_accent_mode(self) -> "PollCreate":
        if self.is_accent_mode and self.word_id is None:
            raise ValueError('Accent mode polls require a word_id')
        return self

class PollUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    options: Optional[List[str]] = None
    option_thumbnails: Optional[List[Optional[str]]] = None
    is_accent_mode: Optional[bool] = None
    deadline: Optional[datetime] = None
    share_hashtags: Optional[str] = None
    thumbnail_url: Optional[str] = None

    # Admin credentials
    admin_token: Optional[str] = None
    password: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator('options')
    @classmethod
    def validate_options(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        return _normalize_options(v)

class PollAdminAuth(BaseModel):
    admin_token: Optional[str] = None
    password: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class Poll(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    options: List[str]
    option_thumbnails: Optional[List[Optional[str]]] = None
    is_accent_mode: bool = False
    word_id: Optional[int] = None
    deadline: Optional[datetime] = None
    status: PollStatus = PollStatus.ACTIVE
    share_hashtags: Optional[str] = None
    thumbnail_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    vote_count: int = 0

    # Authentication fields, never serialized
    admin_password_hash: Optional[str] = Field(None, exclude=True)
    admin_token: Optional[str] = Field(None, exclude=True)
    creator_email: Optional[str] = Field(None, exclude=True)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator('deadline', 'created_at', 'updated_at')
    @classmethod
    def validate_datetime(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v else v

    @field_serializer('created_at', 'updated_at', 'deadline')
    def serialize_datetime(self, dt: datetime, _info):
        return dt.isoformat() if dt else None

    @computed_field(alias="isActive")
    @property
    def is_active(self) -> bool:
        return self.is_accepting_votes()

    def effective_status(self, now: Optional[datetime] = None) -> PollStatus:
        """Status with the deadline applied: an active poll past its deadline has ended"""
        now = ensure_utc(now) if now else utc_now()
        if self.status == PollStatus.ACTIVE and self.deadline and self.deadline < now:
            return PollStatus.ENDED
        return self.status

    def is_accepting_votes(self, now: Optional[datetime] = None) -> bool:
        return self.effective_status(now) == PollStatus.ACTIVE

    def ensure_accepting_votes(self, now: Optional[datetime] = None) -> None:
        now = ensure_utc(now) if now else utc_now()
        if self.status != PollStatus.ACTIVE:
            raise PollNotActive(f"Poll {self.id} is {self.status.value}")
        if self.deadline and self.deadline < now:
            raise PollDeadlinePassed(f"Poll {self.id} closed at {self.deadline.isoformat()}")

    def validate_option_index(self, option_index: int) -> None:
        if option_index < 0 or option_index >= len(self.options):
            raise InvalidOption(f"Invalid option index: {option_index}")

    def check_transition(self, target: PollStatus) -> None:
        if target not in POLL_TRANSITIONS[self.status]:
            raise InvalidPollTransition(
                f"Cannot move poll {self.id} from {self.status.value} to {target.value}"
            )

class PollCreated(BaseModel):
    """Returned once on creation; the admin token is not shown again"""
    poll: Poll
    admin_token: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class PollList(BaseModel):
    """One page of active polls; ``count`` is the page size, ``total`` all matches"""
    polls: List[Poll]
    limit: int
    offset: int
    count: int
    total: int
