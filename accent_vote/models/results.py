from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from .poll_vote import PollVote
from .value_objects import AgeGroup, Gender, Prefecture


class PollBreakdown(str, Enum):
    """Which demographic breakdowns a results request asks for"""
    AGE = "age"
    GENDER = "gender"
    PREFECTURE = "prefecture"


class OptionStat(BaseModel):
    """Votes for a single poll option"""
    index: int
    option: str
    count: int
    percentage: float

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class PrefectureOptionStat(BaseModel):
    """Counts for every option within one prefecture"""
    prefecture: Prefecture
    votes: Dict[int, int]  # option index -> count, every index present
    dominant_option: int
    total_votes: int

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class AgeGroupOptionStat(BaseModel):
    """Counts for every option among votes from one age group"""
    age_group: AgeGroup
    votes: Dict[int, int]
    dominant_option: int
    total_votes: int

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class GenderOptionStat(BaseModel):
    """Counts for every option among votes from one gender"""
    gender: Gender
    votes: Dict[int, int]
    dominant_option: int
    total_votes: int

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class PrefectureTopOption(BaseModel):
    """Most voted option of one prefecture"""
    prefecture: Prefecture
    prefecture_name: str
    top_option: str
    top_option_index: int
    top_count: int
    percentage: float
    total_votes: int

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class PollStatistics(BaseModel):
    """Snapshot of a poll's results, rebuilt from its votes on every read"""
    poll_id: str
    title: str
    total_votes: int
    options: List[str]
    option_stats: List[OptionStat]
    prefecture_stats: List[PrefectureOptionStat] = Field(default_factory=list)
    age_group_stats: List[AgeGroupOptionStat] = Field(default_factory=list)
    gender_stats: List[GenderOptionStat] = Field(default_factory=list)
    dominant_option: Optional[int] = None
    calculated_at: datetime

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @field_serializer('calculated_at')
    def serialize_datetime(self, dt: datetime, _info):
        return dt.isoformat()


class PollVoteResult(BaseModel):
    """Returned after a successful poll vote"""
    vote: PollVote
    stats: PollStatistics

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
