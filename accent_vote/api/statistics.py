from typing import List, Optional
from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..config import settings
from ..models.statistics import MapData, PrefectureStat, PrefectureTopAccent, WordStatistics
from ..models.value_objects import AccentType, Prefecture
from ..services.vote_service import VoteService
from .deps import parse_prefecture, parse_word_id

router = APIRouter()
vote_service = VoteService()


class PrefectureStatResponse(BaseModel):
    """One prefecture's result; ``stat`` is null when it has no votes"""
    word_id: int
    prefecture: Prefecture
    prefecture_name: str
    has_enough_data: bool
    dominant_accent: Optional[AccentType] = None
    stat: Optional[PrefectureStat] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


@router.get("/words/{word_id}", response_model=WordStatistics)
async def get_word_statistics(word_id: int):
    """National, per-prefecture and age-group breakdown for a word"""
    return await vote_service.get_word_statistics(parse_word_id(word_id))


@router.get("/words/{word_id}/prefectures/{code}", response_model=PrefectureStatResponse)
async def get_word_prefecture_statistics(
    word_id: int,
    code: str,
    min_votes: Optional[int] = Query(None, ge=1)
):
    prefecture = parse_prefecture(code)
    stats = await vote_service.get_word_statistics(parse_word_id(word_id))
    threshold = min_votes or settings.MIN_PREFECTURE_VOTES

    return PrefectureStatResponse(
        word_id=word_id,
        prefecture=prefecture,
        prefecture_name=prefecture.label,
        has_enough_data=stats.has_enough_data_for_prefecture(prefecture, threshold),
        dominant_accent=stats.get_dominant_accent_for_prefecture(prefecture),
        stat=stats.get_prefecture_stat(prefecture)
    )


@router.get("/words/{word_id}/map", response_model=MapData)
async def get_word_map(word_id: int):
    stats = await vote_service.get_word_statistics(parse_word_id(word_id))
    return stats.get_map_data()


@router.get("/words/{word_id}/top-by-prefecture", response_model=List[PrefectureTopAccent])
async def get_word_top_by_prefecture(word_id: int):
    """Most voted accent for all 47 prefectures"""
    stats = await vote_service.get_word_statistics(parse_word_id(word_id))
    return stats.get_top_by_prefecture()
