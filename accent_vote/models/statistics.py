from collections import Counter, defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, computed_field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from .value_objects import AccentType, AgeGroup, Prefecture, WordId
from .vote import Vote, utc_now

# Fallback when a distribution has no votes at all
DEFAULT_DOMINANT_ACCENT = AccentType.HEIBAN

ACCENT_COLORS: Dict[AccentType, str] = {
    AccentType.ATAMADAKA: "#FF6B6B",
    AccentType.HEIBAN: "#4ECDC4",
    AccentType.NAKADAKA: "#45B7D1",
    AccentType.ODAKA: "#FFA07A",
}
FALLBACK_COLOR = "#CCCCCC"


class AccentStat(BaseModel):
    """Vote count and share of one answer within a scope"""
    count: int
    percentage: float

    model_config = ConfigDict(frozen=True)

    @field_validator('count')
    @classmethod
    def validate_count(cls, v: int) -> int:
        if v < 0:
            raise ValueError('Count must be non-negative')
        return v

    @field_validator('percentage')
    @classmethod
    def validate_percentage(cls, v: float) -> float:
        if v < 0 or v > 100:
            raise ValueError('Percentage must be between 0 and 100')
        return v


class PrefectureStat(BaseModel):
    prefecture: Prefecture
    total_votes: int
    accent_distribution: Dict[AccentType, AccentStat]
    dominant_accent: AccentType

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class LegendEntry(BaseModel):
    accent_type: AccentType
    label: str
    color: str
    prefecture_count: int

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class MapData(BaseModel):
    """Colors and legend for the prefecture map"""
    prefecture_colors: Dict[str, str]
    legend: List[LegendEntry]

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class PrefectureTopAccent(BaseModel):
    """Most voted accent of one prefecture; empty when it has no votes"""
    prefecture: Prefecture
    prefecture_name: str
    top_accent_type: Optional[AccentType] = None
    vote_count: int = 0
    percentage: float = 0.0
    total_votes: int = 0

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


def calculate_percentage(count: int, total: int) -> float:
    return (count / total) * 100 if total > 0 else 0.0


def build_distribution(counts: Counter, total: int) -> Dict[AccentType, AccentStat]:
    """Distribution over every accent type, including those without votes"""
    return {
        accent_type: AccentStat(
            count=counts[accent_type],
            percentage=calculate_percentage(counts[accent_type], total)
        )
        for accent_type in AccentType.all_types()
    }


def dominant_accent(counts: Counter) -> AccentType:
    """Strictly highest count wins; ties go to the earlier accent type in
    canonical order, an empty distribution falls back to heiban."""
    dominant, max_count = DEFAULT_DOMINANT_ACCENT, 0
    for accent_type in AccentType.all_types():
        if counts[accent_type] > max_count:
            dominant, max_count = accent_type, counts[accent_type]
    return dominant


class WordStatistics(BaseModel):
    """Point-in-time statistics for one word, rebuilt from its full vote list.

    The snapshot is a pure projection of the votes passed to ``create``;
    it is never updated in place.
    """
    word_id: WordId
    national_stats: Dict[AccentType, AccentStat]
    prefecture_stats: Dict[Prefecture, PrefectureStat]
    age_group_stats: Dict[AgeGroup, AccentStat]
    total_votes: int
    last_updated_at: datetime

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @field_serializer('last_updated_at')
    def serialize_datetime(self, dt: datetime, _info):
        return dt.isoformat()

    @classmethod
    def create(cls, word_id: Union[WordId, int], votes: Iterable[Vote]) -> "WordStatistics":
        word_id = WordId.model_validate(word_id)

        national_counts: Counter = Counter()
        prefecture_counts: Dict[Prefecture, Counter] = defaultdict(Counter)
        age_group_counts: Counter = Counter()
        total_votes = 0

        for vote in votes:
            if vote.word_id != word_id:
                raise ValueError(
                    f"Vote {vote.id} belongs to word {vote.word_id}, not {word_id}"
                )
            total_votes += 1
            national_counts[vote.accent_type] += 1
            prefecture_counts[vote.prefecture][vote.accent_type] += 1
            if vote.age_group is not None:
                age_group_counts[vote.age_group] += 1

        prefecture_stats = {}
        for prefecture in sorted(prefecture_counts, key=lambda p: p.value):
            counts = prefecture_counts[prefecture]
            prefecture_total = sum(counts.values())
            prefecture_stats[prefecture] = PrefectureStat(
                prefecture=prefecture,
                total_votes=prefecture_total,
                accent_distribution=build_distribution(counts, prefecture_total),
                dominant_accent=dominant_accent(counts)
            )

        age_group_stats = {
            age_group: AccentStat(
                count=age_group_counts[age_group],
                percentage=calculate_percentage(age_group_counts[age_group], total_votes)
            )
            for age_group in AgeGroup
            if age_group_counts[age_group] > 0
        }

        return cls(
            word_id=word_id,
            national_stats=build_distribution(national_counts, total_votes),
            prefecture_stats=prefecture_stats,
            age_group_stats=age_group_stats,
            total_votes=total_votes,
            last_updated_at=utc_now()
        )

    def add_vote(self, vote: Vote) -> "WordStatistics":
        # Percentages and dominance need the whole vote history; rebuild with create()
        raise NotImplementedError("WordStatistics requires the full vote history; use create()")

    def get_national_dominant_accent(self) -> AccentType:
        return dominant_accent(
            Counter({accent_type: stat.count for accent_type, stat in self.national_stats.items()})
        )

    def get_prefecture_stat(self, prefecture: Union[Prefecture, str]) -> Optional[PrefectureStat]:
        return self.prefecture_stats.get(Prefecture.from_code(prefecture))

    def get_dominant_accent_for_prefecture(self, prefecture: Union[Prefecture, str]) -> Optional[AccentType]:
        """None means the prefecture has no votes, not a confirmed zero"""
        stat = self.get_prefecture_stat(prefecture)
        return stat.dominant_accent if stat else None

    def has_enough_data_for_prefecture(self, prefecture: Union[Prefecture, str], min_votes: int = 10) -> bool:
        stat = self.get_prefecture_stat(prefecture)
        return (stat.total_votes if stat else 0) >= min_votes

    def get_active_prefecture_count(self) -> int:
        return len(self.prefecture_stats)

    def get_map_data(self) -> MapData:
        prefecture_colors: Dict[str, str] = {}
        dominant_counts: Counter = Counter()

        for prefecture, stat in self.prefecture_stats.items():
            prefecture_colors[prefecture.value] = ACCENT_COLORS.get(stat.dominant_accent, FALLBACK_COLOR)
            dominant_counts[stat.dominant_accent] += 1

        legend = [
            LegendEntry(
                accent_type=accent_type,
                label=accent_type.label,
                color=ACCENT_COLORS.get(accent_type, FALLBACK_COLOR),
                prefecture_count=dominant_counts[accent_type]
            )
            for accent_type in AccentType.all_types()
        ]
        return MapData(prefecture_colors=prefecture_colors, legend=legend)

    @computed_field(alias="mapData")
    @property
    def map_data(self) -> MapData:
        return self.get_map_data()

    def get_top_by_prefecture(self) -> List[PrefectureTopAccent]:
        """One row per prefecture in code order, empty rows for prefectures without votes"""
        rows = []
        for prefecture in Prefecture:
            stat = self.prefecture_stats.get(prefecture)
            if stat is None:
                rows.append(PrefectureTopAccent(prefecture=prefecture, prefecture_name=prefecture.label))
                continue
            top = stat.accent_distribution[stat.dominant_accent]
            rows.append(PrefectureTopAccent(
                prefecture=prefecture,
                prefecture_name=prefecture.label,
                top_accent_type=stat.dominant_accent,
                vote_count=top.count,
                percentage=top.percentage,
                total_votes=stat.total_votes
            ))
        return rows
