"""Pure tallying for multi-option polls.

Every function takes an explicit, already fetched list of votes and returns a
fresh result; nothing here touches the database.
"""
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from ..errors import InvalidOption
from ..models.poll import Poll
from ..models.poll_vote import PollVote
from ..models.results import (
    AgeGroupOptionStat, GenderOptionStat, OptionStat, PollBreakdown, PollStatistics,
    PrefectureOptionStat, PrefectureTopOption
)
from ..models.statistics import calculate_percentage
from ..models.value_objects import AgeGroup, Gender, Prefecture

G = TypeVar("G")


def dominant_index(counts: Sequence[int]) -> int:
    """Index of the highest count, ties go to the lowest index"""
    max_index = 0
    for index in range(1, len(counts)):
        if counts[index] > counts[max_index]:
            max_index = index
    return max_index


def count_by_option(options: Sequence[str], votes: Sequence[PollVote]) -> List[int]:
    counts = [0] * len(options)
    for vote in votes:
        if vote.option_index < 0 or vote.option_index >= len(options):
            raise InvalidOption(
                f"Vote {vote.id} references option {vote.option_index} "
                f"but the poll has {len(options)} options"
            )
        counts[vote.option_index] += 1
    return counts


def count_by_group(
    options: Sequence[str],
    votes: Sequence[PollVote],
    key: Callable[[PollVote], Optional[G]],
    order: Iterable[G]
) -> Dict[G, List[int]]:
    """Per-option counts for each group with at least one vote, in ``order``.

    Votes whose key is None are left out.
    """
    grouped: Dict[G, List[PollVote]] = {}
    for vote in votes:
        group = key(vote)
        if group is not None:
            grouped.setdefault(group, []).append(vote)

    return {
        group: count_by_option(options, grouped[group])
        for group in order
        if group in grouped
    }


def count_by_prefecture(options: Sequence[str], votes: Sequence[PollVote]) -> Dict[Prefecture, List[int]]:
    """Per-option counts for each prefecture with at least one vote, ordered by code"""
    return count_by_group(options, votes, lambda vote: vote.prefecture, Prefecture)


def tally_options(options: Sequence[str], votes: Sequence[PollVote]) -> List[OptionStat]:
    counts = count_by_option(options, votes)
    total = sum(counts)
    return [
        OptionStat(
            index=index,
            option=option,
            count=counts[index],
            percentage=calculate_percentage(counts[index], total)
        )
        for index, option in enumerate(options)
    ]


def tally_prefectures(options: Sequence[str], votes: Sequence[PollVote]) -> List[PrefectureOptionStat]:
    return [
        PrefectureOptionStat(
            prefecture=prefecture,
            votes=dict(enumerate(counts)),
            dominant_option=dominant_index(counts),
            total_votes=sum(counts)
        )
        for prefecture, counts in count_by_prefecture(options, votes).items()
    ]


def tally_by_age_group(options: Sequence[str], votes: Sequence[PollVote]) -> List[AgeGroupOptionStat]:
    """Option counts per age group, youngest first; votes without an age group are skipped"""
    return [
        AgeGroupOptionStat(
            age_group=age_group,
            votes=dict(enumerate(counts)),
            dominant_option=dominant_index(counts),
            total_votes=sum(counts)
        )
        for age_group, counts in count_by_group(options, votes, lambda vote: vote.age_group, AgeGroup).items()
    ]


def tally_by_gender(options: Sequence[str], votes: Sequence[PollVote]) -> List[GenderOptionStat]:
    """Option counts per gender; votes without a gender are skipped"""
    return [
        GenderOptionStat(
            gender=gender,
            votes=dict(enumerate(counts)),
            dominant_option=dominant_index(counts),
            total_votes=sum(counts)
        )
        for gender, counts in count_by_group(options, votes, lambda vote: vote.gender, Gender).items()
    ]


def top_by_prefecture(
    options: Sequence[str],
    votes: Sequence[PollVote],
    limit: Optional[int] = None
) -> List[PrefectureTopOption]:
    """Top option per prefecture, busiest prefectures first"""
    rows = []
    for prefecture, counts in count_by_prefecture(options, votes).items():
        top_index = dominant_index(counts)
        total = sum(counts)
        rows.append(PrefectureTopOption(
            prefecture=prefecture,
            prefecture_name=prefecture.label,
            top_option=options[top_index],
            top_option_index=top_index,
            top_count=counts[top_index],
            percentage=calculate_percentage(counts[top_index], total),
            total_votes=total
        ))

    rows.sort(key=lambda row: (-row.total_votes, row.prefecture.value))
    if limit is not None:
        rows = rows[:limit]
    return rows


def build_poll_statistics(
    poll: Poll,
    votes: Sequence[PollVote],
    breakdown: Optional[PollBreakdown] = None
) -> PollStatistics:
    """Snapshot of a poll's results.

    ``breakdown`` limits the demographic tallies to one dimension; by default
    prefecture, age group and gender are all computed.
    """
    for vote in votes:
        if vote.poll_id != poll.id:
            raise ValueError(f"Vote {vote.id} belongs to poll {vote.poll_id}, not {poll.id}")

    option_stats = tally_options(poll.options, votes)
    total_votes = sum(stat.count for stat in option_stats)

    def wanted(dimension: PollBreakdown) -> bool:
        return breakdown is None or breakdown == dimension

    return PollStatistics(
        poll_id=poll.id,
        title=poll.title,
        total_votes=total_votes,
        options=list(poll.options),
        option_stats=option_stats,
        prefecture_stats=tally_prefectures(poll.options, votes) if wanted(PollBreakdown.PREFECTURE) else [],
        age_group_stats=tally_by_age_group(poll.options, votes) if wanted(PollBreakdown.AGE) else [],
        gender_stats=tally_by_gender(poll.options, votes) if wanted(PollBreakdown.GENDER) else [],
        dominant_option=dominant_index([stat.count for stat in option_stats]) if total_votes else None,
        calculated_at=datetime.now(timezone.utc)
    )
