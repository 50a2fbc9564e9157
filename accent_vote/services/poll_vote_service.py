from datetime import datetime
from typing import List, Optional
from bson import ObjectId
from pymongo.errors import DuplicateKeyError
import structlog
from ..database import db
from ..errors import AlreadyVoted
from ..models.poll_vote import PollVote, PollVoteSubmit
from ..models.results import PollBreakdown, PollStatistics, PollVoteResult, PrefectureTopOption
from ..models.value_objects import DeviceId
from ..models.vote import ensure_utc, utc_now
from .aggregation import build_poll_statistics, top_by_prefecture
from .poll_service import PollService

logger = structlog.get_logger(__name__)

class PollVoteService:
    def __init__(self):
        self.poll_service = PollService()

    @property
    def votes_collection(self):
        return db.database.poll_votes

    @property
    def polls_collection(self):
        return db.database.polls

    async def submit_vote(
        self,
        poll_id: str,
        device_id: DeviceId,
        vote_data: PollVoteSubmit,
        now: Optional[datetime] = None
    ) -> PollVoteResult:
        """Record one device's vote on a poll and return fresh statistics"""
        now = ensure_utc(now) if now else utc_now()

        poll = await self.poll_service.require_poll(poll_id)

        # Status and deadline are checked against the submission time, never cached
        poll.ensure_accepting_votes(now)
        poll.validate_option_index(vote_data.option_index)

        if await self._check_duplicate_vote(poll_id, device_id):
            raise AlreadyVoted("This device has already voted on this poll")

        vote_doc = {
            "poll_id": poll_id,
            "option_index": vote_data.option_index,
            "device_id": device_id.value,
            "prefecture": vote_data.prefecture.value,
            "age_group": vote_data.age_group.value if vote_data.age_group else None,
            "gender": vote_data.gender.value if vote_data.gender else None,
            "voted_at": now
        }

        try:
            result = await self.votes_collection.insert_one(vote_doc)
        except DuplicateKeyError:
            # Lost the race against a concurrent submission from the same device
            raise AlreadyVoted("This device has already voted on this poll") from None

        await self._increment_vote_count(poll_id, now)

        vote_doc["_id"] = result.inserted_id
        vote = PollVote.from_document(vote_doc)
        logger.info(
            "poll_vote_submitted",
            poll_id=poll_id,
            option_index=vote.option_index,
            prefecture=vote.prefecture.value
        )

        stats = await self.get_poll_statistics(poll_id)
        return PollVoteResult(vote=vote, stats=stats)

    async def get_votes(self, poll_id: str) -> List[PollVote]:
        docs = await self.votes_collection.find({"poll_id": poll_id}).to_list(length=None)
        return [PollVote.from_document(doc) for doc in docs]

    async def get_poll_statistics(self, poll_id: str, breakdown: Optional[PollBreakdown] = None) -> PollStatistics:
        poll = await self.poll_service.require_poll(poll_id)
        votes = await self.get_votes(poll_id)
        return build_poll_statistics(poll, votes, breakdown=breakdown)

    async def get_top_by_prefecture(self, poll_id: str, limit: Optional[int] = None) -> List[PrefectureTopOption]:
        poll = await self.poll_service.require_poll(poll_id)
        votes = await self.get_votes(poll_id)
        return top_by_prefecture(poll.options, votes, limit=limit)

    async def has_voted(self, poll_id: str, device_id: DeviceId) -> bool:
        return await self._check_duplicate_vote(poll_id, device_id)

    async def _check_duplicate_vote(self, poll_id: str, device_id: DeviceId) -> bool:
        existing = await self.votes_collection.find_one({
            "poll_id": poll_id,
            "device_id": device_id.value
        })
        return existing is not None

    async def _increment_vote_count(self, poll_id: str, now: datetime):
        await self.polls_collection.update_one(
            {"_id": ObjectId(poll_id)},
            {
                "$inc": {"vote_count": 1},
                "$set": {"last_vote_at": now}
            }
        )
