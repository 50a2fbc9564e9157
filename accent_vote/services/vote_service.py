from datetime import datetime
from typing import List, Optional
from bson import ObjectId
from pymongo.errors import DuplicateKeyError
import structlog
from ..database import db
from ..errors import AlreadyVoted, RevoteCooldown, UndoNotAllowed, VoteNotFound
from ..models.statistics import WordStatistics
from ..models.value_objects import DeviceId, WordId
from ..models.vote import Vote, VoteEligibility, VoteSubmit, ensure_utc, utc_now

logger = structlog.get_logger(__name__)

class VoteService:
    """Word accent votes: casting, undo, eligibility and statistics"""

    @property
    def collection(self):
        return db.database.votes

    async def submit_vote(
        self,
        vote_data: VoteSubmit,
        device_id: DeviceId,
        now: Optional[datetime] = None
    ) -> Vote:
        now = ensure_utc(now) if now else utc_now()
        word_id = WordId(value=vote_data.word_id)

        prior = await self.get_device_vote_for_word(word_id, device_id)
        if prior and prior.is_within_24_hours(now):
            raise RevoteCooldown(
                f"This device already voted on word {word_id}; "
                f"it can vote again at {prior.get_revote_available_at().isoformat()}"
            )

        vote = Vote.create(
            word_id=word_id,
            accent_type=vote_data.accent_type,
            device_id=device_id,
            prefecture=vote_data.prefecture,
            age_group=vote_data.age_group
        )

        if prior:
            vote = await self._replace_vote(prior, vote)
        else:
            try:
                await self.collection.insert_one(vote.to_document())
            except DuplicateKeyError:
                raise AlreadyVoted(f"This device has already voted on word {word_id}") from None

        logger.info(
            "vote_submitted",
            vote_id=str(vote.id),
            word_id=word_id.value,
            accent_type=vote.accent_type.value,
            prefecture=vote.prefecture.value
        )
        return vote

    async def _replace_vote(self, prior: Vote, vote: Vote) -> Vote:
        """Swap the stored prior vote for ``vote`` in a single write.

        The record keeps the prior ``_id``. The filter pins the prior
        ``voted_at`` so two racing revotes cannot both replace it.
        """
        prior_doc = prior.to_document()
        replacement = vote.to_document()
        del replacement["_id"]

        result = await self.collection.replace_one(
            {
                "_id": prior_doc["_id"],
                "device_id": prior_doc["device_id"],
                "voted_at": prior_doc["voted_at"]
            },
            replacement
        )
        if not result.matched_count:
            raise AlreadyVoted(f"This device has already voted on word {prior.word_id}")

        logger.info("vote_replaced", vote_id=str(prior.id), word_id=prior.word_id.value)
        return vote.model_copy(update={"id": prior.id})

    async def undo_vote(self, vote_id: str, device_id: DeviceId, now: Optional[datetime] = None) -> Vote:
        """Retract a vote cast by the same device within the undo window.

        The vote record is removed, so the revote cooldown no longer applies.
        """
        now = ensure_utc(now) if now else utc_now()
        if not ObjectId.is_valid(vote_id):
            raise VoteNotFound(f"Vote {vote_id} not found")

        doc = await self.collection.find_one({"_id": ObjectId(vote_id)})
        if not doc:
            raise VoteNotFound(f"Vote {vote_id} not found")

        vote = Vote.from_data(doc)
        if vote.device_id != device_id:
            raise UndoNotAllowed("This vote was cast from another device")
        if not vote.can_be_undone_by(device_id, now):
            raise UndoNotAllowed(
                f"The undo window closed at {vote.get_undo_deadline().isoformat()}"
            )

        result = await self.collection.delete_one({"_id": ObjectId(vote_id), "device_id": device_id.value})
        if not result.deleted_count:
            raise VoteNotFound(f"Vote {vote_id} not found")

        logger.info("vote_undone", vote_id=vote_id, word_id=vote.word_id.value)
        return vote

    async def check_eligibility(
        self,
        word_id: WordId,
        device_id: DeviceId,
        now: Optional[datetime] = None
    ) -> VoteEligibility:
        now = ensure_utc(now) if now else utc_now()
        prior = await self.get_device_vote_for_word(word_id, device_id)

        if not prior or not prior.is_within_24_hours(now):
            return VoteEligibility(word_id=word_id.value, can_vote=True, existing_vote=prior)

        return VoteEligibility(
            word_id=word_id.value,
            can_vote=False,
            reason="revote_cooldown",
            existing_vote=prior,
            can_undo=prior.can_be_undone_by(device_id, now),
            undo_deadline=prior.get_undo_deadline(),
            revote_available_at=prior.get_revote_available_at()
        )

    async def get_device_vote_for_word(self, word_id: WordId, device_id: DeviceId) -> Optional[Vote]:
        doc = await self.collection.find_one({
            "word_id": word_id.value,
            "device_id": device_id.value
        })
        return Vote.from_data(doc) if doc else None

    async def get_votes_for_word(self, word_id: WordId) -> List[Vote]:
        docs = await self.collection.find({"word_id": word_id.value}).to_list(length=None)
        return [Vote.from_data(doc) for doc in docs]

    async def get_word_statistics(self, word_id: WordId) -> WordStatistics:
        votes = await self.get_votes_for_word(word_id)
        return WordStatistics.create(word_id, votes)

    async def get_device_history(self, device_id: DeviceId, limit: int = 20, offset: int = 0) -> List[Vote]:
        cursor = (
            self.collection.find({"device_id": device_id.value})
            .sort("voted_at", -1)
            .skip(offset)
            .limit(limit)
        )
        docs = await cursor.to_list(length=limit)
        return [Vote.from_data(doc) for doc in docs]

    async def count_device_votes(self, device_id: DeviceId) -> int:
        return await self.collection.count_documents({"device_id": device_id.value})
