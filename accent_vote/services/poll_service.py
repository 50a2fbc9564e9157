import secrets
from datetime import datetime
from typing import List, Optional
from bson import ObjectId
import bcrypt
import structlog
from ..database import db
from ..errors import NotAuthorized, PollNotFound
from ..models.poll import (
    Poll, PollAdminAuth, PollCreate, PollCreated, PollStatus, PollUpdate
)
from ..models.vote import ensure_utc, utc_now

logger = structlog.get_logger(__name__)

class PollService:
    @property
    def collection(self):
        return db.database.polls

    @property
    def votes_collection(self):
        return db.database.poll_votes

    async def create_poll(self, poll_data: PollCreate, now: Optional[datetime] = None) -> PollCreated:
        now = ensure_utc(now) if now else utc_now()

        if poll_data.deadline and ensure_utc(poll_data.deadline) <= now:
            raise ValueError("Deadline must be in the future")

        admin_token = secrets.token_urlsafe(32)
        admin_password_hash = None
        if poll_data.admin_password:
            admin_password_hash = bcrypt.hashpw(
                poll_data.admin_password.encode('utf-8'),
                bcrypt.gensalt()
            ).decode('utf-8')

        poll_doc = {
            "title": poll_data.title,
            "description": poll_data.description,
            "options": poll_data.options,
            "option_thumbnails": poll_data.option_thumbnails,
            "is_accent_mode": poll_data.is_accent_mode,
            "word_id": poll_data.word_id,
            "deadline": poll_data.deadline,
            "status": (PollStatus.DRAFT if poll_data.draft else PollStatus.ACTIVE).value,
            "share_hashtags": poll_data.share_hashtags,
            "thumbnail_url": poll_data.thumbnail_url,
            "admin_password_hash": admin_password_hash,
            "admin_token": admin_token,
            "creator_email": poll_data.creator_email,
            "created_at": now,
            "updated_at": now,
            "vote_count": 0,
            "last_vote_at": None
        }

        result = await self.collection.insert_one(poll_doc)
        created_poll = await self.collection.find_one({"_id": result.inserted_id})
        poll = self._doc_to_poll(created_poll)

        logger.info("poll_created", poll_id=poll.id, status=poll.status.value, options=len(poll.options))
        return PollCreated(poll=poll, admin_token=admin_token)

    async def get_poll(self, poll_id: str) -> Optional[Poll]:
        if not ObjectId.is_valid(poll_id):
            return None

        poll_doc = await self.collection.find_one({"_id": ObjectId(poll_id)})
        if not poll_doc:
            return None

        return self._doc_to_poll(poll_doc)

    async def require_poll(self, poll_id: str) -> Poll:
        poll = await self.get_poll(poll_id)
        if not poll:
            raise PollNotFound(f"Poll {poll_id} not found")
        return poll

    def _active_query(self, now: datetime) -> dict:
        return {
            "status": PollStatus.ACTIVE.value,
            "$or": [
                {"deadline": None},
                {"deadline": {"$gte": now}}
            ]
        }

    async def list_active_polls(self, limit: int = 20, offset: int = 0, now: Optional[datetime] = None) -> List[Poll]:
        """Active polls whose deadline is unset or still ahead, newest first"""
        now = ensure_utc(now) if now else utc_now()
        cursor = self.collection.find(self._active_query(now)).sort("created_at", -1).skip(offset).limit(limit)
        polls = await cursor.to_list(length=limit)

        return [self._doc_to_poll(poll) for poll in polls]

    async def count_active_polls(self, now: Optional[datetime] = None) -> int:
        now = ensure_utc(now) if now else utc_now()
        return await self.collection.count_documents(self._active_query(now))

    async def get_recent_polls(self, limit: int = 10) -> List[Poll]:
        return await self.list_active_polls(limit=limit, offset=0)

    async def update_poll(self, poll_id: str, poll_update: PollUpdate, now: Optional[datetime] = None) -> Poll:
        now = ensure_utc(now) if now else utc_now()
        poll = await self.require_poll(poll_id)
        self.verify_admin(poll, PollAdminAuth(admin_token=poll_update.admin_token, password=poll_update.password))

        update_data = poll_update.model_dump(
            exclude_unset=True,
            exclude_none=True,
            exclude={"admin_token", "password"}
        )

        if 'deadline' in update_data and ensure_utc(update_data['deadline']) <= now:
            raise ValueError("Deadline must be in the future")

        # Votes point at option indexes, so once there are votes options can only be appended
        if 'options' in update_data and poll.vote_count > 0:
            new_options = update_data['options']
            if new_options[:len(poll.options)] != poll.options:
                raise ValueError("Options of a poll with votes can only be extended, not changed or removed")

        if not update_data:
            return poll

        if update_data.get('is_accent_mode') and poll.word_id is None:
            raise ValueError('Accent mode polls require a word_id')

        update_data["updated_at"] = now

        await self.collection.update_one(
            {"_id": ObjectId(poll_id)},
            {"$set": update_data}
        )
        return await self.require_poll(poll_id)

    async def publish_poll(self, poll_id: str, auth: PollAdminAuth) -> Poll:
        return await self._transition(poll_id, PollStatus.ACTIVE, auth)

    async def end_poll(self, poll_id: str, auth: PollAdminAuth) -> Poll:
        return await self._transition(poll_id, PollStatus.ENDED, auth)

    async def _transition(self, poll_id: str, target: PollStatus, auth: PollAdminAuth) -> Poll:
        poll = await self.require_poll(poll_id)
        self.verify_admin(poll, auth)
        poll.check_transition(target)

        # Guard on the current status so concurrent transitions cannot both apply
        result = await self.collection.update_one(
            {"_id": ObjectId(poll_id), "status": poll.status.value},
            {"$set": {"status": target.value, "updated_at": utc_now()}}
        )
        if not result.modified_count:
            raise PollNotFound(f"Poll {poll_id} changed while updating its status")

        logger.info("poll_status_changed", poll_id=poll_id, from_status=poll.status.value, to_status=target.value)
        return await self.require_poll(poll_id)

    async def delete_poll(self, poll_id: str, auth: PollAdminAuth) -> bool:
        poll = await self.require_poll(poll_id)
        self.verify_admin(poll, auth)

        # Votes go with their poll
        deleted_votes = await self.votes_collection.delete_many({"poll_id": poll_id})
        result = await self.collection.delete_one({"_id": ObjectId(poll_id)})

        logger.info("poll_deleted", poll_id=poll_id, deleted_votes=deleted_votes.deleted_count)
        return result.deleted_count > 0

    def authenticate_admin(self, poll: Poll, auth: PollAdminAuth) -> bool:
        """Check an admin token or password against the poll's credentials"""
        # Method 1: Admin token (direct link)
        if auth.admin_token and poll.admin_token:
            return secrets.compare_digest(auth.admin_token, poll.admin_token)

        # Method 2: Password
        if auth.password and poll.admin_password_hash:
            return bcrypt.checkpw(
                auth.password.encode('utf-8'),
                poll.admin_password_hash.encode('utf-8')
            )

        return False

    def verify_admin(self, poll: Poll, auth: PollAdminAuth) -> None:
        if not self.authenticate_admin(poll, auth):
            logger.warning("poll_admin_auth_failed", poll_id=poll.id)
            raise NotAuthorized("Invalid authentication credentials")

    def _doc_to_poll(self, doc: dict) -> Poll:
        """Convert document to Poll model"""
        return Poll(
            id=str(doc["_id"]),
            title=doc["title"],
            description=doc.get("description"),
            options=doc["options"],
            option_thumbnails=doc.get("option_thumbnails"),
            is_accent_mode=doc.get("is_accent_mode", False),
            word_id=doc.get("word_id"),
            deadline=doc.get("deadline"),
            status=PollStatus(doc.get("status", PollStatus.ACTIVE.value)),
            share_hashtags=doc.get("share_hashtags"),
            thumbnail_url=doc.get("thumbnail_url"),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
            vote_count=doc.get("vote_count", 0),
            admin_password_hash=doc.get("admin_password_hash"),
            admin_token=doc.get("admin_token"),
            creator_email=doc.get("creator_email")
        )
