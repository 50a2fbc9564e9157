import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from accent_vote.errors import AlreadyVoted, InvalidOption, PollDeadlinePassed, PollNotActive, PollNotFound
from accent_vote.models.poll import Poll, PollStatus
from accent_vote.models.poll_vote import PollVoteSubmit
from accent_vote.models.results import PollBreakdown
from accent_vote.models.value_objects import DeviceId
from accent_vote.services.poll_vote_service import PollVoteService

POLL_ID = "507f1f77bcf86cd799439011"
NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
DEVICE = DeviceId.from_hash("device-abc-1234567890")


@pytest.fixture
def poll_vote_service():
    """Create a poll vote service with a mocked poll service"""
    service = PollVoteService()
    service.poll_service = AsyncMock()
    return service


@pytest.fixture
def sample_poll():
    return Poll(
        id=POLL_ID,
        title="「はし」はどれ？",
        options=["箸", "橋", "端"],
        status=PollStatus.ACTIVE,
        deadline=NOW + timedelta(days=1),
        created_at=NOW - timedelta(days=1),
        updated_at=NOW - timedelta(days=1)
    )


@pytest.fixture
def mock_collections():
    """Votes and polls collections behind a mocked database"""
    mock_votes = AsyncMock()
    mock_polls = AsyncMock()
    mock_database = MagicMock()
    mock_database.poll_votes = mock_votes
    mock_database.polls = mock_polls
    return mock_database, mock_votes, mock_polls


def cursor_returning(docs):
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=docs)
    return cursor


class TestSubmitPollVote:
    """Test casting a vote on a poll"""

    @pytest.mark.asyncio
    @patch('accent_vote.services.poll_vote_service.db')
    async def test_submit_vote(self, mock_db, poll_vote_service, sample_poll, mock_collections):
        mock_database, mock_votes, mock_polls = mock_collections
        mock_db.database = mock_database

        poll_vote_service.poll_service.require_poll.return_value = sample_poll
        mock_votes.find_one.return_value = None
        vote_id = ObjectId("507f1f77bcf86cd799439012")
        mock_votes.insert_one.return_value = MagicMock(inserted_id=vote_id)
        mock_votes.find = MagicMock(return_value=cursor_returning([{
            "_id": vote_id,
            "poll_id": POLL_ID,
            "option_index": 1,
            "device_id": DEVICE.value,
            "prefecture": "13",
            "age_group": "20s",
            "gender": "female",
            "voted_at": NOW
        }]))

        result = await poll_vote_service.submit_vote(
            POLL_ID, DEVICE, PollVoteSubmit(option_index=1, prefecture="13", age_group="20s", gender="female"),
            now=NOW
        )

        assert result.vote.id == str(vote_id)
        assert result.vote.option_index == 1
        assert result.vote.device_id == DEVICE
        assert result.stats.total_votes == 1
        assert result.stats.option_stats[1].count == 1
        assert result.stats.gender_stats[0].gender.value == "female"

        inserted = mock_votes.insert_one.call_args[0][0]
        assert inserted["device_id"] == DEVICE.value
        assert inserted["prefecture"] == "13"
        assert inserted["age_group"] == "20s"
        assert inserted["gender"] == "female"
        assert inserted["voted_at"] == NOW

        mock_polls.update_one.assert_called_once()
        update = mock_polls.update_one.call_args[0][1]
        assert update["$inc"] == {"vote_count": 1}

    @pytest.mark.asyncio
    @patch('accent_vote.services.poll_vote_service.db')
    async def test_second_vote_from_device_rejected(self, mock_db, poll_vote_service, sample_poll, mock_collections):
        mock_database, mock_votes, mock_polls = mock_collections
        mock_db.database = mock_database

        poll_vote_service.poll_service.require_poll.return_value = sample_poll
        mock_votes.find_one.return_value = {"_id": ObjectId(), "poll_id": POLL_ID, "device_id": DEVICE.value}

        with pytest.raises(AlreadyVoted):
            await poll_vote_service.submit_vote(
                POLL_ID, DEVICE, PollVoteSubmit(option_index=0, prefecture="13"), now=NOW
            )

        # Counts stay untouched
        mock_votes.insert_one.assert_not_called()
        mock_polls.update_one.assert_not_called()

    @pytest.mark.asyncio
    @patch('accent_vote.services.poll_vote_service.db')
    async def test_concurrent_duplicate_rejected(self, mock_db, poll_vote_service, sample_poll, mock_collections):
        mock_database, mock_votes, mock_polls = mock_collections
        mock_db.database = mock_database

        poll_vote_service.poll_service.require_poll.return_value = sample_poll
        mock_votes.find_one.return_value = None
        mock_votes.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key error")

        with pytest.raises(AlreadyVoted):
            await poll_vote_service.submit_vote(
                POLL_ID, DEVICE, PollVoteSubmit(option_index=0, prefecture="13"), now=NOW
            )

        mock_polls.update_one.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [PollStatus.DRAFT, PollStatus.ENDED])
    @patch('accent_vote.services.poll_vote_service.db')
    async def test_inactive_poll_rejected(self, mock_db, status, poll_vote_service, sample_poll, mock_collections):
        mock_database, mock_votes, _ = mock_collections
        mock_db.database = mock_database
        poll_vote_service.poll_service.require_poll.return_value = sample_poll.model_copy(update={"status": status})

        with pytest.raises(PollNotActive):
            await poll_vote_service.submit_vote(
                POLL_ID, DEVICE, PollVoteSubmit(option_index=0, prefecture="13"), now=NOW
            )
        mock_votes.insert_one.assert_not_called()

    @pytest.mark.asyncio
    @patch('accent_vote.services.poll_vote_service.db')
    async def test_deadline_checked_at_submission(self, mock_db, poll_vote_service, sample_poll, mock_collections):
        mock_database, mock_votes, _ = mock_collections
        mock_db.database = mock_database
        poll_vote_service.poll_service.require_poll.return_value = sample_poll

        with pytest.raises(PollDeadlinePassed):
            await poll_vote_service.submit_vote(
                POLL_ID, DEVICE, PollVoteSubmit(option_index=0, prefecture="13"),
                now=NOW + timedelta(days=1, seconds=1)
            )
        mock_votes.insert_one.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("option_index", [-1, 3, 7])
    @patch('accent_vote.services.poll_vote_service.db')
    async def test_invalid_option_rejected(self, mock_db, option_index, poll_vote_service, sample_poll,
                                           mock_collections):
        mock_database, mock_votes, _ = mock_collections
        mock_db.database = mock_database
        poll_vote_service.poll_service.require_poll.return_value = sample_poll

        with pytest.raises(InvalidOption):
            await poll_vote_service.submit_vote(
                POLL_ID, DEVICE, PollVoteSubmit(option_index=option_index, prefecture="13"), now=NOW
            )
        mock_votes.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_poll(self, poll_vote_service):
        poll_vote_service.poll_service.require_poll.side_effect = PollNotFound("Poll missing not found")

        with pytest.raises(PollNotFound):
            await poll_vote_service.submit_vote(
                "missing", DEVICE, PollVoteSubmit(option_index=0, prefecture="13"), now=NOW
            )


class TestPollResults:

    @pytest.mark.asyncio
    @patch('accent_vote.services.poll_vote_service.db')
    async def test_top_by_prefecture(self, mock_db, poll_vote_service, sample_poll, mock_collections):
        mock_database, mock_votes, _ = mock_collections
        mock_db.database = mock_database
        poll_vote_service.poll_service.require_poll.return_value = sample_poll

        docs = [
            {"_id": ObjectId(), "poll_id": POLL_ID, "option_index": index,
             "device_id": f"device-{n:014d}", "prefecture": prefecture, "voted_at": NOW}
            for n, (index, prefecture) in enumerate([(2, "27"), (0, "13"), (0, "13"), (1, "01")])
        ]
        mock_votes.find = MagicMock(return_value=cursor_returning(docs))

        rows = await poll_vote_service.get_top_by_prefecture(POLL_ID, limit=2)

        assert [row.prefecture.value for row in rows] == ["13", "01"]
        assert rows[0].top_option == "箸"
        mock_votes.find.assert_called_once_with({"poll_id": POLL_ID})

    @pytest.mark.asyncio
    @patch('accent_vote.services.poll_vote_service.db')
    async def test_statistics_by_age_group(self, mock_db, poll_vote_service, sample_poll, mock_collections):
        mock_database, mock_votes, _ = mock_collections
        mock_db.database = mock_database
        poll_vote_service.poll_service.require_poll.return_value = sample_poll

        docs = [
            {"_id": ObjectId(), "poll_id": POLL_ID, "option_index": index, "device_id": f"device-{n:014d}",
             "prefecture": "13", "age_group": age_group, "gender": "male", "voted_at": NOW}
            for n, (index, age_group) in enumerate([(0, "60s"), (2, "10s"), (2, "10s"), (1, None)])
        ]
        mock_votes.find = MagicMock(return_value=cursor_returning(docs))

        stats = await poll_vote_service.get_poll_statistics(POLL_ID, breakdown=PollBreakdown.AGE)

        assert stats.total_votes == 4
        assert [(s.age_group.value, s.dominant_option) for s in stats.age_group_stats] == [("10s", 2), ("60s", 0)]
        assert stats.prefecture_stats == []
        assert stats.gender_stats == []

    @pytest.mark.asyncio
    @patch('accent_vote.services.poll_vote_service.db')
    async def test_has_voted(self, mock_db, poll_vote_service, mock_collections):
        mock_database, mock_votes, _ = mock_collections
        mock_db.database = mock_database
        mock_votes.find_one.return_value = None

        assert await poll_vote_service.has_voted(POLL_ID, DEVICE) is False
        mock_votes.find_one.assert_called_once_with({"poll_id": POLL_ID, "device_id": DEVICE.value})
