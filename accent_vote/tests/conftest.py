"""
Shared fixtures for accent vote tests.
"""

import os
from datetime import datetime, timezone
from itertools import count

import pytest

# Set test environment variables before importing the app
os.environ.setdefault("MONGODB_DB", "accent_vote_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from accent_vote.models.vote import Vote
from accent_vote.models.poll_vote import PollVote


VOTED_AT = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
DEVICE = "device-abc-1234567890"
OTHER_DEVICE = "device-xyz-0987654321"


@pytest.fixture
def voted_at():
    return VOTED_AT


@pytest.fixture
def make_vote():
    """Factory for word votes with sequential ids"""
    ids = count(1)

    def _make(accent_type="heiban", prefecture="13", word_id=42, device_id=None,
              age_group=None, voted_at=VOTED_AT):
        n = next(ids)
        return Vote(
            id=f"{n:024x}",
            word_id=word_id,
            accent_type=accent_type,
            device_id=device_id or f"device-{n:014d}",
            prefecture=prefecture,
            age_group=age_group,
            voted_at=voted_at
        )

    return _make


@pytest.fixture
def make_poll_vote():
    """Factory for poll votes with sequential ids"""
    ids = count(1)

    def _make(option_index=0, prefecture="13", poll_id="507f1f77bcf86cd799439011",
              device_id=None, age_group=None, gender=None, voted_at=VOTED_AT):
        n = next(ids)
        return PollVote(
            id=f"{n:024x}",
            poll_id=poll_id,
            option_index=option_index,
            device_id=device_id or f"device-{n:014d}",
            prefecture=prefecture,
            age_group=age_group,
            gender=gender,
            voted_at=voted_at
        )

    return _make
