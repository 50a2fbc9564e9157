from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..errors import VoteError
from ..models.value_objects import DeviceId
from ..models.vote import Vote, VoteEligibility, VoteHistory, VoteSubmit
from ..services.vote_service import VoteService
from .deps import get_device_id, parse_word_id, vote_error_to_http

router = APIRouter()
vote_service = VoteService()


@router.post("", response_model=Vote, status_code=status.HTTP_201_CREATED)
async def submit_vote(vote: VoteSubmit, device_id: DeviceId = Depends(get_device_id)):
    """Cast a vote on a word's accent.

    A device gets one vote per word. It can be undone within 5 seconds;
    otherwise the device may vote again once 24 hours have passed.
    """
    try:
        return await vote_service.submit_vote(vote, device_id)
    except VoteError as e:
        raise vote_error_to_http(e)


@router.delete("/{vote_id}", response_model=Vote)
async def undo_vote(vote_id: str, device_id: DeviceId = Depends(get_device_id)):
    """Retract a vote within the undo window"""
    try:
        return await vote_service.undo_vote(vote_id, device_id)
    except VoteError as e:
        raise vote_error_to_http(e)


@router.get("/can-vote/{word_id}", response_model=VoteEligibility)
async def can_vote(word_id: int, device_id: DeviceId = Depends(get_device_id)):
    return await vote_service.check_eligibility(parse_word_id(word_id), device_id)


@router.get("/history", response_model=VoteHistory)
async def get_vote_history(
    device_id: DeviceId = Depends(get_device_id),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0)
):
    """Votes cast from this device, newest first"""
    votes = await vote_service.get_device_history(device_id, limit=limit, offset=offset)
    total = await vote_service.count_device_votes(device_id)
    return VoteHistory(votes=votes, limit=limit, offset=offset, count=len(votes), total=total)
