from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from ..errors import VoteError
from ..models.poll import Poll, PollAdminAuth, PollCreate, PollCreated, PollList, PollUpdate
from ..models.poll_vote import PollVoteSubmit
from ..models.results import PollBreakdown, PollStatistics, PollVoteResult, PrefectureTopOption
from ..models.value_objects import DeviceId
from ..services.poll_service import PollService
from ..services.poll_vote_service import PollVoteService
from .deps import get_device_id, vote_error_to_http

router = APIRouter()
poll_service = PollService()
poll_vote_service = PollVoteService()

@router.post("", response_model=PollCreated, status_code=status.HTTP_201_CREATED)
async def create_poll(poll: PollCreate):
    """Create a poll with 2-4 options.

    The response carries the admin token; keep it to publish, end, edit or
    delete the poll later.
    """
    try:
        return await poll_service.create_poll(poll)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.get("", response_model=PollList)
async def list_active_polls(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0)
):
    """Polls currently accepting votes, newest first"""
    polls = await poll_service.list_active_polls(limit=limit, offset=offset)
    total = await poll_service.count_active_polls()
    return PollList(polls=polls, limit=limit, offset=offset, count=len(polls), total=total)

@router.get("/recent", response_model=List[Poll])
async def get_recent_polls(limit: int = Query(10, ge=1, le=50)):
    return await poll_service.get_recent_polls(limit=limit)

@router.get("/{poll_id}", response_model=Poll)
async def get_poll(poll_id: str):
    """Get a specific poll by ID"""
    poll = await poll_service.get_poll(poll_id)
    if not poll:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Poll with ID {poll_id} not found"
        )
    return poll

@router.put("/{poll_id}", response_model=Poll)
async def update_poll(poll_id: str, poll_update: PollUpdate):
    try:
        return await poll_service.update_poll(poll_id, poll_update)
    except VoteError as e:
        raise vote_error_to_http(e)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.post("/{poll_id}/publish", response_model=Poll)
async def publish_poll(poll_id: str, auth: PollAdminAuth):
    """Move a draft poll to active"""
    try:
        return await poll_service.publish_poll(poll_id, auth)
    except VoteError as e:
        raise vote_error_to_http(e)

@router.post("/{poll_id}/end", response_model=Poll)
async def end_poll(poll_id: str, auth: PollAdminAuth):
    """Close an active poll before its deadline"""
    try:
        return await poll_service.end_poll(poll_id, auth)
    except VoteError as e:
        raise vote_error_to_http(e)

@router.delete("/{poll_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_poll(poll_id: str, auth: PollAdminAuth):
    """Delete a poll together with its votes"""
    try:
        await poll_service.delete_poll(poll_id, auth)
    except VoteError as e:
        raise vote_error_to_http(e)

@router.post("/{poll_id}/votes", response_model=PollVoteResult, status_code=status.HTTP_201_CREATED)
async def submit_poll_vote(
    poll_id: str,
    vote: PollVoteSubmit,
    device_id: DeviceId = Depends(get_device_id)
):
    """Vote on a poll, one vote per device"""
    try:
        return await poll_vote_service.submit_vote(poll_id, device_id, vote)
    except VoteError as e:
        raise vote_error_to_http(e)

@router.get("/{poll_id}/results", response_model=PollStatistics)
async def get_poll_results(poll_id: str, breakdown: Optional[PollBreakdown] = None):
    """Option tallies with prefecture, age group and gender breakdowns.

    Pass ``breakdown`` to compute only one of them.
    """
    try:
        return await poll_vote_service.get_poll_statistics(poll_id, breakdown=breakdown)
    except VoteError as e:
        raise vote_error_to_http(e)

@router.get("/{poll_id}/top-by-prefecture", response_model=List[PrefectureTopOption])
async def get_poll_top_by_prefecture(
    poll_id: str,
    limit: Optional[int] = Query(None, ge=1, le=47)
):
    """Top option per prefecture, prefectures with the most votes first"""
    try:
        return await poll_vote_service.get_top_by_prefecture(poll_id, limit=limit)
    except VoteError as e:
        raise vote_error_to_http(e)
