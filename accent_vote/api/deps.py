from typing import Optional
from fastapi import Header, HTTPException, status
from pydantic import ValidationError

from ..errors import VoteError
from ..models.value_objects import DeviceId, Prefecture, WordId


def get_device_id(x_device_id: Optional[str] = Header(None)) -> DeviceId:
    """Device id from the X-Device-Id header"""
    if not x_device_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Device-Id header is required"
        )
    try:
        return DeviceId.from_hash(x_device_id)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid device id"
        )


def parse_word_id(word_id: int) -> WordId:
    try:
        return WordId(value=word_id)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid word id: {word_id}"
        )


def parse_prefecture(code: str) -> Prefecture:
    try:
        return Prefecture.from_code(code)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


def vote_error_to_http(error: VoteError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.to_detail())
