from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from ..schemas import HealthResponse, RoomMembersResponse
from ..state import RelayState

router = APIRouter(prefix="", tags=["rooms"])


def _state(request: Request) -> RelayState:
    return request.app.state.dispatcher.state


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    state = _state(request)
    return HealthResponse(connections=len(state.registry), rooms=len(state.rooms))


@router.get("/rooms/{room_id}/members", response_model=RoomMembersResponse)
async def room_members(room_id: str, request: Request):
    members = _state(request).members_of(room_id)
    if not members:
        raise HTTPException(status_code=404, detail="No live members in room")
    return RoomMembersResponse(room_id=room_id, user_ids=sorted(members))
