"""
Friends API Endpoints

GET    /api/friends               - Accepted friends
POST   /api/friends/request       - Send a friend request (201)
GET    /api/friends/requests      - Pending requests addressed to me
GET    /api/friends/suggestions   - Users with complementary skills
PUT    /api/friends/request/{id}  - Accept or decline
DELETE /api/friends/{friend_id}   - Remove a friend
"""
from typing import List, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from skillswap.api.auth import get_current_user
from skillswap.models.user import User
from skillswap.schemas import FriendRequestView, UserSummary
from skillswap.services.friendship import get_friendship_service

router = APIRouter(prefix="/api/friends", tags=["friends"])


class SendFriendRequest(BaseModel):
    receiver_id: UUID
    message: str = Field("", max_length=200)


class RespondFriendRequest(BaseModel):
    action: Literal["accept", "decline"]


class FriendsResponse(BaseModel):
    friends: List[UserSummary]


class FriendRequestResponse(BaseModel):
    message: str
    friend_request: FriendRequestView


class PendingRequestsResponse(BaseModel):
    requests: List[FriendRequestView]


@router.get("", response_model=FriendsResponse)
async def list_friends(user: User = Depends(get_current_user)):
    friends = await get_friendship_service().list_friends(user)
    return FriendsResponse(friends=[UserSummary.model_validate(f) for f in friends])


@router.post("/request", response_model=FriendRequestResponse, status_code=status.HTTP_201_CREATED)
async def send_friend_request(body: SendFriendRequest, user: User = Depends(get_current_user)):
    request = await get_friendship_service().send_request(user, body.receiver_id, body.message)
    return FriendRequestResponse(
        message="Friend request sent successfully",
        friend_request=FriendRequestView.model_validate(request),
    )


@router.get("/requests", response_model=PendingRequestsResponse)
async def list_pending_requests(user: User = Depends(get_current_user)):
    requests = await get_friendship_service().list_pending(user)
    return PendingRequestsResponse(requests=[FriendRequestView.model_validate(r) for r in requests])


@router.get("/suggestions", response_model=FriendsResponse)
async def friend_suggestions(user: User = Depends(get_current_user)):
    suggested = await get_friendship_service().suggestions(user)
    return FriendsResponse(friends=[UserSummary.model_validate(u) for u in suggested])


@router.put("/request/{request_id}", response_model=FriendRequestResponse)
async def respond_to_request(
    request_id: UUID,
    body: RespondFriendRequest,
    user: User = Depends(get_current_user),
):
    request = await get_friendship_service().respond(request_id, user, body.action)
    return FriendRequestResponse(
        message=f"Friend request {request.status}",
        friend_request=FriendRequestView.model_validate(request),
    )


@router.delete("/{friend_id}")
async def remove_friend(friend_id: UUID, user: User = Depends(get_current_user)):
    await get_friendship_service().remove_friend(user, friend_id)
    return {"message": "Friend removed successfully"}
