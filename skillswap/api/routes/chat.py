"""
Chat API Endpoints

GET    /api/chat/conversations/list - Chats I take part in
GET    /api/chat/{friend_id}        - Thread with a friend (created on first use)
POST   /api/chat/message            - Send a message (REST alternative to the relay)
PUT    /api/chat/{chat_id}/read     - Mark the other side's messages as read
DELETE /api/chat/{chat_id}          - Hide a chat from both conversation lists
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from skillswap.api.auth import get_current_user
from skillswap.models.user import User
from skillswap.schemas import ChatMessageView, ChatView
from skillswap.services.chat_service import get_chat_service, MAX_MESSAGE_LENGTH

router = APIRouter(prefix="/api/chat", tags=["chat"])


class SendMessageRequest(BaseModel):
    receiver_id: UUID
    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


class ConversationsResponse(BaseModel):
    chats: List[ChatView]


@router.get("/conversations/list", response_model=ConversationsResponse)
async def list_conversations(user: User = Depends(get_current_user)):
    chats = await get_chat_service().list_conversations(user)
    return ConversationsResponse(chats=[ChatView.model_validate(c) for c in chats])


@router.get("/{friend_id}", response_model=ChatView)
async def get_chat(friend_id: UUID, user: User = Depends(get_current_user)):
    chat = await get_chat_service().get_chat(user, friend_id)
    return ChatView.model_validate(chat)


@router.post("/message", response_model=ChatMessageView, status_code=status.HTTP_201_CREATED)
async def send_message(body: SendMessageRequest, user: User = Depends(get_current_user)):
    message = await get_chat_service().send_message(user, body.receiver_id, body.content)
    return ChatMessageView.model_validate(message)


@router.put("/{chat_id}/read")
async def mark_read(chat_id: UUID, user: User = Depends(get_current_user)):
    updated = await get_chat_service().mark_read(chat_id, user)
    return {"message": "Messages marked as read", "updated": updated}


@router.delete("/{chat_id}")
async def delete_chat(chat_id: UUID, user: User = Depends(get_current_user)):
    await get_chat_service().deactivate_chat(chat_id, user)
    return {"message": "Chat deleted successfully"}
