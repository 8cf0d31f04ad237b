"""
Feedback API Endpoints

POST   /api/feedback                       - Submit feedback (201)
GET    /api/feedback/user/{user_id}/summary - Per-skill summary and rating stats
GET    /api/feedback/{user_id}             - Feedback received by a user (paged)
PUT    /api/feedback/{feedback_id}         - Update own feedback
DELETE /api/feedback/{feedback_id}         - Delete own feedback
"""
import math
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from skillswap.api.auth import get_current_user
from skillswap.models.user import User
from skillswap.schemas import FeedbackView
from skillswap.services.feedback_service import get_feedback_service

router = APIRouter(prefix="/api/feedback", tags=["feedback"])


class SubmitFeedbackRequest(BaseModel):
    reviewee_id: UUID
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=500)
    skill_category: str = Field(..., min_length=1, max_length=100)
    session_type: Literal["skill-share", "tutoring", "collaboration", "other"] = "skill-share"
    is_anonymous: bool = False


class UpdateFeedbackRequest(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)


class FeedbackResponse(BaseModel):
    message: str
    feedback: FeedbackView


class FeedbackListResponse(BaseModel):
    feedback: List[FeedbackView]
    summary: List[Dict[str, Any]]
    pagination: Dict[str, Any]


@router.post("", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(body: SubmitFeedbackRequest, user: User = Depends(get_current_user)):
    feedback = await get_feedback_service().submit(
        user,
        body.reviewee_id,
        rating=body.rating,
        skill_category=body.skill_category,
        comment=body.comment,
        session_type=body.session_type,
        is_anonymous=body.is_anonymous,
    )
    return FeedbackResponse(
        message="Feedback submitted successfully",
        feedback=FeedbackView.model_validate(feedback),
    )


@router.get("/user/{user_id}/summary")
async def get_feedback_summary(user_id: UUID, user: User = Depends(get_current_user)):
    return await get_feedback_service().summary_for_user(user_id)


@router.get("/{user_id}", response_model=FeedbackListResponse)
async def list_feedback(
    user_id: UUID,
    skill_category: Optional[str] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    page: int = Query(1, ge=1),
    user: User = Depends(get_current_user),
):
    rows, total, summary = await get_feedback_service().list_for_user(
        user_id, skill_category=skill_category, limit=limit, page=page
    )
    total_pages = math.ceil(total / limit) if total else 0
    return FeedbackListResponse(
        feedback=[FeedbackView.model_validate(f) for f in rows],
        summary=summary,
        pagination={
            "current_page": page,
            "total_pages": total_pages,
            "total_feedback": total,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    )


@router.put("/{feedback_id}", response_model=FeedbackResponse)
async def update_feedback(
    feedback_id: UUID,
    body: UpdateFeedbackRequest,
    user: User = Depends(get_current_user),
):
    feedback = await get_feedback_service().update(feedback_id, user, rating=body.rating, comment=body.comment)
    return FeedbackResponse(
        message="Feedback updated successfully",
        feedback=FeedbackView.model_validate(feedback),
    )


@router.delete("/{feedback_id}")
async def delete_feedback(feedback_id: UUID, user: User = Depends(get_current_user)):
    await get_feedback_service().delete(feedback_id, user)
    return {"message": "Feedback deleted successfully"}
