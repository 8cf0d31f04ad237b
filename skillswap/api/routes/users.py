"""
Users API Endpoints

GET /api/users                - Browse active users (search, skill filter, paging)
GET /api/users/skills/popular - Most offered skills
GET /api/users/skills/search  - Users offering or looking for a skill
GET /api/users/{user_id}      - Public profile
PUT /api/users/{user_id}      - Update my own profile
"""
import math
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from skillswap.api.auth import get_current_user
from skillswap.models.user import User
from skillswap.schemas import UserProfile, UserSummary
from skillswap.services.user_service import MAX_SKILL_LENGTH, get_user_service

router = APIRouter(prefix="/api/users", tags=["users"])


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    skills_offered: Optional[List[str]] = None
    skills_looking_for: Optional[List[str]] = None
    bio: Optional[str] = Field(None, max_length=500)


class UsersResponse(BaseModel):
    users: List[UserSummary]
    pagination: Dict[str, Any]


class ProfileResponse(BaseModel):
    user: UserProfile


class PopularSkill(BaseModel):
    skill: str
    count: int


class PopularSkillsResponse(BaseModel):
    skills: List[PopularSkill]


class SkillSearchResponse(BaseModel):
    users: List[UserSummary]


@router.get("", response_model=UsersResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    skill: Optional[str] = Query(None, max_length=MAX_SKILL_LENGTH),
    user: User = Depends(get_current_user),
):
    users, total = await get_user_service().list_users(search=search, skill=skill, page=page, limit=limit)
    total_pages = math.ceil(total / limit) if total else 0
    return UsersResponse(
        users=[UserSummary.model_validate(u) for u in users],
        pagination={
            "current_page": page,
            "total_pages": total_pages,
            "total_users": total,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    )


@router.get("/skills/popular", response_model=PopularSkillsResponse)
async def popular_skills(user: User = Depends(get_current_user)):
    return PopularSkillsResponse(skills=await get_user_service().popular_skills())


@router.get("/skills/search", response_model=SkillSearchResponse)
async def search_by_skill(
    skill: str = Query("", max_length=MAX_SKILL_LENGTH),
    type: Literal["offered", "looking_for"] = Query("offered"),
    user: User = Depends(get_current_user),
):
    users = await get_user_service().search_by_skill(skill, type)
    return SkillSearchResponse(users=[UserSummary.model_validate(u) for u in users])


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(user_id: UUID, user: User = Depends(get_current_user)):
    profile = await get_user_service().get_user(user_id)
    return ProfileResponse(user=UserProfile.model_validate(profile))


@router.put("/{user_id}", response_model=ProfileResponse)
async def update_profile(
    user_id: UUID,
    body: UpdateProfileRequest,
    user: User = Depends(get_current_user),
):
    profile = await get_user_service().update_profile(
        user,
        user_id,
        name=body.name,
        skills_offered=body.skills_offered,
        skills_looking_for=body.skills_looking_for,
        bio=body.bio,
    )
    return ProfileResponse(user=UserProfile.model_validate(profile))
