"""
User Directory Service

Browsing and searching student profiles by name or skill, profile updates
(own profile only) and the most offered skills across campus.
"""
import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import String, cast, func, or_, select

from skillswap.database import AsyncSessionLocal
from skillswap.models.common import UserId, to_uuid
from skillswap.models.user import User
from skillswap.services.errors import Forbidden, InvalidRequest, NotFound

logger = logging.getLogger(__name__)

SKILL_FIELDS = {
    "offered": User.skills_offered,
    "looking_for": User.skills_looking_for,
}
MAX_SKILL_LENGTH = 50


def skill_matches(column, term: str):
    """Case-insensitive substring match against any entry of a JSON skill list."""
    return cast(column, String).ilike(f"%{term}%")


def clean_skills(skills: List[str]) -> List[str]:
    """Strip entries, drop blanks and duplicates, keep first-seen order."""
    cleaned = []
    for skill in skills:
        skill = (skill or "").strip()
        if not skill:
            continue
        if len(skill) > MAX_SKILL_LENGTH:
            raise InvalidRequest(f"Each skill must be between 1 and {MAX_SKILL_LENGTH} characters")
        if skill.lower() not in {s.lower() for s in cleaned}:
            cleaned.append(skill)
    return cleaned


def _ranked(query):
    return query.order_by(User.reputation.desc(), User.average_rating.desc(), User.name)


class UserService:
    """Student directory queries and profile edits"""

    def __init__(self, session_factory=AsyncSessionLocal):
        self.session_factory = session_factory

    async def list_users(
        self,
        search: Optional[str] = None,
        skill: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[User], int]:
        """
        Active users matching `search` (name, student id, email or skills)
        or `skill`, best reputation first.

        Returns:
            (users on the requested page, total matching users)
        """
        limit = max(1, limit)
        page = max(1, page)

        clauses = []
        if search:
            clauses += [
                User.name.ilike(f"%{search}%"),
                User.student_id.ilike(f"%{search}%"),
                User.email.ilike(f"%{search}%"),
                skill_matches(User.skills_offered, search),
                skill_matches(User.skills_looking_for, search),
            ]
        if skill:
            clauses += [
                skill_matches(User.skills_offered, skill),
                skill_matches(User.skills_looking_for, skill),
            ]

        query = select(User).where(User.is_active.is_(True))
        if clauses:
            query = query.where(or_(*clauses))

        async with self.session_factory() as session:
            total = (await session.execute(
                select(func.count()).select_from(query.subquery())
            )).scalar_one()
            rows = await session.execute(
                _ranked(query).offset((page - 1) * limit).limit(limit)
            )
            return list(rows.scalars().all()), int(total)

    async def get_user(self, user_id: UserId) -> User:
        async with self.session_factory() as session:
            user = await session.get(User, to_uuid(user_id))
            if user is None or not user.is_active:
                raise NotFound("User not found")
            return user

    async def update_profile(
        self,
        user: User,
        target_id: UserId,
        name: Optional[str] = None,
        skills_offered: Optional[List[str]] = None,
        skills_looking_for: Optional[List[str]] = None,
        bio: Optional[str] = None,
    ) -> User:
        """
        Update the caller's own profile; fields left as None are unchanged.

        Raises:
            Forbidden: `target_id` is someone else's profile
            NotFound: Profile does not exist
            InvalidRequest: Name shorter than 2 characters or oversized skills
        """
        target_id = to_uuid(target_id)
        if target_id != user.id:
            raise Forbidden("Access denied")

        async with self.session_factory() as session:
            profile = await session.get(User, target_id)
            if profile is None:
                raise NotFound("User not found")

            if name is not None:
                name = name.strip()
                if not 2 <= len(name) <= 50:
                    raise InvalidRequest("Name must be between 2 and 50 characters")
                profile.name = name
            if skills_offered is not None:
                profile.skills_offered = clean_skills(skills_offered)
            if skills_looking_for is not None:
                profile.skills_looking_for = clean_skills(skills_looking_for)
            if bio is not None:
                profile.bio = bio.strip()

            await session.commit()
            await session.refresh(profile)

        logger.info(f"Profile {profile.id} updated")
        return profile

    async def popular_skills(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Most offered skills across active users, most common first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(User.skills_offered).where(User.is_active.is_(True))
            )
            counts = Counter(
                skill
                for skills in result.scalars().all()
                for skill in set(skills or [])
            )
        return [
            {"skill": skill, "count": count}
            for skill, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
        ]

    async def search_by_skill(self, skill: str, skill_type: str = "offered", limit: int = 20) -> List[User]:
        """
        Users offering (or looking for) a skill, best reputation first.

        Raises:
            InvalidRequest: Missing skill or unknown skill type
        """
        if not skill or not skill.strip():
            raise InvalidRequest("Skill parameter is required")
        column = SKILL_FIELDS.get(skill_type)
        if column is None:
            raise InvalidRequest(f"Invalid skill type. Must be one of: {', '.join(SKILL_FIELDS)}")

        async with self.session_factory() as session:
            result = await session.execute(
                _ranked(
                    select(User)
                    .where(User.is_active.is_(True))
                    .where(skill_matches(column, skill.strip()))
                ).limit(limit)
            )
            return list(result.scalars().all())


# Global service instance
_service: Optional[UserService] = None


def get_user_service() -> UserService:
    """Get or create global UserService instance."""
    global _service
    if _service is None:
        _service = UserService()
    return _service
