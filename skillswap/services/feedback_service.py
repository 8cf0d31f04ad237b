"""
Feedback Service

Peer ratings (1-5) with per-skill summaries. Every write refreshes the
reviewee's aggregate statistics (average_rating, total_ratings, reputation).
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.database import AsyncSessionLocal
from skillswap.models.common import UserId, to_uuid
from skillswap.models.feedback import Feedback, SESSION_TYPES
from skillswap.models.user import User
from skillswap.services.errors import Forbidden, InvalidRequest, NotFound

logger = logging.getLogger(__name__)


def _validate_rating(rating: int) -> None:
    if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
        raise InvalidRequest("Rating must be an integer between 1 and 5")


async def _get_active_user(session: AsyncSession, user_id: UserId) -> User:
    user = await session.get(User, to_uuid(user_id))
    if user is None:
        raise NotFound("User not found")
    if not user.is_active:
        raise NotFound("User is not active")
    return user


async def average_rating(session: AsyncSession, user_id: UserId) -> Dict[str, Any]:
    """Average rating and rating count received by a user."""
    result = await session.execute(
        select(func.avg(Feedback.rating), func.count(Feedback.id))
        .where(Feedback.reviewee_id == to_uuid(user_id))
    )
    avg, total = result.one()
    return {"average_rating": float(avg or 0.0), "total_ratings": int(total or 0)}


async def feedback_summary(session: AsyncSession, user_id: UserId) -> List[Dict[str, Any]]:
    """Per-skill averages for a user, best rated first."""
    avg_col = func.avg(Feedback.rating)
    result = await session.execute(
        select(Feedback.skill_category, avg_col, func.count(Feedback.id))
        .where(Feedback.reviewee_id == to_uuid(user_id))
        .group_by(Feedback.skill_category)
        .order_by(avg_col.desc())
    )
    return [
        {"skill_category": skill, "average_rating": round(float(avg), 1), "count": int(count)}
        for skill, avg, count in result.all()
    ]


async def refresh_rating_stats(session: AsyncSession, user_id: UserId) -> None:
    """Recompute the denormalized rating fields on the reviewee."""
    user = await session.get(User, to_uuid(user_id))
    if user is None:
        return
    stats = await average_rating(session, user_id)
    user.average_rating = round(stats["average_rating"], 1)
    user.total_ratings = stats["total_ratings"]
    user.reputation = round(stats["average_rating"] * stats["total_ratings"])


class FeedbackService:
    """Create, list, update and delete peer feedback"""

    def __init__(self, session_factory=AsyncSessionLocal):
        self.session_factory = session_factory

    async def submit(
        self,
        reviewer: User,
        reviewee_id: UserId,
        rating: int,
        skill_category: str,
        comment: str = "",
        session_type: str = "skill-share",
        is_anonymous: bool = False,
    ) -> Feedback:
        """
        Record feedback from `reviewer` about `reviewee_id`.

        Raises:
            InvalidRequest: Self-feedback, bad rating, or unknown session type
            NotFound: Reviewee missing or inactive
        """
        reviewee_id = to_uuid(reviewee_id)
        if reviewee_id == reviewer.id:
            raise InvalidRequest("Cannot provide feedback to yourself")
        _validate_rating(rating)
        if session_type not in SESSION_TYPES:
            raise InvalidRequest(f"Invalid session type. Must be one of: {', '.join(SESSION_TYPES)}")
        if not skill_category or not skill_category.strip():
            raise InvalidRequest("Skill category is required")

        async with self.session_factory() as session:
            await _get_active_user(session, reviewee_id)
            feedback = Feedback(
                reviewer_id=reviewer.id,
                reviewee_id=reviewee_id,
                rating=rating,
                comment=(comment or "").strip(),
                skill_category=skill_category.strip(),
                session_type=session_type,
                is_anonymous=is_anonymous,
            )
            session.add(feedback)
            await session.flush()
            await refresh_rating_stats(session, reviewee_id)
            await session.commit()
            await session.refresh(feedback)

        logger.info(f"Feedback {feedback.id}: {reviewer.id} rated {reviewee_id} {rating}/5")
        return feedback

    async def list_for_user(
        self,
        user_id: UserId,
        skill_category: Optional[str] = None,
        limit: int = 10,
        page: int = 1,
    ) -> Tuple[List[Feedback], int, List[Dict[str, Any]]]:
        """
        Feedback received by a user, newest first.

        Returns:
            (feedback page, total matching rows, per-skill summary)
        """
        limit = max(1, limit)
        page = max(1, page)
        async with self.session_factory() as session:
            await _get_active_user(session, user_id)
            query = select(Feedback).where(Feedback.reviewee_id == to_uuid(user_id))
            if skill_category:
                query = query.where(Feedback.skill_category.ilike(f"%{skill_category}%"))

            total = (await session.execute(
                select(func.count()).select_from(query.subquery())
            )).scalar_one()
            rows = await session.execute(
                query.order_by(Feedback.created_at.desc()).offset((page - 1) * limit).limit(limit)
            )
            summary = await feedback_summary(session, user_id)
            return list(rows.scalars().all()), int(total), summary

    async def summary_for_user(self, user_id: UserId) -> Dict[str, Any]:
        async with self.session_factory() as session:
            user = await _get_active_user(session, user_id)
            return {
                "summary": await feedback_summary(session, user_id),
                "rating_stats": await average_rating(session, user_id),
                "user_stats": {
                    "reputation": user.reputation,
                    "average_rating": user.average_rating,
                    "total_ratings": user.total_ratings,
                },
            }

    async def _owned(self, session: AsyncSession, feedback_id: UserId, reviewer: User) -> Feedback:
        feedback = await session.get(Feedback, to_uuid(feedback_id))
        if feedback is None:
            raise NotFound("Feedback not found")
        if feedback.reviewer_id != reviewer.id:
            raise Forbidden("Access denied")
        return feedback

    async def update(
        self,
        feedback_id: UserId,
        reviewer: User,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> Feedback:
        async with self.session_factory() as session:
            feedback = await self._owned(session, feedback_id, reviewer)
            if rating is not None:
                _validate_rating(rating)
                feedback.rating = rating
            if comment is not None:
                feedback.comment = comment.strip()
            await session.flush()
            await refresh_rating_stats(session, feedback.reviewee_id)
            await session.commit()
            await session.refresh(feedback)
        return feedback

    async def delete(self, feedback_id: UserId, reviewer: User) -> None:
        async with self.session_factory() as session:
            feedback = await self._owned(session, feedback_id, reviewer)
            reviewee_id = feedback.reviewee_id
            await session.delete(feedback)
            await session.flush()
            await refresh_rating_stats(session, reviewee_id)
            await session.commit()
        logger.info(f"Feedback {feedback_id} deleted by {reviewer.id}")


# Global service instance
_service: Optional[FeedbackService] = None


def get_feedback_service() -> FeedbackService:
    """Get or create global FeedbackService instance."""
    global _service
    if _service is None:
        _service = FeedbackService()
    return _service
