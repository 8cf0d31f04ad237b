"""
Demo Data Loader

Seeds users, friendships and session history for manual testing.
Usage: python -m skillswap.scripts.load_demo --users 6 --completed 2
"""
import argparse
import asyncio
import secrets
from datetime import timedelta
from typing import List

from faker import Faker
from sqlalchemy import delete

from skillswap.database import AsyncSessionLocal, init_models
from skillswap.models import Chat, ChatMessage, Feedback, FriendRequest, SessionFeedback, SkillSession, User
from skillswap.models.common import canonical_pair, utcnow

fake = Faker()

SKILLS = [
    "Python", "Guitar", "Calculus", "Photography", "Spanish",
    "Public Speaking", "Figma", "Chess", "Cooking", "Machine Learning",
]


async def clear_demo_data():
    """Delete every row, children first"""
    async with AsyncSessionLocal() as session:
        for model in (SessionFeedback, SkillSession, ChatMessage, Chat, Feedback, FriendRequest, User):
            await session.execute(delete(model))
        await session.commit()
    print("✓ Cleared existing data")


def build_user(index: int) -> User:
    offered = fake.random_elements(SKILLS, length=2, unique=True)
    wanted = fake.random_elements([s for s in SKILLS if s not in offered], length=2, unique=True)
    return User(
        name=fake.name()[:50],
        student_id=f"STU{index + 1:05d}",
        email=f"student{index + 1}@campus.example.edu",
        api_token=secrets.token_hex(24),
        skills_offered=list(offered),
        skills_looking_for=list(wanted),
        bio=fake.sentence(nb_words=12),
    )


async def load_demo(user_count: int, completed_per_pair: int) -> List[User]:
    """
    Create `user_count` users, befriend consecutive users and give each
    friend pair `completed_per_pair` finished sessions.
    """
    now = utcnow()
    async with AsyncSessionLocal() as session:
        users = [build_user(i) for i in range(user_count)]
        session.add_all(users)
        await session.flush()

        for first, second in zip(users, users[1:]):
            session.add(FriendRequest(
                sender_id=first.id,
                receiver_id=second.id,
                status="accepted",
                message="Let's swap skills!",
                responded_at=now,
            ))
            pair = canonical_pair(first.id, second.id)
            chat = Chat(pair_key=pair.key, user_low=pair.low, user_high=pair.high, last_message_at=now)
            session.add(chat)
            await session.flush()
            session.add(ChatMessage(chat_id=chat.id, sender_id=first.id, content=fake.sentence()))

            for number in range(1, completed_per_pair + 1):
                start = now - timedelta(days=7 * (completed_per_pair - number + 1))
                duration = fake.random_int(min=900, max=5400)
                session.add(SkillSession(
                    pair_key=pair.key,
                    user_low=pair.low,
                    user_high=pair.high,
                    chat_id=chat.id,
                    started_by=first.id,
                    start_time=start,
                    end_time=start + timedelta(seconds=duration),
                    duration_seconds=duration,
                    status="completed",
                    ended_by=second.id,
                    session_number=number,
                    is_first_session=number == 1,
                ))

        await session.commit()

    print(f"  Created {len(users)} users, {max(0, len(users) - 1)} friendships")
    return users


async def main(args):
    await init_models()
    if args.clear:
        await clear_demo_data()
    users = await load_demo(args.users, args.completed)
    print("\nBearer tokens:")
    for user in users:
        print(f"  {user.name:<30} {user.id}  {user.api_token}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Load Skill Swap demo data")
    parser.add_argument("--users", type=int, default=6, help="Number of users to create")
    parser.add_argument("--completed", type=int, default=1, help="Completed sessions per friend pair (max 5)")
    parser.add_argument("--clear", action="store_true", help="Delete existing data first")
    args = parser.parse_args()
    args.completed = max(0, min(args.completed, 5))
    asyncio.run(main(args))
