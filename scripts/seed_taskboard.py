#!/usr/bin/env python3
"""
Task Board — Sample Data Seeder
Creates demo users, a workspace, boards, lists, cards and checklists through
the same manager classes the API uses, so every record comes with its
activity trail and notifications.

Usage (after `pip install -e .`):
    DATABASE_URL=sqlite+aiosqlite:///./demo.db python scripts/seed_taskboard.py
    python scripts/seed_taskboard.py --boards 3 --cards 6 --seed 7
"""

import argparse
import asyncio
import random

from sqlalchemy import select

from auth import AuthService, CurrentUser
from card_content import CardContentEngine
from database import get_db_context, init_db, close_db
from hierarchy import HierarchyManager
from models import User


# ── Configuration ───────────────────────────────────────────

DEMO_PASSWORD = "DemoPassword123!"
PEOPLE = [
    ("Alex Chen", "alex@taskboard.dev"),
    ("Jordan Patel", "jordan@taskboard.dev"),
    ("Riley Santos", "riley@taskboard.dev"),
    ("Quinn Okafor", "quinn@taskboard.dev"),
]
BOARD_TITLES = ["Product Roadmap", "Sprint 14", "Marketing Launch", "Hiring Pipeline", "Bug Triage"]
LIST_TITLES = ["Backlog", "In Progress", "Review", "Done"]
CARD_TITLES = [
    "Draft release notes", "Fix login redirect", "Design onboarding flow", "Write API docs",
    "Migrate to Postgres 16", "Set up staging alerts", "Interview candidates", "Refresh landing page",
    "Audit permissions", "Plan retro", "Update pricing table", "Improve search ranking",
]
CHECKLIST_ITEMS = ["Scope", "Implement", "Test", "Ship"]


def _as_actor(user: User) -> CurrentUser:
    return CurrentUser(id=user.id, email=user.email, display_name=user.display_name, is_active=True)


async def _ensure_user(db, name: str, email: str) -> User:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        return user
    user = User(
        email=email,
        display_name=name,
        password_hash=AuthService.hash_password(DEMO_PASSWORD),
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user


async def seed(boards: int, cards_per_list: int) -> dict:
    counts = {"users": 0, "boards": 0, "lists": 0, "cards": 0, "checklist_items": 0}
    async with get_db_context() as db:
        users = [await _ensure_user(db, name, email) for name, email in PEOPLE]
        counts["users"] = len(users)
        owner, *others = users

        manager = HierarchyManager(db, _as_actor(owner))
        workspace = await manager.create_workspace("Demo Workspace", "Seeded sample data")

        for title in BOARD_TITLES[:boards]:
            board = await manager.create_board(title, workspace.id)
            counts["boards"] += 1
            for other in others:
                await manager.invite_member(board.id, user_id=other.id)

            for list_title in LIST_TITLES:
                lst = await manager.create_list(board.id, list_title)
                counts["lists"] += 1
                for card_title in random.sample(CARD_TITLES, cards_per_list):
                    author = random.choice(users)
                    content = CardContentEngine(db, _as_actor(author))
                    card = await HierarchyManager(db, _as_actor(author)).create_card(
                        card_title, lst.id, board.id,
                    )
                    counts["cards"] += 1

                    card = await content.add_checklist(card.id, "Steps")
                    checklist = card.checklists[0]
                    for item_text in CHECKLIST_ITEMS:
                        await content.add_checklist_item(card.id, checklist.id, item_text)
                        counts["checklist_items"] += 1
                    if random.random() < 0.5:
                        await content.add_comment(card.id, f"Picking this up, {author.display_name}")
    return counts


# ── CLI ─────────────────────────────────────────────────────

async def _run(args) -> dict:
    await init_db()
    try:
        return await seed(args.boards, args.cards)
    finally:
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Task Board Sample Data Seeder")
    parser.add_argument("--boards", type=int, default=2, help="Boards to create (max 5)")
    parser.add_argument("--cards", type=int, default=3, help="Cards per list")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()
    args.boards = max(1, min(args.boards, len(BOARD_TITLES)))
    args.cards = max(0, min(args.cards, len(CARD_TITLES)))
    random.seed(args.seed)

    counts = asyncio.run(_run(args))
    print("✅ Sample data seeded")
    print(f"   Users: {counts['users']} (password: {DEMO_PASSWORD})")
    print(f"   Boards: {counts['boards']}")
    print(f"   Lists: {counts['lists']}")
    print(f"   Cards: {counts['cards']}")
    print(f"   Checklist Items: {counts['checklist_items']}")


if __name__ == "__main__":
    main()
