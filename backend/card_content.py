# card_content.py — Comments, notes and checklists owned by a card
#
# Checklist-item mutations are guarded by Card.version: a caller may pass the
# version it last saw; a mismatch is a Conflict and nothing is written. Every
# accepted item mutation bumps the version by exactly one with a
# compare-and-swap UPDATE, in the same transaction as the item change.

import logging
from typing import Optional, Tuple

from sqlalchemy import update

from exceptions import ConflictError, NotFoundError, require_id
from hierarchy import BoardAccess, required_text
from models import (
    ActivityAction, Card, CardComment, CardNote, Checklist, ChecklistItem,
    TargetModel,
)
from permissions import require_active_member, require_author

logger = logging.getLogger("taskboard.content")


def _find(collection, child_id: str, kind: str):
    for child in collection:
        if child.id == child_id:
            return child
    raise NotFoundError(f"{kind} not found", details={f"{kind.lower()}_id": child_id})


class CardContentEngine(BoardAccess):
    """Sub-document operations on a single card."""

    async def _member_card(self, card_id: str):
        card, board = await self.load_card(card_id)
        require_active_member(board, self.actor.id)
        return card, board

    async def _after_change(self, card: Card, board, action: ActivityAction, event: str,
                            data: dict, message: str, notify: bool = True) -> Card:
        activity = await self.recorder.record(
            self.actor.id, action, card.id, TargetModel.CARD, message,
            attach_to=[card, board], board_id=board.id, workspace_id=board.workspace_id,
        )
        if notify:
            await self.recorder.notify(card.member_ids, self.actor.id, message, card.id,
                                       TargetModel.CARD, activity=activity)
        await self.publish(board.id, event, card.id, board.id, data, message)
        return await self.reload_card(card.id)

    # ============================================================
    # COMMENTS & NOTES
    # ============================================================

    async def add_comment(self, card_id: str, text: str) -> Card:
        text = required_text(text, "text")
        card, board = await self._member_card(card_id)
        comment = CardComment(card_id=card.id, author_id=self.actor.id, text=text)
        card.comments.append(comment)
        await self.db.commit()

        message = f'{self.actor_name} commented on "{card.title}"'
        return await self._after_change(
            card, board, ActivityAction.COMMENT_ADDED, "comment-added",
            {"comment_id": comment.id, "author_id": self.actor.id, "text": text}, message,
        )

    async def hide_comment(self, card_id: str, comment_id: str) -> Card:
        require_id(comment_id, "comment_id")
        card, board = await self._member_card(card_id)
        comment = _find(card.comments, comment_id, "Comment")
        require_author(comment.author_id, self.actor.id, "comment")
        if comment.is_deleted:
            raise ConflictError("Comment is already hidden", details={"comment_id": comment_id})
        comment.is_deleted = True
        await self.db.commit()

        message = f'{self.actor_name} hid a comment on "{card.title}"'
        return await self._after_change(
            card, board, ActivityAction.COMMENT_HIDDEN, "comment-hidden",
            {"comment_id": comment_id}, message,
        )

    async def add_note(self, card_id: str, content: str) -> Card:
        content = required_text(content, "content")
        card, board = await self._member_card(card_id)
        note = CardNote(card_id=card.id, author_id=self.actor.id, content=content)
        card.notes.append(note)
        await self.db.commit()

        message = f'{self.actor_name} added a note to "{card.title}"'
        return await self._after_change(
            card, board, ActivityAction.NOTE_ADDED, "note-added",
            {"note_id": note.id, "author_id": self.actor.id, "content": content}, message,
        )

    async def hide_note(self, card_id: str, note_id: str) -> Card:
        require_id(note_id, "note_id")
        card, board = await self._member_card(card_id)
        note = _find(card.notes, note_id, "Note")
        require_author(note.author_id, self.actor.id, "note")
        if note.is_deleted:
            raise ConflictError("Note is already hidden", details={"note_id": note_id})
        note.is_deleted = True
        await self.db.commit()

        message = f'{self.actor_name} hid a note on "{card.title}"'
        return await self._after_change(
            card, board, ActivityAction.NOTE_HIDDEN, "note-hidden",
            {"note_id": note_id}, message,
        )

    # ============================================================
    # CHECKLISTS
    # ============================================================

    def _live_checklist(self, card: Card, checklist_id: str) -> Checklist:
        require_id(checklist_id, "checklist_id")
        checklist = _find(card.checklists, checklist_id, "Checklist")
        if checklist.is_deleted:
            raise NotFoundError("Checklist not found", details={"checklist_id": checklist_id})
        return checklist

    def _live_item(self, checklist: Checklist, item_id: str) -> ChecklistItem:
        require_id(item_id, "item_id")
        item = _find(checklist.items, item_id, "Item")
        if item.is_deleted:
            raise NotFoundError("Item not found", details={"item_id": item_id})
        return item

    async def add_checklist(self, card_id: str, title: str) -> Card:
        title = required_text(title, "title")
        card, board = await self._member_card(card_id)
        checklist = Checklist(card_id=card.id, title=title, position=len(card.checklists))
        card.checklists.append(checklist)
        await self.db.commit()

        message = f'{self.actor_name} added checklist "{title}" to "{card.title}"'
        return await self._after_change(
            card, board, ActivityAction.CHECKLIST_ADDED, "checklist-added",
            {"checklist_id": checklist.id, "title": title}, message,
        )

    async def edit_checklist(self, card_id: str, checklist_id: str, title: str) -> Card:
        title = required_text(title, "title")
        card, board = await self._member_card(card_id)
        checklist = self._live_checklist(card, checklist_id)
        checklist.title = title
        await self.db.commit()

        message = f'{self.actor_name} renamed checklist to "{title}" on "{card.title}"'
        return await self._after_change(
            card, board, ActivityAction.CHECKLIST_UPDATED, "checklist-updated",
            {"checklist_id": checklist.id, "title": title}, message,
        )

    async def delete_checklist(self, card_id: str, checklist_id: str) -> Card:
        require_id(checklist_id, "checklist_id")
        card, board = await self._member_card(card_id)
        checklist = _find(card.checklists, checklist_id, "Checklist")
        if checklist.is_deleted:
            raise ConflictError("Checklist is already deleted", details={"checklist_id": checklist_id})
        checklist.is_deleted = True
        await self.db.commit()

        message = f'{self.actor_name} deleted checklist "{checklist.title}" from "{card.title}"'
        return await self._after_change(
            card, board, ActivityAction.CHECKLIST_DELETED, "checklist-deleted",
            {"checklist_id": checklist_id}, message,
        )

    # ============================================================
    # CHECKLIST ITEMS (version guarded)
    # ============================================================

    async def _claim_version(self, card: Card, expected: Optional[int]) -> None:
        """Compare-and-swap card.version -> version + 1 inside the open transaction."""
        if expected is not None and expected != card.version:
            raise ConflictError(
                "Card has changed since it was loaded; refresh and retry",
                "TB-STATE-002",
                {"expected_version": expected, "current_version": card.version},
            )
        result = await self.db.execute(
            update(Card)
            .where(Card.id == card.id, Card.version == card.version)
            .values(version=Card.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise ConflictError(
                "Card was modified concurrently; refresh and retry",
                "TB-STATE-002",
                {"expected_version": card.version},
            )

    async def _finish_item_change(self, card: Card, board, action: ActivityAction, event: str,
                                  data: dict, message: str) -> Tuple[Card, int]:
        card = await self._after_change(card, board, action, event, data, message)
        logger.info(f"Card {card.id} checklist version -> {card.version}")
        return card, card.version

    async def add_checklist_item(self, card_id: str, checklist_id: str, text: str,
                                 version: Optional[int] = None) -> Tuple[Card, int]:
        text = required_text(text, "text")
        card, board = await self._member_card(card_id)
        checklist = self._live_checklist(card, checklist_id)
        await self._claim_version(card, version)

        item = ChecklistItem(checklist_id=checklist.id, text=text, position=len(checklist.items))
        checklist.items.append(item)
        await self.db.commit()

        message = f'{self.actor_name} added "{text}" to checklist "{checklist.title}"'
        return await self._finish_item_change(
            card, board, ActivityAction.CHECKLIST_ITEM_ADDED, "checklist-item-added",
            {"checklist_id": checklist.id, "item_id": item.id, "text": text}, message,
        )

    async def toggle_checklist_item(self, card_id: str, checklist_id: str, item_id: str,
                                    version: Optional[int] = None) -> Tuple[Card, int]:
        card, board = await self._member_card(card_id)
        checklist = self._live_checklist(card, checklist_id)
        item = self._live_item(checklist, item_id)
        await self._claim_version(card, version)

        item.completed = not item.completed
        await self.db.commit()

        if item.completed:
            action, verb = ActivityAction.CHECKLIST_ITEM_COMPLETED, "completed"
        else:
            action, verb = ActivityAction.CHECKLIST_ITEM_UNCOMPLETED, "unchecked"
        message = f'{self.actor_name} {verb} "{item.text}" on "{card.title}"'
        return await self._finish_item_change(
            card, board, action, "checklist-item-toggled",
            {"checklist_id": checklist.id, "item_id": item.id, "completed": item.completed}, message,
        )

    async def edit_checklist_item(self, card_id: str, checklist_id: str, item_id: str, text: str,
                                  version: Optional[int] = None) -> Tuple[Card, int]:
        text = required_text(text, "text")
        card, board = await self._member_card(card_id)
        checklist = self._live_checklist(card, checklist_id)
        item = self._live_item(checklist, item_id)
        await self._claim_version(card, version)

        item.text = text
        await self.db.commit()

        message = f'{self.actor_name} edited a checklist item on "{card.title}"'
        return await self._finish_item_change(
            card, board, ActivityAction.CHECKLIST_ITEM_UPDATED, "checklist-item-updated",
            {"checklist_id": checklist.id, "item_id": item.id, "text": text}, message,
        )

    async def delete_checklist_item(self, card_id: str, checklist_id: str, item_id: str,
                                    version: Optional[int] = None) -> Tuple[Card, int]:
        card, board = await self._member_card(card_id)
        checklist = self._live_checklist(card, checklist_id)
        require_id(item_id, "item_id")
        item = _find(checklist.items, item_id, "Item")
        if item.is_deleted:
            raise ConflictError("Item is already deleted", details={"item_id": item_id})
        await self._claim_version(card, version)

        item.is_deleted = True
        await self.db.commit()

        message = f'{self.actor_name} removed "{item.text}" from checklist "{checklist.title}"'
        return await self._finish_item_change(
            card, board, ActivityAction.CHECKLIST_ITEM_DELETED, "checklist-item-deleted",
            {"checklist_id": checklist.id, "item_id": item.id}, message,
        )
