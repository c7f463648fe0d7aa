# models.py — Database models for the task-board service
# Hierarchy: Workspace -> Board -> List -> Card -> (Checklist/Comment/Note)
# - 24-char hex ids everywhere
# - Soft deletes via is_deleted (nothing is ever hard-deleted)
# - Ordering arrays (list_order_ids, card_order_ids) stored as JSON
# - Append-only Activity log + per-recipient Notifications

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, DateTime, JSON, Boolean, Integer, Float,
    Enum as SQLEnum, ForeignKey, Text, Index, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

ID_LENGTH = 24


def utcnow():
    return datetime.now(timezone.utc)


def new_object_id():
    return uuid.uuid4().hex[:ID_LENGTH]


def is_valid_id(value) -> bool:
    if not isinstance(value, str) or len(value) != ID_LENGTH:
        return False
    return all(c in "0123456789abcdef" for c in value)


# ============================================================
# ENUMS
# ============================================================

class BoardVisibility(str, PyEnum):
    PRIVATE = "private"
    WORKSPACE = "workspace"
    PUBLIC = "public"


class ActivityAction(str, PyEnum):
    # Workspace
    WORKSPACE_CREATED = "workspace_created"
    WORKSPACE_UPDATED = "workspace_updated"
    WORKSPACE_DELETED = "workspace_deleted"
    # Board
    BOARD_CREATED = "board_created"
    BOARD_UPDATED = "board_updated"
    BOARD_DELETED = "board_deleted"
    LIST_ORDER_UPDATED = "list_order_updated"
    MEMBER_INVITED = "member_invited"
    MEMBER_REMOVED = "member_removed"
    MEMBER_LEFT = "member_left"
    BOARD_OWNERSHIP_TRANSFERRED = "board_ownership_transferred"
    # List
    LIST_CREATED = "list_created"
    LIST_UPDATED = "list_updated"
    LIST_DELETED = "list_deleted"
    CARD_ORDER_UPDATED = "card_order_updated"
    # Card
    CARD_CREATED = "card_created"
    CARD_UPDATED = "card_updated"
    CARD_DELETED = "card_deleted"
    CARD_MOVED = "card_moved"
    CARD_COMPLETED = "card_completed"
    CARD_UNCOMPLETED = "card_uncompleted"
    CARD_MEMBER_ADDED = "card_member_added"
    CARD_MEMBER_REMOVED = "card_member_removed"
    # Card content
    COMMENT_ADDED = "comment_added"
    COMMENT_HIDDEN = "comment_hidden"
    NOTE_ADDED = "note_added"
    NOTE_HIDDEN = "note_hidden"
    CHECKLIST_ADDED = "checklist_added"
    CHECKLIST_UPDATED = "checklist_updated"
    CHECKLIST_DELETED = "checklist_deleted"
    CHECKLIST_ITEM_ADDED = "checklist_item_added"
    CHECKLIST_ITEM_COMPLETED = "checklist_item_completed"
    CHECKLIST_ITEM_UNCOMPLETED = "checklist_item_uncompleted"
    CHECKLIST_ITEM_UPDATED = "checklist_item_updated"
    CHECKLIST_ITEM_DELETED = "checklist_item_deleted"


class TargetModel(str, PyEnum):
    WORKSPACE = "Workspace"
    BOARD = "Board"
    LIST = "List"
    CARD = "Card"
    USER = "User"


class NotificationType(str, PyEnum):
    ACTIVITY = "activity"
    MENTION = "mention"
    ASSIGNMENT = "assignment"
    DUE_DATE = "due_date"
    GENERAL = "general"


# ============================================================
# USERS
# ============================================================

class User(Base):
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=new_object_id)
    email = Column(String, unique=True, nullable=False, index=True)
    display_name = Column(String, nullable=False, default="")
    avatar_url = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, index=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    notifications = relationship("Notification", back_populates="recipient")


# ============================================================
# WORKSPACES
# ============================================================

class Workspace(Base):
    __tablename__ = "workspaces"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    background = Column(String, nullable=True)
    owner_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)
    is_public = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    activity_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    members = relationship(
        "WorkspaceMember", back_populates="workspace", lazy="selectin",
        cascade="all, delete-orphan", order_by="WorkspaceMember.joined_at",
    )
    boards = relationship("Board", back_populates="workspace")

    @property
    def member_ids(self):
        return [m.user_id for m in self.members]


class WorkspaceMember(Base):
    __tablename__ = "workspace_members"

    id = Column(String(24), primary_key=True, default=new_object_id)
    workspace_id = Column(String(24), ForeignKey("workspaces.id"), nullable=False, index=True)
    user_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), default=utcnow)

    workspace = relationship("Workspace", back_populates="members")

    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
    )


# ============================================================
# BOARDS
# ============================================================

class Board(Base):
    __tablename__ = "boards"

    id = Column(String(24), primary_key=True, default=new_object_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    background = Column(String, nullable=True)
    visibility = Column(SQLEnum(BoardVisibility), default=BoardVisibility.PRIVATE, nullable=False)
    owner_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)
    workspace_id = Column(String(24), ForeignKey("workspaces.id"), nullable=False, index=True)
    list_order_ids = Column(JSON, nullable=False, default=list)
    activity_ids = Column(JSON, nullable=False, default=list)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    workspace = relationship("Workspace", back_populates="boards")
    members = relationship(
        "BoardMember", back_populates="board", lazy="selectin",
        cascade="all, delete-orphan", order_by="BoardMember.position",
    )
    invitations = relationship(
        "BoardInvitation", back_populates="board", lazy="selectin",
        cascade="all, delete-orphan", order_by="BoardInvitation.invited_at",
    )
    lists = relationship("BoardList", back_populates="board")

    __table_args__ = (
        Index("idx_board_workspace_deleted", "workspace_id", "is_deleted"),
    )


class BoardMember(Base):
    __tablename__ = "board_members"

    id = Column(String(24), primary_key=True, default=new_object_id)
    board_id = Column(String(24), ForeignKey("boards.id"), nullable=False, index=True)
    user_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    joined_at = Column(DateTime(timezone=True), default=utcnow)

    board = relationship("Board", back_populates="members")

    __table_args__ = (
        UniqueConstraint("board_id", "user_id", name="uq_board_member"),
    )


class BoardInvitation(Base):
    __tablename__ = "board_invitations"

    id = Column(String(24), primary_key=True, default=new_object_id)
    board_id = Column(String(24), ForeignKey("boards.id"), nullable=False, index=True)
    user_id = Column(String(24), ForeignKey("users.id"), nullable=True, index=True)
    email = Column(String, nullable=True)
    invited_by = Column(String(24), ForeignKey("users.id"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    invited_at = Column(DateTime(timezone=True), default=utcnow)

    board = relationship("Board", back_populates="invitations")


# ============================================================
# LISTS
# ============================================================

class BoardList(Base):
    __tablename__ = "lists"

    id = Column(String(24), primary_key=True, default=new_object_id)
    title = Column(String, nullable=False)
    board_id = Column(String(24), ForeignKey("boards.id"), nullable=False, index=True)
    position = Column(Float, nullable=False, default=0)
    card_order_ids = Column(JSON, nullable=False, default=list)
    activity_ids = Column(JSON, nullable=False, default=list)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    board = relationship("Board", back_populates="lists")


# ============================================================
# CARDS
# ============================================================

class Card(Base):
    __tablename__ = "cards"

    id = Column(String(24), primary_key=True, default=new_object_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    list_id = Column(String(24), ForeignKey("lists.id"), nullable=False, index=True)
    board_id = Column(String(24), ForeignKey("boards.id"), nullable=False, index=True)
    member_ids = Column(JSON, nullable=False, default=list)
    cover = Column(String, nullable=True)
    position = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, default=False, nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=0)
    activity_ids = Column(JSON, nullable=False, default=list)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    checklists = relationship(
        "Checklist", back_populates="card", lazy="selectin",
        cascade="all, delete-orphan", order_by="Checklist.position",
    )
    comments = relationship(
        "CardComment", back_populates="card", lazy="selectin",
        cascade="all, delete-orphan", order_by="CardComment.created_at",
    )
    notes = relationship(
        "CardNote", back_populates="card", lazy="selectin",
        cascade="all, delete-orphan", order_by="CardNote.created_at",
    )

    __table_args__ = (
        Index("idx_card_list_deleted", "list_id", "is_deleted"),
    )


class Checklist(Base):
    __tablename__ = "checklists"

    id = Column(String(24), primary_key=True, default=new_object_id)
    card_id = Column(String(24), ForeignKey("cards.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    card = relationship("Card", back_populates="checklists")
    items = relationship(
        "ChecklistItem", back_populates="checklist", lazy="selectin",
        cascade="all, delete-orphan", order_by="ChecklistItem.position",
    )


class ChecklistItem(Base):
    __tablename__ = "checklist_items"

    id = Column(String(24), primary_key=True, default=new_object_id)
    checklist_id = Column(String(24), ForeignKey("checklists.id"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    checklist = relationship("Checklist", back_populates="items")


class CardComment(Base):
    __tablename__ = "card_comments"

    id = Column(String(24), primary_key=True, default=new_object_id)
    card_id = Column(String(24), ForeignKey("cards.id"), nullable=False, index=True)
    author_id = Column(String(24), ForeignKey("users.id"), nullable=False)
    text = Column(Text, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    card = relationship("Card", back_populates="comments")


class CardNote(Base):
    __tablename__ = "card_notes"

    id = Column(String(24), primary_key=True, default=new_object_id)
    card_id = Column(String(24), ForeignKey("cards.id"), nullable=False, index=True)
    author_id = Column(String(24), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    card = relationship("Card", back_populates="notes")


# ============================================================
# ACTIVITY LOG (immutable)
# ============================================================

class Activity(Base):
    __tablename__ = "activities"

    id = Column(String(24), primary_key=True, default=new_object_id)
    actor_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)
    action = Column(SQLEnum(ActivityAction), nullable=False, index=True)
    target_id = Column(String(24), nullable=False, index=True)
    target_model = Column(SQLEnum(TargetModel), nullable=False)
    board_id = Column(String(24), nullable=True, index=True)
    workspace_id = Column(String(24), nullable=True, index=True)
    details = Column(Text, nullable=False, default="")
    is_hidden = Column(Boolean, default=False, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, index=True)

    __table_args__ = (
        Index("idx_activity_target", "target_model", "target_id"),
    )


# ============================================================
# NOTIFICATIONS
# ============================================================

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(24), primary_key=True, default=new_object_id)
    recipient_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    type = Column(SQLEnum(NotificationType), default=NotificationType.ACTIVITY, nullable=False)
    target_id = Column(String(24), nullable=True)
    target_model = Column(SQLEnum(TargetModel), nullable=True)
    activity_id = Column(String(24), ForeignKey("activities.id"), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    is_hidden = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    recipient = relationship("User", back_populates="notifications")

    __table_args__ = (
        Index("idx_notification_recipient_read", "recipient_id", "is_read"),
    )
