"""Database models for game rooms."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Room(Base):
    """Database model for game rooms.

    Attributes:
        id: Room ID (generated by the manager)
        game_name: Game the room was created for
        unlisted: Whether the room is hidden from public listings
        setup_data: Caller payload, including team bookkeeping
        next_room_id: Successor room created by "play again"
        initial_state: Game state produced at creation
        created_at: When the room was created
        updated_at: When the room record was last written
    """

    __tablename__ = "rooms"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    game_name: Mapped[str] = mapped_column(String(100), nullable=False)
    unlisted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    setup_data: Mapped[Any] = mapped_column(JSON, nullable=True)
    next_room_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    initial_state: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), nullable=False
    )

    # Relationships
    players: Mapped[list["RoomPlayer"]] = relationship(
        "RoomPlayer",
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="RoomPlayer.slot",
    )

    # Composite index for list_rooms(game_name) queries
    __table_args__ = (Index("ix_rooms_game_name_unlisted", "game_name", "unlisted"),)


class RoomPlayer(Base):
    """Database model for a player slot in a room.

    Attributes:
        room_id: Foreign key to the room
        slot: Slot index (0 to player count - 1)
        name: Seated player's display name (NULL when open)
        credentials: Seated player's credentials (NULL when open)
        data: Player payload
    """

    __tablename__ = "room_players"

    room_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True
    )
    slot: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    credentials: Mapped[str | None] = mapped_column(String(255), nullable=True)
    data: Mapped[Any] = mapped_column(JSON, nullable=True)

    # Relationships
    room: Mapped["Room"] = relationship("Room", back_populates="players")
