from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, Uuid, func, ForeignKey, UniqueConstraint, CheckConstraint
from app.db import Base

class Hunt(Base):
    __tablename__ = "hunts"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(12), unique=True, index=True, nullable=False)
    pack: Mapped[str] = mapped_column(String(64), ForeignKey("packs.slug", ondelete="RESTRICT"), index=True, nullable=False)
    completion_mode: Mapped[str] = mapped_column(String(16), nullable=False, default="anytime")  # anytime|all_required
    required_prompt_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="lobby")  # lobby|active|voting|finished
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("status in ('lobby','active','voting','finished')", name="ck_hunts_status"),
        CheckConstraint("completion_mode in ('anytime','all_required')", name="ck_hunts_completion_mode"),
    )

class HuntPlayer(Base):
    __tablename__ = "hunt_players"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    hunt_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("hunts.id", ondelete="CASCADE"), index=True, nullable=False)
    player_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("players.id", ondelete="CASCADE"), index=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(80), nullable=False, default="Anonymous")
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="player")  # host|player
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("hunt_id", "player_id", name="uq_hunt_player_once"),
    )
