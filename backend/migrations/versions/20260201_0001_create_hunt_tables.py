from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20260201_0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "players",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(80), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_table(
        "packs",
        sa.Column("slug", sa.String(64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("radius_km", sa.Float(), nullable=True),
        sa.Column("area", sa.String(120), nullable=True),
    )
    op.create_table(
        "prompts",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("pack", sa.String(64), sa.ForeignKey("packs.slug", ondelete="CASCADE"), nullable=False),
    )
    op.create_index("ix_prompts_pack", "prompts", ["pack"])

    op.create_table(
        "hunts",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(12), nullable=False),
        sa.Column("pack", sa.String(64), sa.ForeignKey("packs.slug", ondelete="RESTRICT"), nullable=False),
        sa.Column("completion_mode", sa.String(16), nullable=False, server_default="anytime"),
        sa.Column("required_prompt_count", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="lobby"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("status in ('lobby','active','voting','finished')", name="ck_hunts_status"),
        sa.CheckConstraint("completion_mode in ('anytime','all_required')", name="ck_hunts_completion_mode"),
    )
    op.create_index("ix_hunts_code", "hunts", ["code"], unique=True)
    op.create_index("ix_hunts_pack", "hunts", ["pack"])

    op.create_table(
        "hunt_players",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("hunt_id", sa.Uuid(), sa.ForeignKey("hunts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("player_id", sa.Uuid(), sa.ForeignKey("players.id", ondelete="CASCADE"), nullable=False),
        sa.Column("display_name", sa.String(80), nullable=False, server_default="Anonymous"),
        sa.Column("role", sa.String(16), nullable=False, server_default="player"),
        sa.Column("joined_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("finished_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.UniqueConstraint("hunt_id", "player_id", name="uq_hunt_player_once"),
    )
    op.create_index("ix_hunt_players_hunt_id", "hunt_players", ["hunt_id"])
    op.create_index("ix_hunt_players_player_id", "hunt_players", ["player_id"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("hunt_id", sa.Uuid(), sa.ForeignKey("hunts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("player_id", sa.Uuid(), sa.ForeignKey("players.id", ondelete="CASCADE"), nullable=False),
        sa.Column("prompt_id", sa.Uuid(), sa.ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("photo_path", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("hunt_id", "player_id", "prompt_id", name="uq_submission_one_per_prompt"),
    )
    op.create_index("ix_submissions_hunt_id", "submissions", ["hunt_id"])
    op.create_index("ix_submissions_player_id", "submissions", ["player_id"])
    op.create_index("ix_submissions_prompt_id", "submissions", ["prompt_id"])

    op.create_table(
        "votes",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("submission_id", sa.Uuid(), sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("player_id", sa.Uuid(), sa.ForeignKey("players.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category", sa.String(32), nullable=False, server_default="best"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_votes_submission_id", "votes", ["submission_id"])
    op.create_index("ix_votes_player_id", "votes", ["player_id"])

def downgrade() -> None:
    op.drop_table("votes")
    op.drop_table("submissions")
    op.drop_table("hunt_players")
    op.drop_table("hunts")
    op.drop_table("prompts")
    op.drop_table("packs")
    op.drop_table("players")
