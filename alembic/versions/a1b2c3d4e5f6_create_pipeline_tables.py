"""Create presentation, narration and video export tables."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create pipeline tables."""
    op.create_table(
        "presentations",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("owner_id", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("theme", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_presentations_owner_id"), "presentations", ["owner_id"], unique=False)

    op.create_table(
        "slides",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("presentation_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=True),
        sa.Column("blocks", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["presentation_id"], ["presentations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_slides_presentation_id"), "slides", ["presentation_id"], unique=False)

    op.create_table(
        "speaker_notes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("slide_id", sa.String(length=36), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_ai_generated", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_speaker_notes_slide_id"), "speaker_notes", ["slide_id"], unique=True)

    op.create_table(
        "narration_projects",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("project_id", sa.String(length=36), nullable=False),
        sa.Column("voice", sa.String(length=50), nullable=False),
        sa.Column("speed", sa.Float(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("total_duration", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_narration_projects_project_id"), "narration_projects", ["project_id"], unique=False
    )

    op.create_table(
        "narration_slides",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("narration_project_id", sa.String(length=36), nullable=False),
        sa.Column("slide_id", sa.String(length=36), nullable=False),
        sa.Column("slide_number", sa.Integer(), nullable=False),
        sa.Column("speaker_notes", sa.Text(), nullable=False),
        sa.Column("audio_url", sa.String(length=1000), nullable=True),
        sa.Column("duration", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["narration_project_id"], ["narration_projects.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("narration_project_id", "slide_id", name="uq_narration_slides_project_slide"),
    )
    op.create_index(
        op.f("ix_narration_slides_narration_project_id"),
        "narration_slides",
        ["narration_project_id"],
        unique=False,
    )

    op.create_table(
        "video_export_jobs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("project_id", sa.String(length=36), nullable=False),
        sa.Column("narration_project_id", sa.String(length=36), nullable=True),
        sa.Column("format", sa.String(length=10), nullable=False),
        sa.Column("resolution", sa.String(length=10), nullable=False),
        sa.Column("include_narration", sa.Boolean(), nullable=False),
        sa.Column("slide_transition", sa.String(length=10), nullable=False),
        sa.Column("slide_duration", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("output_url", sa.String(length=1000), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["narration_project_id"], ["narration_projects.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_video_export_jobs_project_id"), "video_export_jobs", ["project_id"], unique=False
    )


def downgrade() -> None:
    """Drop pipeline tables."""
    op.drop_index(op.f("ix_video_export_jobs_project_id"), table_name="video_export_jobs")
    op.drop_table("video_export_jobs")
    op.drop_index(op.f("ix_narration_slides_narration_project_id"), table_name="narration_slides")
    op.drop_table("narration_slides")
    op.drop_index(op.f("ix_narration_projects_project_id"), table_name="narration_projects")
    op.drop_table("narration_projects")
    op.drop_index(op.f("ix_speaker_notes_slide_id"), table_name="speaker_notes")
    op.drop_table("speaker_notes")
    op.drop_index(op.f("ix_slides_presentation_id"), table_name="slides")
    op.drop_table("slides")
    op.drop_index(op.f("ix_presentations_owner_id"), table_name="presentations")
    op.drop_table("presentations")
