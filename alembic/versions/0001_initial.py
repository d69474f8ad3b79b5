"""folders, note metadata and legacy notes

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00
"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "folders",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False, comment="所属用户ID"),
        sa.Column("name", sa.String(255), nullable=False, comment="文件夹名称"),
        sa.Column("parent_id", sa.String(64), nullable=True, comment="父文件夹ID，为空表示根目录"),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["parent_id"], ["folders.id"],
            name="fk_folders_parent_id_folders", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_folders"),
    )
    op.create_index("ix_folders_user_id", "folders", ["user_id"])
    op.create_index("ix_folders_parent_id", "folders", ["parent_id"])

    op.create_table(
        "note_metadata",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False, comment="所属用户ID"),
        sa.Column("title", sa.String(500), nullable=False, comment="笔记标题"),
        sa.Column("preview", sa.Text(), nullable=True, comment="摘要预览"),
        sa.Column("note_path", sa.String(1024), nullable=False, comment="笔记JSON文档在notes桶中的路径"),
        sa.Column("audio_path", sa.String(2048), nullable=True, comment="音频引用: notes桶内路径或原始URL"),
        sa.Column("folder_id", sa.String(64), nullable=True, comment="所在文件夹ID"),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["folder_id"], ["folders.id"],
            name="fk_note_metadata_folder_id_folders", ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_note_metadata"),
    )
    op.create_index("ix_note_metadata_user_id", "note_metadata", ["user_id"])
    op.create_index("ix_note_metadata_folder_id", "note_metadata", ["folder_id"])

    op.create_table(
        "notes",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False, comment="所属用户ID"),
        sa.Column("title", sa.String(500), nullable=True, comment="标题"),
        sa.Column("content", sa.Text(), nullable=True, comment="笔记内容(摘要)"),
        sa.Column("transcription", sa.Text(), nullable=True, comment="转录文本"),
        sa.Column("raw_summary", sa.Text(), nullable=True, comment="模型原始输出"),
        sa.Column("structured_summary", sa.JSON(), nullable=True, comment="结构化摘要"),
        sa.Column("audio_url", sa.String(2048), nullable=True, comment="音频URL"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_notes"),
    )
    op.create_index("ix_notes_user_id", "notes", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_notes_user_id", table_name="notes")
    op.drop_table("notes")
    op.drop_index("ix_note_metadata_folder_id", table_name="note_metadata")
    op.drop_index("ix_note_metadata_user_id", table_name="note_metadata")
    op.drop_table("note_metadata")
    op.drop_index("ix_folders_parent_id", table_name="folders")
    op.drop_index("ix_folders_user_id", table_name="folders")
    op.drop_table("folders")
