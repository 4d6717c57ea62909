"""Create ebooks table

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the `ebooks` table holding title, download link and cover fields.
How:   Generic SQLAlchemy types (Uuid maps to native UUID on PostgreSQL).

Rollback: downgrade() drops the table entirely (destructive — all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the ebooks table and its created_at index (see app/models/ebook.py)."""
    op.create_table(
        "ebooks",
        sa.Column(
            "id",
            sa.Uuid(as_uuid=True),
            nullable=False,
            comment="Record identifier assigned on insert",
        ),
        sa.Column("title", sa.Text(), nullable=False, comment="Book title"),
        sa.Column(
            "book_link",
            sa.Text(),
            nullable=False,
            comment="Download URL of the e-book file",
        ),
        sa.Column(
            "image_url",
            sa.Text(),
            nullable=False,
            comment="Public URL of the cover (placeholder when no cover was uploaded)",
        ),
        sa.Column(
            "image_ref",
            sa.String(255),
            nullable=True,
            comment="Image host reference (Cloudinary public_id) of the uploaded cover",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this record was created (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # List returns records in insertion order
    op.create_index("idx_ebooks_created_at", "ebooks", ["created_at"])


def downgrade() -> None:
    """Drop the ebooks table. WARNING: all records are lost."""
    op.drop_index("idx_ebooks_created_at", table_name="ebooks")
    op.drop_table("ebooks")
