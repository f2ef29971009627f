"""create library tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-17 09:12:44.301512

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BORROW_STATUS = sa.Enum("BORROWED", "RETURNED", "OVERDUE", name="borrow_status")


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "members",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("address", sa.String(length=500), nullable=False),
        sa.Column("membership_date", sa.Date(), nullable=False),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.sql.expression.true(),
        ),
        sa.Column("books_borrowed", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_members_email"), "members", ["email"], unique=True)

    op.create_table(
        "books",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("author", sa.String(length=255), nullable=False),
        sa.Column("isbn", sa.String(length=32), nullable=False),
        sa.Column("category", sa.String(length=255), nullable=False),
        sa.Column("total_copies", sa.Integer(), nullable=False),
        sa.Column("available_copies", sa.Integer(), nullable=False),
        sa.Column("publication_year", sa.Integer(), nullable=True),
        sa.Column("publisher", sa.String(length=255), nullable=True),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("created_date", sa.Date(), nullable=False),
        sa.CheckConstraint("total_copies >= 1", name="ck_books_total_copies_positive"),
        sa.CheckConstraint(
            "available_copies >= 0 AND available_copies <= total_copies",
            name="ck_books_available_copies_range",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_books_isbn"), "books", ["isbn"], unique=True)

    op.create_table(
        "borrow_records",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("book_id", sa.String(length=36), nullable=False),
        sa.Column("member_id", sa.String(length=36), nullable=False),
        sa.Column("borrow_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("return_date", sa.Date(), nullable=True),
        sa.Column("status", BORROW_STATUS, nullable=False),
        sa.Column("fine_amount", sa.Float(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["book_id"], ["books.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_borrow_records_member_id_status", "borrow_records", ["member_id", "status"], unique=False)
    op.create_index("ix_borrow_records_book_id_status", "borrow_records", ["book_id", "status"], unique=False)
    op.create_index("ix_borrow_records_status_due_date", "borrow_records", ["status", "due_date"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_borrow_records_status_due_date", table_name="borrow_records")
    op.drop_index("ix_borrow_records_book_id_status", table_name="borrow_records")
    op.drop_index("ix_borrow_records_member_id_status", table_name="borrow_records")
    op.drop_table("borrow_records")
    op.drop_index(op.f("ix_books_isbn"), table_name="books")
    op.drop_table("books")
    op.drop_index(op.f("ix_members_email"), table_name="members")
    op.drop_table("members")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        BORROW_STATUS.drop(bind, checkfirst=True)
