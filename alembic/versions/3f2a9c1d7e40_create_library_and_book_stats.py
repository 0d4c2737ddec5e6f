"""create_library_and_book_stats

Revision ID: 3f2a9c1d7e40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7e40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(length=40), nullable=False,
                  comment='Unique username for profile URLs'),
        sa.Column('email', sa.String(length=255), nullable=False,
                  comment="User's email address"),
        sa.Column('password_hash', sa.Text(), nullable=False,
                  comment='Bcrypt password hash'),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.text('now()'), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True,
                  comment='When the account was closed'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'books',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('open_library_id', sa.String(length=50), nullable=False,
                  comment='Open Library work id'),
        sa.Column('title', sa.String(length=500), nullable=False, comment='Book title'),
        sa.Column('cover_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_books_open_library_id'), 'books', ['open_library_id'], unique=True)

    op.create_table(
        'user_books',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('book_id', sa.Uuid(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=True, comment='Rating from 1-5 stars'),
        sa.Column('review_text', sa.Text(), nullable=True, comment='Review text content'),
        sa.Column('date_added', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'book_id', name='uq_user_book'),
        sa.CheckConstraint(
            'rating IS NULL OR (rating >= 1 AND rating <= 5)',
            name='ck_user_book_rating_range',
        ),
    )
    op.create_index(op.f('ix_user_books_user_id'), 'user_books', ['user_id'], unique=False)
    op.create_index(op.f('ix_user_books_book_id'), 'user_books', ['book_id'], unique=False)

    op.create_table(
        'tag_keys',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('mode', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'slug', name='uq_tag_key_user_slug'),
        sa.CheckConstraint(
            "mode IN ('select_one', 'select_multiple')",
            name='ck_tag_key_mode',
        ),
    )
    op.create_index(op.f('ix_tag_keys_user_id'), 'tag_keys', ['user_id'], unique=False)

    op.create_table(
        'tag_values',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tag_key_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(['tag_key_id'], ['tag_keys.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tag_key_id', 'slug', name='uq_tag_value_key_slug'),
    )
    op.create_index(op.f('ix_tag_values_tag_key_id'), 'tag_values', ['tag_key_id'], unique=False)

    op.create_table(
        'book_tag_values',
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('book_id', sa.Uuid(), nullable=False),
        sa.Column('tag_key_id', sa.Uuid(), nullable=False),
        sa.Column('tag_value_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_key_id'], ['tag_keys.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_value_id'], ['tag_values.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id', 'book_id', 'tag_key_id', 'tag_value_id'),
    )
    op.create_index(op.f('ix_book_tag_values_book_id'), 'book_tag_values', ['book_id'], unique=False)

    op.create_table(
        'book_stats',
        sa.Column('book_id', sa.Uuid(), nullable=False),
        sa.Column('reads_count', sa.Integer(), server_default='0', nullable=False,
                  comment='Active readers whose status is finished'),
        sa.Column('want_to_read_count', sa.Integer(), server_default='0', nullable=False,
                  comment='Active readers whose status is want-to-read'),
        sa.Column('rating_sum', sa.Numeric(), server_default='0', nullable=False,
                  comment='Sum of ratings from active readers'),
        sa.Column('rating_count', sa.Integer(), server_default='0', nullable=False,
                  comment='Number of ratings from active readers'),
        sa.Column('review_count', sa.Integer(), server_default='0', nullable=False,
                  comment='Number of non-empty reviews from active readers'),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('book_id'),
    )
    # Popular listings sort on these
    op.create_index('ix_book_stats_reads_count', 'book_stats', ['reads_count'], unique=False)
    op.create_index('ix_book_stats_rating_count', 'book_stats', ['rating_count'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_book_stats_rating_count', table_name='book_stats')
    op.drop_index('ix_book_stats_reads_count', table_name='book_stats')
    op.drop_table('book_stats')
    op.drop_index(op.f('ix_book_tag_values_book_id'), table_name='book_tag_values')
    op.drop_table('book_tag_values')
    op.drop_index(op.f('ix_tag_values_tag_key_id'), table_name='tag_values')
    op.drop_table('tag_values')
    op.drop_index(op.f('ix_tag_keys_user_id'), table_name='tag_keys')
    op.drop_table('tag_keys')
    op.drop_index(op.f('ix_user_books_book_id'), table_name='user_books')
    op.drop_index(op.f('ix_user_books_user_id'), table_name='user_books')
    op.drop_table('user_books')
    op.drop_index(op.f('ix_books_open_library_id'), table_name='books')
    op.drop_table('books')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_table('users')
