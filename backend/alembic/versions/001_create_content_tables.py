"""create content tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _ordered_columns():
    # id, order, optimistic-concurrency version and timestamps, shared by every ordered table
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    # Categories, ordered globally
    op.create_table(
        'categories',
        *_ordered_columns(),
        sa.Column('title_en', sa.String(length=255), nullable=False),
        sa.Column('title_ar', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('color_hex', sa.String(length=7), nullable=False, server_default='#37B24D'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order', name='uq_categories_order')
    )
    op.create_index('ix_categories_id', 'categories', ['id'])

    # Subcategories, ordered per category. No ON DELETE CASCADE: the
    # application deletes children in the same batch as the category.
    op.create_table(
        'subcategories',
        *_ordered_columns(),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('parent_subcategory_id', sa.Integer(), nullable=True),
        sa.Column('title_en', sa.String(length=255), nullable=False),
        sa.Column('title_ar', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('content_en', sa.Text(), nullable=False, server_default=''),
        sa.Column('content_ar', sa.Text(), nullable=False, server_default=''),
        sa.Column('color_hex', sa.String(length=7), nullable=False, server_default='#37B24D'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.ForeignKeyConstraint(['parent_subcategory_id'], ['subcategories.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('category_id', 'order', name='uq_subcategories_category_id_order')
    )
    op.create_index('ix_subcategories_id', 'subcategories', ['id'])
    op.create_index('ix_subcategories_category_id', 'subcategories', ['category_id'])
    op.create_index('ix_subcategories_parent_subcategory_id', 'subcategories', ['parent_subcategory_id'])

    op.create_table(
        'glossary_terms',
        *_ordered_columns(),
        sa.Column('term', sa.String(length=255), nullable=False),
        sa.Column('term_ar', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('definition', sa.Text(), nullable=False),
        sa.Column('definition_ar', sa.Text(), nullable=False, server_default=''),
        sa.Column('category', sa.String(length=255), nullable=False, server_default=''),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order', name='uq_glossary_terms_order')
    )
    op.create_index('ix_glossary_terms_id', 'glossary_terms', ['id'])
    op.create_index('ix_glossary_terms_term', 'glossary_terms', ['term'])

    for table, asset in (('diagrams', 'image'), ('templates', 'pdf')):
        op.create_table(
            table,
            *_ordered_columns(),
            sa.Column('title', sa.String(length=255), nullable=False),
            sa.Column('title_ar', sa.String(length=255), nullable=False, server_default=''),
            sa.Column('description', sa.Text(), nullable=False, server_default=''),
            sa.Column('description_ar', sa.Text(), nullable=False, server_default=''),
            sa.Column('category', sa.String(length=255), nullable=False, server_default=''),
            sa.Column(f'{asset}_url', sa.String(length=1024), nullable=False, server_default=''),
            sa.Column(f'{asset}_file_name', sa.String(length=255), nullable=False, server_default=''),
            sa.Column(f'{asset}_original_name', sa.String(length=255), nullable=False, server_default=''),
            sa.Column(f'{asset}_size', sa.Integer(), nullable=False, server_default='0'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('order', name=f'uq_{table}_order')
        )
        op.create_index(f'ix_{table}_id', table, ['id'])


def downgrade() -> None:
    op.drop_table('templates')
    op.drop_table('diagrams')
    op.drop_table('glossary_terms')
    op.drop_table('subcategories')
    op.drop_table('categories')
