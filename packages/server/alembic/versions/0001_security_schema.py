"""Security schema: apps, groups, roles, resources, navs, login events, search mirror.

Revision ID: 0001_security_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001_security_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _auditing_columns() -> list[sa.Column]:
    return [
        sa.Column("created_by", sa.String(50), nullable=False, server_default="system"),
        sa.Column("created_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_modified_by", sa.String(50), nullable=True),
        sa.Column("last_modified_date", sa.DateTime(timezone=True), nullable=True),
    ]


def _app_fk() -> sa.Column:
    return sa.Column("app_id", sa.Integer(), sa.ForeignKey("security_app.id"), nullable=True, index=True)


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # -----------------------------------------------------------------------
    # 1. Apps (tenants)
    # -----------------------------------------------------------------------
    op.create_table(
        "security_app",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("app_name", sa.String(50), nullable=False),
        sa.Column("app_key", sa.String(20), nullable=True),
        sa.Column("app_secret", sa.String(20), nullable=True),
        sa.Column("st", sa.String(60), nullable=True),
        *_auditing_columns(),
    )
    op.create_index("ix_security_app_app_name", "security_app", ["app_name"], unique=True)
    op.create_index("ix_security_app_app_key", "security_app", ["app_key"], unique=True)

    # -----------------------------------------------------------------------
    # 2. App-scoped entities
    # -----------------------------------------------------------------------
    op.create_table(
        "security_group",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("st", sa.String(60), nullable=True),
        _app_fk(),
        *_auditing_columns(),
    )

    op.create_table(
        "security_role",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("st", sa.String(60), nullable=True),
        _app_fk(),
        *_auditing_columns(),
    )

    op.create_table(
        "security_resource_entity",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("url", sa.String(255), nullable=False),
        sa.Column("st", sa.String(60), nullable=True),
        _app_fk(),
        *_auditing_columns(),
    )

    op.create_table(
        "security_nav",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("icon", sa.String(50), nullable=True),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("st", sa.String(60), nullable=True),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("security_nav.id"), nullable=True, index=True),
        sa.Column(
            "resource_id",
            sa.Integer(),
            sa.ForeignKey("security_resource_entity.id"),
            nullable=True,
            index=True,
        ),
        _app_fk(),
        *_auditing_columns(),
    )

    op.create_table(
        "security_login_event",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_login", sa.String(50), nullable=False, index=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(255), nullable=True),
        sa.Column("login_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("token_overdue_time", sa.DateTime(timezone=True), nullable=True),
        _app_fk(),
    )

    # -----------------------------------------------------------------------
    # 3. Link tables
    # -----------------------------------------------------------------------
    op.create_table(
        "security_group_roles",
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("security_group.id"), primary_key=True),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("security_role.id"), primary_key=True, index=True),
    )
    op.create_table(
        "security_role_resources",
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("security_role.id"), primary_key=True),
        sa.Column(
            "resource_id",
            sa.Integer(),
            sa.ForeignKey("security_resource_entity.id"),
            primary_key=True,
            index=True,
        ),
    )
    op.create_table(
        "security_role_navs",
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("security_role.id"), primary_key=True),
        sa.Column("nav_id", sa.Integer(), sa.ForeignKey("security_nav.id"), primary_key=True, index=True),
    )

    # -----------------------------------------------------------------------
    # 4. Search mirror
    # -----------------------------------------------------------------------
    op.create_table(
        "search_documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("index_name", sa.String(40), nullable=False, index=True),
        sa.Column("doc_id", sa.Integer(), nullable=False),
        sa.Column("app_id", sa.Integer(), nullable=True, index=True),
        sa.Column("body", sa.JSON(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.UniqueConstraint("index_name", "doc_id", name="uq_search_documents_index_doc"),
    )

    # Substring prefilter on content (Postgres only)
    if op.get_bind().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")
        op.execute(
            "CREATE INDEX ix_search_documents_content_trgm "
            "ON search_documents USING GIN (content gin_trgm_ops)"
        )


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for table in (
        "search_documents",
        "security_role_navs",
        "security_role_resources",
        "security_group_roles",
        "security_login_event",
        "security_nav",
        "security_resource_entity",
        "security_role",
        "security_group",
        "security_app",
    ):
        op.drop_table(table)
