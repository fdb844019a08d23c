"""Initial add-on schema

Revision ID: a1c2e3f4b5d6
Revises:

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime

# revision identifiers, used by Alembic.
revision = "a1c2e3f4b5d6"
down_revision = None
branch_labels = None
depends_on = None

REVISION_TABLES = ("karts_revs", "tracks_revs", "arenas_revs")


def upgrade():
    op.create_table(
        "user",
        Column("id", Integer, primary_key=True),
        Column("user", String(100), unique=True),
        Column("email", String(255)),
        Column("password", String(255)),
        Column("admin_access", Boolean, default=False),
        Column("edit_addons_access", Boolean, default=False),
    )

    op.create_table(
        "addons",
        Column("id", String(64), primary_key=True),
        Column("type", String(16), nullable=False, index=True),
        Column("name", String(255), nullable=False),
        Column("uploader", Integer, sa.ForeignKey("user.id", ondelete="SET NULL"), nullable=True),
        Column("creation_date", DateTime),
        Column("designer", String(255)),
        Column("description", Text),
        Column("license", Text),
        Column("min_include_ver", String(16)),
        Column("max_include_ver", String(16)),
        Column("image", Integer),
        Column("icon", Integer),
    )
    op.create_index("idx_addons_type_name", "addons", ["type", "name"])

    # One revision table per add-on type, karts also store an icon
    for table in REVISION_TABLES:
        columns = [
            Column("id", String(64), primary_key=True),
            Column("addon_id", String(64), sa.ForeignKey("addons.id", ondelete="CASCADE"), nullable=False, index=True),
            Column("fileid", Integer, nullable=False),
            Column("revision", Integer, nullable=False),
            Column("format", String(16)),
            Column("image", Integer),
            Column("moderator_note", Text),
            Column("status", Integer, nullable=False),
            Column("creation_date", DateTime),
        ]
        if table == "karts_revs":
            columns.append(Column("icon", Integer))
        op.create_table(
            table,
            *columns,
            sa.UniqueConstraint("addon_id", "revision", name=f"uq_{table}_addon_revision"),
        )

    op.create_table(
        "files",
        Column("id", Integer, primary_key=True),
        Column("addon_id", String(64), sa.ForeignKey("addons.id", ondelete="SET NULL"), nullable=True),
        Column("file_path", String, nullable=False),
        Column("file_type", sa.Enum("image", "source", "content", name="file_type"), nullable=False),
        Column("approved", Boolean),
        Column("date_added", DateTime),
        Column("delete_date", DateTime, nullable=True, index=True),
    )
    op.create_index("idx_files_addon_type", "files", ["addon_id", "file_type"])

    op.create_table(
        "cache",
        Column("file", String(255), primary_key=True),
        Column("addon", String(64), sa.ForeignKey("addons.id", ondelete="SET NULL"), nullable=True, index=True),
        Column("props", String(255), nullable=True),
    )

    op.create_table(
        "activity_log",
        Column("id", Integer, primary_key=True),
        Column("timestamp", DateTime, index=True),
        Column("user_id", Integer, sa.ForeignKey("user.id", ondelete="SET NULL"), nullable=True),
        Column("action_type", String(50), index=True),
        Column("addon_id", String(64), nullable=True),
        Column("details", Text),
    )
    op.create_index("idx_activity_timestamp_action", "activity_log", ["timestamp", "action_type"])

    op.create_table(
        "webhook",
        Column("id", Integer, primary_key=True),
        Column("url", String(500), nullable=False),
        Column("events", Text),
        Column("secret", String(100)),
        Column("active", Boolean, default=True),
    )


def downgrade():
    op.drop_table("webhook")
    op.drop_table("activity_log")
    op.drop_table("cache")
    op.drop_table("files")
    for table in reversed(REVISION_TABLES):
        op.drop_table(table)
    op.drop_table("addons")
    op.drop_table("user")
