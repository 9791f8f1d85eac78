from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261016_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    library_type_enum = sa.Enum("IMPORT", "UPLOAD", name="librarytype")
    asset_type_enum = sa.Enum("IMAGE", "VIDEO", "AUDIO", "OTHER", name="assettype")

    op.create_table(
        "libraries",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", library_type_enum, nullable=False),
        sa.Column("import_paths", sa.JSON(), nullable=False),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_libraries_owner_id", "libraries", ["owner_id"])

    op.create_table(
        "assets",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("library_id", sa.String(length=36), sa.ForeignKey("libraries.id", ondelete="CASCADE"), nullable=False),
        sa.Column("original_path", sa.String(length=4096), nullable=False),
        sa.Column("original_file_name", sa.String(length=1024), nullable=False),
        sa.Column("device_asset_id", sa.String(length=1024), nullable=False),
        sa.Column("device_id", sa.String(length=64), nullable=False),
        sa.Column("checksum", sa.LargeBinary(length=20), nullable=False),
        sa.Column("type", asset_type_enum, nullable=False),
        sa.Column("file_created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("file_modified_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_offline", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_read_only", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sidecar_path", sa.String(length=4096), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("library_id", "original_path", name="uq_assets_library_original_path"),
    )
    op.create_index("ix_assets_owner_id", "assets", ["owner_id"])


def downgrade() -> None:
    op.drop_index("ix_assets_owner_id", table_name="assets")
    op.drop_table("assets")
    op.drop_index("ix_libraries_owner_id", table_name="libraries")
    op.drop_table("libraries")
    sa.Enum(name="assettype").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="librarytype").drop(op.get_bind(), checkfirst=True)
