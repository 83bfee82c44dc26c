# backend/alembic/versions/001_booking_engine.py
"""Booking engine schema

Revision ID: 001_booking_engine
Revises:
Create Date: 2026-01-12 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from barberbook.models.booking import SQLITE_OVERLAP_TRIGGERS

# revision identifiers, used by Alembic.
revision: str = "001_booking_engine"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _create_extension_prefer_extensions_schema(extension_name: str) -> None:
    """Create extension using extensions schema when available."""

    bind = op.get_bind()
    if bind is None or bind.dialect.name != "postgresql":
        return

    op.execute(
        f"""
        DO $$
        DECLARE
            extensions_schema_exists BOOLEAN;
            extension_installed BOOLEAN;
        BEGIN
            SELECT EXISTS (
                SELECT 1 FROM pg_namespace WHERE nspname = 'extensions'
            ) INTO extensions_schema_exists;

            SELECT EXISTS (
                SELECT 1 FROM pg_extension WHERE extname = '{extension_name}'
            ) INTO extension_installed;

            IF NOT extension_installed THEN
                IF extensions_schema_exists THEN
                    EXECUTE 'CREATE EXTENSION IF NOT EXISTS {extension_name} WITH SCHEMA extensions';
                ELSE
                    EXECUTE 'CREATE EXTENSION IF NOT EXISTS {extension_name}';
                END IF;
            END IF;
        END
        $$;
        """
    )


def upgrade() -> None:
    """Create shop, catalog, tenant settings and booking tables."""
    print("Creating booking engine tables...")

    bind = op.get_bind()
    is_postgres = bind.dialect.name == "postgresql"

    op.create_table(
        "shops",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("tenant_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_shops_tenant_id", "shops", ["tenant_id"])

    op.create_table(
        "shop_staff",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("tenant_id", sa.String(26), nullable=False),
        sa.Column("shop_id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="barber"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_shop_staff_tenant_id", "shop_staff", ["tenant_id"])
    op.create_index("ix_shop_staff_user_id", "shop_staff", ["user_id"])
    op.create_index("ix_shop_staff_shop_role", "shop_staff", ["tenant_id", "shop_id", "role"])

    op.create_table(
        "shop_working_hours",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("shop_id", sa.String(26), nullable=False),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("open_minutes", sa.Integer(), nullable=True),
        sa.Column("close_minutes", sa.Integer(), nullable=True),
        sa.Column("open_24h", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_working_hours_weekday"),
    )
    op.create_index("ix_shop_working_hours_shop_id", "shop_working_hours", ["shop_id"])

    op.create_table(
        "services",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("tenant_id", sa.String(26), nullable=False),
        sa.Column("shop_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("duration_minutes > 0", name="check_service_duration_positive"),
        sa.CheckConstraint("price >= 0", name="check_service_price_non_negative"),
    )
    op.create_index("ix_services_tenant_id", "services", ["tenant_id"])
    op.create_index("ix_services_shop_id", "services", ["shop_id"])

    op.create_table(
        "tenant_settings",
        sa.Column("tenant_id", sa.String(26), nullable=False),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value_json", sa.JSON(), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("tenant_id", "key"),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("tenant_id", sa.String(26), nullable=False),
        sa.Column("shop_id", sa.String(26), nullable=False),
        sa.Column("customer_id", sa.String(26), nullable=False),
        sa.Column("barber_id", sa.String(26), nullable=True),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.ForeignKeyConstraint(["barber_id"], ["shop_staff.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no_show')",
            name="ck_bookings_status",
        ),
        sa.CheckConstraint("total_price >= 0", name="check_price_non_negative"),
        sa.CheckConstraint("start_time < end_time", name="bookings_time_order"),
        sa.CheckConstraint("start_at < end_at", name="check_instant_order"),
    )
    op.create_index("ix_bookings_tenant_id", "bookings", ["tenant_id"])
    op.create_index("ix_bookings_customer_id", "bookings", ["customer_id"])
    op.create_index("ix_bookings_booking_date", "bookings", ["booking_date"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_barber_date", "bookings", ["tenant_id", "barber_id", "booking_date"])
    op.create_index("ix_bookings_shop_date", "bookings", ["tenant_id", "shop_id", "booking_date"])

    op.create_table(
        "booking_services",
        sa.Column("booking_id", sa.String(26), nullable=False),
        sa.Column("service_id", sa.String(26), nullable=False),
        sa.Column("tenant_id", sa.String(26), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"]),
        sa.PrimaryKeyConstraint("booking_id", "service_id"),
    )
    op.create_index("ix_booking_services_tenant_id", "booking_services", ["tenant_id"])

    if is_postgres:
        _create_extension_prefer_extensions_schema("btree_gist")
        # Authoritative overlap guard; the application pre-check only gives friendlier errors
        op.execute(
            """
            ALTER TABLE bookings
              ADD CONSTRAINT bookings_no_overlap_per_barber
              EXCLUDE USING gist (
                tenant_id WITH =,
                barber_id WITH =,
                tstzrange(start_at, end_at, '[)') WITH &&
              )
              WHERE (status <> 'cancelled' AND barber_id IS NOT NULL)
            """
        )
        op.execute(
            """
            ALTER TABLE bookings
              ADD CONSTRAINT bookings_no_overlap_general
              EXCLUDE USING gist (
                tenant_id WITH =,
                shop_id WITH =,
                tstzrange(start_at, end_at, '[)') WITH &&
              )
              WHERE (status <> 'cancelled' AND barber_id IS NULL)
            """
        )
    elif bind.dialect.name == "sqlite":
        for statement in SQLITE_OVERLAP_TRIGGERS:
            op.execute(statement)

    print("Booking engine tables created successfully!")


def downgrade() -> None:
    """Drop booking engine tables."""
    print("Dropping booking engine tables...")

    bind = op.get_bind()
    is_postgres = bind.dialect.name == "postgresql"

    if is_postgres:
        op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS bookings_no_overlap_general")
        op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS bookings_no_overlap_per_barber")
    elif bind.dialect.name == "sqlite":
        for trigger in (
            "bookings_no_overlap_per_barber_insert",
            "bookings_no_overlap_per_barber_update",
            "bookings_no_overlap_general_insert",
            "bookings_no_overlap_general_update",
        ):
            op.execute(f"DROP TRIGGER IF EXISTS {trigger}")

    op.drop_index("ix_booking_services_tenant_id", table_name="booking_services")
    op.drop_table("booking_services")

    op.drop_index("ix_bookings_shop_date", table_name="bookings")
    op.drop_index("ix_bookings_barber_date", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_booking_date", table_name="bookings")
    op.drop_index("ix_bookings_customer_id", table_name="bookings")
    op.drop_index("ix_bookings_tenant_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_table("tenant_settings")

    op.drop_index("ix_services_shop_id", table_name="services")
    op.drop_index("ix_services_tenant_id", table_name="services")
    op.drop_table("services")

    op.drop_index("ix_shop_working_hours_shop_id", table_name="shop_working_hours")
    op.drop_table("shop_working_hours")

    op.drop_index("ix_shop_staff_shop_role", table_name="shop_staff")
    op.drop_index("ix_shop_staff_user_id", table_name="shop_staff")
    op.drop_index("ix_shop_staff_tenant_id", table_name="shop_staff")
    op.drop_table("shop_staff")

    op.drop_index("ix_shops_tenant_id", table_name="shops")
    op.drop_table("shops")

    print("Booking engine tables dropped.")
