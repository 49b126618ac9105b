"""Initial schema: catalog stock, sales, drawer sessions, held orders, settings

Revision ID: 0001_initial_pos_core
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_pos_core"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("barcode", sa.String(64), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("sku", name="uq_products_sku"),
        sa.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_barcode", "products", ["barcode"])
    op.create_index("ix_products_active_name", "products", ["is_active", "name"])

    op.create_table(
        "cash_register_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="open"),
        sa.Column("opening_amount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("closing_amount_cents", sa.Integer(), nullable=True),
        sa.Column("expected_amount_cents", sa.Integer(), nullable=True),
        sa.Column("difference_cents", sa.Integer(), nullable=True),
        sa.Column("opened_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("closing_notes", sa.Text(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint("status IN ('open', 'closed')", name="ck_cash_register_sessions_status"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_cash_register_sessions_status", "cash_register_sessions", ["status"])
    op.create_index("ix_cash_register_sessions_opened_at", "cash_register_sessions", ["opened_at"])
    op.create_index(
        "uq_cash_register_sessions_one_open",
        "cash_register_sessions",
        ["status"],
        unique=True,
        sqlite_where=sa.text("status = 'open'"),
        postgresql_where=sa.text("status = 'open'"),
    )

    op.create_table(
        "cash_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "cash_register_session_id",
            sa.Integer(),
            sa.ForeignKey("cash_register_sessions.id"),
            nullable=False,
        ),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount_cents > 0", name="ck_cash_movements_amount_positive"),
        sa.CheckConstraint("type IN ('income', 'expense')", name="ck_cash_movements_type"),
        sqlite_autoincrement=True,
    )
    op.create_index(
        "ix_cash_movements_session_created",
        "cash_movements",
        ["cash_register_session_id", "created_at"],
    )

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("receipt_number", sa.String(64), nullable=False),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("discount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("discount_percent_bps", sa.Integer(), nullable=True),
        sa.Column("tax_rate_bps", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tax_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_cents", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(16), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "cash_register_session_id",
            sa.Integer(),
            sa.ForeignKey("cash_register_sessions.id"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("receipt_number", name="uq_sales_receipt_number"),
        sa.CheckConstraint("total_cents >= 0", name="ck_sales_total_non_negative"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sales_payment_method", "sales", ["payment_method"])
    op.create_index("ix_sales_cash_register_session_id", "sales", ["cash_register_session_id"])
    op.create_index("ix_sales_created_at", "sales", ["created_at"])
    op.create_index("ix_sales_session_method", "sales", ["cash_register_session_id", "payment_method"])

    op.create_table(
        "sale_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("discount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.UniqueConstraint("sale_id", "line_number", name="uq_sale_items_line"),
        sa.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sale_items_sale_id", "sale_items", ["sale_id"])
    op.create_index("ix_sale_items_product_id", "sale_items", ["product_id"])

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_movements_type", "stock_movements", ["type"])
    op.create_index("ix_stock_movements_sale_id", "stock_movements", ["sale_id"])
    op.create_index("ix_stock_movements_product_created", "stock_movements", ["product_id", "created_at"])

    op.create_table(
        "held_orders",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("snapshot", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_held_orders_created_at", "held_orders", ["created_at"])

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "settings",
        sa.Column("key", sa.String(128), primary_key=True),
        sa.Column("value", sa.JSON(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table("settings")
    op.drop_table("document_sequences")
    op.drop_index("ix_held_orders_created_at", table_name="held_orders")
    op.drop_table("held_orders")
    op.drop_table("stock_movements")
    op.drop_table("sale_items")
    op.drop_table("sales")
    op.drop_table("cash_movements")
    op.drop_index("uq_cash_register_sessions_one_open", table_name="cash_register_sessions")
    op.drop_table("cash_register_sessions")
    op.drop_table("products")
