"""Initial ledger schema: accounts, stock, metal transactions, registry, fixings, transfers, entries

Revision ID: bl001
Revises:
Create Date: 2026-10-01 12:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "bl001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def upgrade():
    # Party accounts and balances
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("gold_total_grams", sa.Float(), nullable=False, server_default="0"),
        sa.Column("gold_total_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("gold_last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cash_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("cash_last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_balance_update", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("code", name="uq_accounts_code"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_accounts_active", "accounts", ["is_active"], unique=False)

    # Stock master and inventory
    op.create_table(
        "metal_stocks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("code", name="uq_metal_stocks_code"),
        sqlite_autoincrement=True,
    )
    op.create_table(
        "inventories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("stock_id", sa.Integer(), nullable=False),
        sa.Column("pcs_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("gross_weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("purity", sa.Float(), nullable=False, server_default="1"),
        sa.Column("pure_weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.ForeignKeyConstraint(["stock_id"], ["metal_stocks.id"]),
        sa.UniqueConstraint("stock_id", name="uq_inventories_stock"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_inventories_stock_id", "inventories", ["stock_id"], unique=False)
    op.create_table(
        "inventory_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("stock_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("voucher_code", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("voucher_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("gross_weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("pcs", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("action", sa.String(length=16), nullable=False),
        sa.Column("transaction_type", sa.String(length=32), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("note", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["stock_id"], ["metal_stocks.id"]),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_inventory_logs_stock_id", "inventory_logs", ["stock_id"], unique=False)
    op.create_index("ix_inventory_logs_voucher", "inventory_logs", ["voucher_code"], unique=False)

    # Metal transactions
    op.create_table(
        "metal_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_type", sa.String(length=32), nullable=False),
        sa.Column("fixed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("unfix", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("voucher_type", sa.String(length=50), nullable=True),
        sa.Column("voucher_number", sa.String(length=50), nullable=True),
        sa.Column("voucher_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("party_id", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("net_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("vat_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("vat_percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.ForeignKeyConstraint(["party_id"], ["accounts.id"]),
        sa.UniqueConstraint("voucher_number", name="uq_metal_transactions_voucher"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_metal_transactions_transaction_type", "metal_transactions", ["transaction_type"], unique=False)
    op.create_index("ix_metal_transactions_voucher_date", "metal_transactions", ["voucher_date"], unique=False)
    op.create_index("ix_metal_transactions_party_id", "metal_transactions", ["party_id"], unique=False)
    op.create_index("ix_metal_transactions_status", "metal_transactions", ["status"], unique=False)
    op.create_index("ix_metal_transactions_is_active", "metal_transactions", ["is_active"], unique=False)
    op.create_index(
        "ix_metal_tx_type_party_date",
        "metal_transactions",
        ["transaction_type", "party_id", "voucher_date"],
        unique=False,
    )
    op.create_index(
        "ix_metal_tx_party_active_status",
        "metal_transactions",
        ["party_id", "is_active", "status"],
        unique=False,
    )

    op.create_table(
        "metal_transaction_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stock_id", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=200), nullable=True),
        sa.Column("pieces", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("gross_weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("purity", sa.Float(), nullable=False),
        sa.Column("pure_weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("weight_in_oz", sa.Float(), nullable=False, server_default="0"),
        sa.Column("metal_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("metal_rate_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("making_charges_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("making_charges_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("vat_percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("vat_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("other_charges_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("other_charges_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("other_charges_description", sa.String(length=255), nullable=True),
        sa.Column("premium_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("premium_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("base_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("making_charges_total", sa.Float(), nullable=False, server_default="0"),
        sa.Column("premium_total", sa.Float(), nullable=False, server_default="0"),
        sa.Column("sub_total", sa.Float(), nullable=False, server_default="0"),
        sa.Column("item_vat_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("item_total_amount", sa.Float(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["transaction_id"], ["metal_transactions.id"]),
        sa.ForeignKeyConstraint(["stock_id"], ["metal_stocks.id"]),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_metal_transaction_items_transaction_id", "metal_transaction_items", ["transaction_id"], unique=False)
    op.create_index("ix_metal_transaction_items_stock_id", "metal_transaction_items", ["stock_id"], unique=False)
    op.create_index("ix_metal_tx_items_tx_position", "metal_transaction_items", ["transaction_id", "position"], unique=False)

    # Fixings
    op.create_table(
        "transaction_fixings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("party_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("voucher_type", sa.String(length=50), nullable=True),
        sa.Column("voucher_number", sa.String(length=50), nullable=True),
        sa.Column("voucher_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["party_id"], ["accounts.id"]),
        sa.UniqueConstraint("voucher_number", name="uq_transaction_fixings_voucher"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_transaction_fixings_party_id", "transaction_fixings", ["party_id"], unique=False)
    op.create_index("ix_transaction_fixings_party_active", "transaction_fixings", ["party_id", "is_active"], unique=False)
    op.create_table(
        "fixing_orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("fixing_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quantity_gm", sa.Float(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("gold_bid_value", sa.Float(), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(["fixing_id"], ["transaction_fixings.id"]),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_fixing_orders_fixing_id", "fixing_orders", ["fixing_id"], unique=False)

    # Fund transfers and opening balances
    op.create_table(
        "fund_transfers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sender_id", sa.Integer(), nullable=True),
        sa.Column("receiver_id", sa.Integer(), nullable=False),
        sa.Column("asset_type", sa.String(length=8), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("is_opening_balance", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("voucher_type", sa.String(length=50), nullable=True),
        sa.Column("voucher_number", sa.String(length=50), nullable=True),
        sa.Column("voucher_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["sender_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["receiver_id"], ["accounts.id"]),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_fund_transfers_sender_id", "fund_transfers", ["sender_id"], unique=False)
    op.create_index("ix_fund_transfers_receiver_id", "fund_transfers", ["receiver_id"], unique=False)
    op.create_index(
        "ix_fund_transfers_receiver_asset",
        "fund_transfers",
        ["receiver_id", "asset_type", "is_opening_balance"],
        unique=False,
    )

    # Cash / metal entries
    op.create_table(
        "entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("voucher_code", sa.String(length=50), nullable=True),
        sa.Column("voucher_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("party_id", sa.Integer(), nullable=True),
        sa.Column("remarks", sa.String(length=255), nullable=True),
        sa.Column("total_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["party_id"], ["accounts.id"]),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_entries_voucher_code", "entries", ["voucher_code"], unique=False)
    op.create_index("ix_entries_party_type", "entries", ["party_id", "type"], unique=False)
    op.create_table(
        "entry_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entry_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("stock_id", sa.Integer(), nullable=True),
        sa.Column("purity_weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("remarks", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["entry_id"], ["entries.id"]),
        sa.ForeignKeyConstraint(["stock_id"], ["metal_stocks.id"]),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_entry_lines_entry_id", "entry_lines", ["entry_id"], unique=False)

    # Registry postings
    op.create_table(
        "registry_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_id", sa.String(length=80), nullable=False),
        sa.Column("metal_transaction_id", sa.Integer(), nullable=True),
        sa.Column("fixing_id", sa.Integer(), nullable=True),
        sa.Column("entry_id", sa.Integer(), nullable=True),
        sa.Column("fund_transfer_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("party_id", sa.Integer(), nullable=True),
        sa.Column("is_bullion", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("debit", sa.Float(), nullable=False, server_default="0"),
        sa.Column("credit", sa.Float(), nullable=False, server_default="0"),
        sa.Column("running_balance", sa.Float(), nullable=True),
        sa.Column("previous_balance", sa.Float(), nullable=True),
        sa.Column("gross_weight", sa.Float(), nullable=True),
        sa.Column("pure_weight", sa.Float(), nullable=True),
        sa.Column("purity", sa.Float(), nullable=True),
        sa.Column("gold_bid_value", sa.Float(), nullable=True),
        sa.Column("reference", sa.String(length=50), nullable=True),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["metal_transaction_id"], ["metal_transactions.id"]),
        sa.ForeignKeyConstraint(["fixing_id"], ["transaction_fixings.id"]),
        sa.ForeignKeyConstraint(["entry_id"], ["entries.id"]),
        sa.ForeignKeyConstraint(["fund_transfer_id"], ["fund_transfers.id"]),
        sa.ForeignKeyConstraint(["party_id"], ["accounts.id"]),
        sa.UniqueConstraint("transaction_id", name="uq_registry_entries_transaction_id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_registry_entries_metal_transaction_id", "registry_entries", ["metal_transaction_id"], unique=False)
    op.create_index("ix_registry_entries_fixing_id", "registry_entries", ["fixing_id"], unique=False)
    op.create_index("ix_registry_entries_entry_id", "registry_entries", ["entry_id"], unique=False)
    op.create_index("ix_registry_entries_fund_transfer_id", "registry_entries", ["fund_transfer_id"], unique=False)
    op.create_index("ix_registry_entries_type", "registry_entries", ["type"], unique=False)
    op.create_index("ix_registry_party_type", "registry_entries", ["party_id", "type"], unique=False)
    op.create_index("ix_registry_reference", "registry_entries", ["reference"], unique=False)

    # Registry base id sequences
    op.create_table(
        "ledger_sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("scope", sa.String(length=32), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default="1"),
        sa.UniqueConstraint("scope", "year", name="uq_ledger_sequences_scope_year"),
        sqlite_autoincrement=True,
    )


def downgrade():
    op.drop_table("ledger_sequences")
    op.drop_table("registry_entries")
    op.drop_table("entry_lines")
    op.drop_table("entries")
    op.drop_table("fund_transfers")
    op.drop_table("fixing_orders")
    op.drop_table("transaction_fixings")
    op.drop_table("metal_transaction_items")
    op.drop_table("metal_transactions")
    op.drop_table("inventory_logs")
    op.drop_table("inventories")
    op.drop_table("metal_stocks")
    op.drop_table("accounts")
