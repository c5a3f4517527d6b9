"""initial indexer schema

Revision ID: 5c1e7a0d2b94
Revises:
Create Date: 2026-10-17 15:40:12.318207

"""

import sqlalchemy as sa
from alembic import op

from app.database import get_db_schema

# revision identifiers, used by Alembic.
revision = "5c1e7a0d2b94"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created", sa.DateTime(), nullable=True),
        sa.Column("modified", sa.DateTime(), nullable=True),
    ]


def upgrade():
    op.create_table(
        "idx_block",
        sa.Column("number", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("hash", sa.String(length=66), nullable=False),
        sa.Column("parent_hash", sa.String(length=66), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("miner", sa.String(length=42), nullable=True),
        sa.Column("gas_used", sa.BigInteger(), nullable=False),
        sa.Column("gas_limit", sa.BigInteger(), nullable=False),
        sa.Column("base_fee_per_gas", sa.Numeric(precision=78, scale=0), nullable=True),
        sa.Column("difficulty", sa.Numeric(precision=78, scale=0), nullable=True),
        sa.Column("nonce", sa.String(length=18), nullable=True),
        sa.Column("extra_data", sa.Text(), nullable=True),
        sa.Column("size", sa.Integer(), nullable=True),
        sa.Column("transaction_count", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("number"),
        sa.UniqueConstraint("hash"),
        schema=get_db_schema(),
    )
    op.create_index(
        op.f("ix_idx_block_timestamp"),
        "idx_block",
        ["timestamp"],
        unique=False,
        schema=get_db_schema(),
    )
    op.create_index(
        op.f("ix_idx_block_miner"),
        "idx_block",
        ["miner"],
        unique=False,
        schema=get_db_schema(),
    )

    op.create_table(
        "idx_transaction",
        sa.Column("hash", sa.String(length=66), nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("block_hash", sa.String(length=66), nullable=False),
        sa.Column("transaction_index", sa.Integer(), nullable=False),
        sa.Column("from_address", sa.String(length=42), nullable=False),
        sa.Column("to_address", sa.String(length=42), nullable=True),
        sa.Column("contract_address", sa.String(length=42), nullable=True),
        sa.Column("value", sa.Numeric(precision=78, scale=0), nullable=False),
        sa.Column("gas", sa.BigInteger(), nullable=True),
        sa.Column("gas_price", sa.Numeric(precision=78, scale=0), nullable=True),
        sa.Column("max_fee_per_gas", sa.Numeric(precision=78, scale=0), nullable=True),
        sa.Column(
            "max_priority_fee_per_gas",
            sa.Numeric(precision=78, scale=0),
            nullable=True,
        ),
        sa.Column("input", sa.Text(), nullable=True),
        sa.Column("nonce", sa.BigInteger(), nullable=True),
        sa.Column("type", sa.Integer(), nullable=True),
        sa.Column("status", sa.Integer(), nullable=False),
        sa.Column("gas_used", sa.BigInteger(), nullable=True),
        sa.Column("cumulative_gas_used", sa.BigInteger(), nullable=True),
        sa.Column(
            "effective_gas_price", sa.Numeric(precision=78, scale=0), nullable=True
        ),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("method_id", sa.String(length=10), nullable=True),
        sa.Column("method_name", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("hash"),
        schema=get_db_schema(),
    )
    for column in ("block_number", "from_address", "to_address", "contract_address"):
        op.create_index(
            op.f(f"ix_idx_transaction_{column}"),
            "idx_transaction",
            [column],
            unique=False,
            schema=get_db_schema(),
        )

    op.create_table(
        "idx_transaction_log",
        sa.Column("transaction_hash", sa.String(length=66), nullable=False),
        sa.Column("log_index", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("block_hash", sa.String(length=66), nullable=False),
        sa.Column("address", sa.String(length=42), nullable=False),
        sa.Column("topic0", sa.String(length=66), nullable=True),
        sa.Column("topics", sa.JSON(), nullable=False),
        sa.Column("data", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("transaction_hash", "log_index"),
        schema=get_db_schema(),
    )
    for column in ("block_number", "address", "topic0"):
        op.create_index(
            op.f(f"ix_idx_transaction_log_{column}"),
            "idx_transaction_log",
            [column],
            unique=False,
            schema=get_db_schema(),
        )

    op.create_table(
        "idx_token_transfer",
        sa.Column("transaction_hash", sa.String(length=66), nullable=False),
        sa.Column("log_index", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("batch_index", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("token_address", sa.String(length=42), nullable=False),
        sa.Column("token_type", sa.String(length=10), nullable=False),
        sa.Column("from_address", sa.String(length=42), nullable=False),
        sa.Column("to_address", sa.String(length=42), nullable=False),
        sa.Column("value", sa.Numeric(precision=78, scale=0), nullable=False),
        sa.Column("token_id", sa.Numeric(precision=78, scale=0), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("transaction_hash", "log_index", "batch_index"),
        schema=get_db_schema(),
    )
    for column in ("block_number", "token_address", "from_address", "to_address"):
        op.create_index(
            op.f(f"ix_idx_token_transfer_{column}"),
            "idx_token_transfer",
            [column],
            unique=False,
            schema=get_db_schema(),
        )

    op.create_table(
        "idx_token",
        sa.Column("address", sa.String(length=42), nullable=False),
        sa.Column("token_type", sa.String(length=10), nullable=False),
        sa.Column("holder_count", sa.BigInteger(), nullable=False),
        sa.Column("transfer_count", sa.BigInteger(), nullable=False),
        sa.Column("first_seen_block", sa.BigInteger(), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("symbol", sa.String(length=100), nullable=True),
        sa.Column("decimals", sa.Integer(), nullable=True),
        sa.Column("total_supply", sa.Numeric(precision=78, scale=0), nullable=True),
        sa.Column("metadata_fetched", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("address"),
        schema=get_db_schema(),
    )

    op.create_table(
        "idx_token_holder",
        sa.Column("token_address", sa.String(length=42), nullable=False),
        sa.Column("holder_address", sa.String(length=42), nullable=False),
        sa.Column("token_id", sa.String(length=80), nullable=False),
        sa.Column("token_type", sa.String(length=10), nullable=False),
        sa.Column("balance", sa.Numeric(precision=78, scale=0), nullable=False),
        sa.Column("last_updated_block", sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("token_address", "holder_address", "token_id"),
        schema=get_db_schema(),
    )
    op.create_index(
        op.f("ix_idx_token_holder_holder_address"),
        "idx_token_holder",
        ["holder_address"],
        unique=False,
        schema=get_db_schema(),
    )

    op.create_table(
        "idx_address",
        sa.Column("address", sa.String(length=42), nullable=False),
        sa.Column("balance", sa.Numeric(precision=78, scale=0), nullable=False),
        sa.Column("transaction_count", sa.BigInteger(), nullable=False),
        sa.Column("sent_count", sa.BigInteger(), nullable=False),
        sa.Column("received_count", sa.BigInteger(), nullable=False),
        sa.Column("is_contract", sa.Boolean(), nullable=False),
        sa.Column("first_seen", sa.BigInteger(), nullable=True),
        sa.Column("last_seen", sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("address"),
        schema=get_db_schema(),
    )

    op.create_table(
        "idx_internal_transaction",
        sa.Column("transaction_hash", sa.String(length=66), nullable=False),
        sa.Column("trace_address", sa.String(length=200), nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("call_type", sa.String(length=20), nullable=True),
        sa.Column("from_address", sa.String(length=42), nullable=False),
        sa.Column("to_address", sa.String(length=42), nullable=True),
        sa.Column("value", sa.Numeric(precision=78, scale=0), nullable=False),
        sa.Column("gas", sa.BigInteger(), nullable=True),
        sa.Column("gas_used", sa.BigInteger(), nullable=True),
        sa.Column("input", sa.Text(), nullable=True),
        sa.Column("output", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("transaction_hash", "trace_address"),
        schema=get_db_schema(),
    )
    for column in ("block_number", "from_address", "to_address"):
        op.create_index(
            op.f(f"ix_idx_internal_transaction_{column}"),
            "idx_internal_transaction",
            [column],
            unique=False,
            schema=get_db_schema(),
        )

    op.create_table(
        "idx_daily_stats",
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("block_count", sa.BigInteger(), nullable=False),
        sa.Column("transaction_count", sa.BigInteger(), nullable=False),
        sa.Column("token_transfer_count", sa.BigInteger(), nullable=False),
        sa.Column("gas_used", sa.Numeric(precision=78, scale=0), nullable=False),
        sa.Column("total_value", sa.Numeric(precision=78, scale=0), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("date"),
        schema=get_db_schema(),
    )

    op.create_table(
        "idx_network_stats",
        sa.Column("id", sa.String(length=10), nullable=False),
        sa.Column("latest_block", sa.BigInteger(), nullable=True),
        sa.Column("latest_block_hash", sa.String(length=66), nullable=True),
        sa.Column("latest_block_timestamp", sa.BigInteger(), nullable=True),
        sa.Column("total_blocks", sa.BigInteger(), nullable=False),
        sa.Column("total_transactions", sa.BigInteger(), nullable=False),
        sa.Column("total_addresses", sa.BigInteger(), nullable=False),
        sa.Column("total_token_transfers", sa.BigInteger(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        schema=get_db_schema(),
    )

    op.create_table(
        "indexer_checkpoint",
        sa.Column("stream", sa.String(length=20), nullable=False),
        sa.Column("last_processed_block", sa.BigInteger(), nullable=False),
        sa.Column("last_processed_hash", sa.String(length=66), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("stream"),
        schema=get_db_schema(),
    )

    op.create_table(
        "indexer_state",
        sa.Column("stream", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("is_paused", sa.Boolean(), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("heartbeat", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("stream"),
        schema=get_db_schema(),
    )


def downgrade():
    for table_name in (
        "indexer_state",
        "indexer_checkpoint",
        "idx_network_stats",
        "idx_daily_stats",
        "idx_internal_transaction",
        "idx_address",
        "idx_token_holder",
        "idx_token",
        "idx_token_transfer",
        "idx_transaction_log",
        "idx_transaction",
        "idx_block",
    ):
        op.drop_table(table_name, schema=get_db_schema())
