"""Initial schema for the farm analytics store."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from alembic import op

logger = logging.getLogger(__name__)

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


TABLE_DDL: tuple[str, ...] = (
    """
    CREATE TABLE token_price (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        asset TEXT NOT NULL,
        price DOUBLE PRECISION NOT NULL,
        platform TEXT NOT NULL,
        coin_in_lp DOUBLE PRECISION NOT NULL,
        pc_in_lp DOUBLE PRECISION NOT NULL,
        asset_identifier TEXT NOT NULL,
        period_start TIMESTAMPTZ NOT NULL,
        period_end TIMESTAMPTZ NOT NULL,
        period_observed_prices DOUBLE PRECISION[] NOT NULL,
        period_running_average DOUBLE PRECISION NOT NULL,
        last_period_average DOUBLE PRECISION NOT NULL,
        feed_stopped BOOLEAN NOT NULL DEFAULT FALSE,
        token_mint TEXT NOT NULL,
        CONSTRAINT pk_token_price PRIMARY KEY (id),
        CONSTRAINT ck_token_price_period_order CHECK (period_end >= period_start)
    );
    """,
    """
    CREATE TABLE historic_tshare_price (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        farm_name TEXT NOT NULL,
        price DOUBLE PRECISION NOT NULL,
        total_supply DOUBLE PRECISION NOT NULL,
        holder_count DOUBLE PRECISION NOT NULL,
        scraped_at TIMESTAMPTZ NOT NULL,
        CONSTRAINT pk_historic_tshare_price PRIMARY KEY (id)
    );
    """,
    """
    CREATE TABLE token_balance (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        token_account TEXT NOT NULL,
        token_mint TEXT NOT NULL,
        identifier TEXT NOT NULL,
        balance DOUBLE PRECISION NOT NULL,
        scraped_at TIMESTAMPTZ NOT NULL,
        CONSTRAINT pk_token_balance PRIMARY KEY (id)
    );
    """,
    """
    CREATE TABLE interest_rate (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        platform TEXT NOT NULL,
        asset TEXT NOT NULL,
        lending_rate DOUBLE PRECISION NOT NULL,
        borrow_rate DOUBLE PRECISION NOT NULL,
        utilization_rate DOUBLE PRECISION NOT NULL,
        available_amount DOUBLE PRECISION NOT NULL,
        borrowed_amount DOUBLE PRECISION NOT NULL,
        scraped_at TIMESTAMPTZ NOT NULL,
        CONSTRAINT pk_interest_rate PRIMARY KEY (id),
        CONSTRAINT ck_interest_rate_platform_upper CHECK (platform = upper(platform)),
        CONSTRAINT ck_interest_rate_asset_upper CHECK (asset = upper(asset))
    );
    """,
    """
    CREATE TABLE interest_rate_curve (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        platform TEXT NOT NULL,
        asset TEXT NOT NULL,
        rate_name TEXT NOT NULL,
        min_borrow_rate DOUBLE PRECISION NOT NULL,
        max_borrow_rate DOUBLE PRECISION NOT NULL,
        optimal_borrow_rate DOUBLE PRECISION NOT NULL,
        optimal_utilization_rate DOUBLE PRECISION NOT NULL,
        degen_borrow_rate DOUBLE PRECISION NOT NULL,
        degen_utilization_rate DOUBLE PRECISION NOT NULL,
        CONSTRAINT pk_interest_rate_curve PRIMARY KEY (id),
        CONSTRAINT ck_interest_rate_curve_rate_name_upper CHECK (rate_name = upper(rate_name))
    );
    """,
    """
    CREATE TABLE interest_rate_moving_average (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        platform TEXT NOT NULL,
        asset TEXT NOT NULL,
        rate_name TEXT NOT NULL,
        period_start TIMESTAMPTZ NOT NULL,
        period_end TIMESTAMPTZ NOT NULL,
        period_running_average DOUBLE PRECISION NOT NULL,
        period_observed_rates DOUBLE PRECISION[] NOT NULL,
        last_period_running_average DOUBLE PRECISION NOT NULL,
        CONSTRAINT pk_interest_rate_moving_average PRIMARY KEY (id),
        CONSTRAINT uq_interest_rate_moving_average_rate_name UNIQUE (rate_name),
        CONSTRAINT ck_interest_rate_moving_average_period_order CHECK (period_end >= period_start)
    );
    """,
    """
    CREATE TABLE vault (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        account_address TEXT NOT NULL,
        account_data BYTEA NOT NULL,
        farm_name TEXT NOT NULL,
        scraped_at TIMESTAMPTZ NOT NULL,
        last_compound_ts TIMESTAMPTZ,
        last_compound_ts_unix BIGINT NOT NULL,
        CONSTRAINT pk_vault PRIMARY KEY (id),
        CONSTRAINT uq_vault_account_address UNIQUE (account_address)
    );
    """,
    """
    CREATE TABLE vault_tvl (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        farm_name TEXT NOT NULL,
        total_shares DOUBLE PRECISION NOT NULL,
        total_underlying DOUBLE PRECISION NOT NULL,
        value_locked DOUBLE PRECISION NOT NULL,
        scraped_at TIMESTAMPTZ NOT NULL,
        CONSTRAINT pk_vault_tvl PRIMARY KEY (id)
    );
    """,
    """
    CREATE TABLE deposit_tracking (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        owner_address TEXT NOT NULL,
        account_address TEXT NOT NULL,
        account_data BYTEA NOT NULL,
        vault_account_address TEXT NOT NULL,
        scraped_at TIMESTAMPTZ NOT NULL,
        current_balance DOUBLE PRECISION NOT NULL,
        current_shares DOUBLE PRECISION NOT NULL,
        balance_usd_value DOUBLE PRECISION NOT NULL,
        CONSTRAINT pk_deposit_tracking PRIMARY KEY (id),
        CONSTRAINT uq_deposit_tracking_account_address UNIQUE (account_address)
    );
    """,
    """
    CREATE TABLE realize_yield (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        vault_address TEXT NOT NULL,
        farm_name TEXT NOT NULL,
        total_deposited_balance DOUBLE PRECISION NOT NULL,
        gain_per_second DOUBLE PRECISION NOT NULL,
        apr DOUBLE PRECISION NOT NULL,
        scraped_at TIMESTAMPTZ NOT NULL,
        CONSTRAINT pk_realize_yield PRIMARY KEY (id)
    );
    """,
    """
    CREATE TABLE advertised_yield (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        vault_address TEXT NOT NULL,
        farm_name TEXT NOT NULL,
        apr DOUBLE PRECISION NOT NULL,
        scraped_at TIMESTAMPTZ NOT NULL,
        CONSTRAINT pk_advertised_yield PRIMARY KEY (id),
        CONSTRAINT uq_advertised_yield_farm_name UNIQUE (farm_name)
    );
    """,
    """
    CREATE TABLE lending_optimizer_distribution (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        vault_name TEXT NOT NULL,
        standalone_vault_platforms TEXT[] NOT NULL,
        standalone_vault_deposited_balances DOUBLE PRECISION[] NOT NULL,
        CONSTRAINT pk_lending_optimizer_distribution PRIMARY KEY (id),
        CONSTRAINT uq_lending_optimizer_distribution_vault_name UNIQUE (vault_name)
    );
    """,
    """
    CREATE TABLE staking_analytic (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        tokens_staked DOUBLE PRECISION NOT NULL,
        tokens_locked DOUBLE PRECISION NOT NULL,
        stulip_total_supply DOUBLE PRECISION NOT NULL,
        apy DOUBLE PRECISION NOT NULL,
        price_float DOUBLE PRECISION NOT NULL,
        price_uint BIGINT NOT NULL,
        active_unstakes BIGINT NOT NULL,
        scraped_at TIMESTAMPTZ NOT NULL,
        CONSTRAINT pk_staking_analytic PRIMARY KEY (id),
        CONSTRAINT ck_staking_analytic_price_uint_nonneg CHECK (price_uint >= 0)
    );
    """,
    """
    CREATE TABLE v1_obligation_account (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        account TEXT NOT NULL,
        authority TEXT NOT NULL,
        CONSTRAINT pk_v1_obligation_account PRIMARY KEY (id),
        CONSTRAINT uq_v1_obligation_account_account UNIQUE (account)
    );
    """,
    """
    CREATE TABLE v1_obligation_ltv (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        authority TEXT NOT NULL,
        user_farm TEXT NOT NULL,
        account_address TEXT NOT NULL,
        ltv DOUBLE PRECISION NOT NULL,
        scraped_at TIMESTAMPTZ NOT NULL,
        leveraged_farm TEXT NOT NULL,
        CONSTRAINT pk_v1_obligation_ltv PRIMARY KEY (id),
        CONSTRAINT uq_v1_obligation_ltv_account_address UNIQUE (account_address)
    );
    """,
    """
    CREATE TABLE v1_user_farm (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        account_address TEXT NOT NULL,
        authority TEXT NOT NULL,
        obligations TEXT[] NOT NULL,
        obligation_indexes INTEGER[] NOT NULL,
        leveraged_farm TEXT NOT NULL,
        CONSTRAINT pk_v1_user_farm PRIMARY KEY (id),
        CONSTRAINT uq_v1_user_farm_account_address UNIQUE (account_address)
    );
    """,
    """
    CREATE TABLE v1_liquidated_position (
        id BIGINT GENERATED BY DEFAULT AS IDENTITY,
        liquidation_event_id TEXT NOT NULL,
        temp_liquidation_account TEXT NOT NULL,
        authority TEXT NOT NULL,
        user_farm TEXT NOT NULL,
        obligation TEXT NOT NULL,
        started_at TIMESTAMPTZ NOT NULL,
        ended_at TIMESTAMPTZ,
        leveraged_farm TEXT NOT NULL,
        CONSTRAINT pk_v1_liquidated_position PRIMARY KEY (id),
        CONSTRAINT uq_v1_liquidated_position_liquidation_event_id UNIQUE (liquidation_event_id),
        CONSTRAINT ck_v1_liquidated_position_ended_after_started CHECK (ended_at IS NULL OR ended_at >= started_at)
    );
    """,
)

INDEX_DDL: tuple[str, ...] = (
    "CREATE INDEX idx_token_price_asset_platform ON token_price (asset, platform);",
    "CREATE UNIQUE INDEX uq_token_price_asset_identifier ON token_price (asset_identifier) WHERE platform <> 'NA';",
    "CREATE UNIQUE INDEX uq_token_price_na_asset_platform ON token_price (asset, platform) WHERE platform = 'NA';",
    "CREATE INDEX idx_historic_tshare_price_farm_scraped ON historic_tshare_price (farm_name, scraped_at);",
    "CREATE INDEX idx_token_balance_account ON token_balance (token_account);",
    "CREATE INDEX idx_interest_rate_platform_asset_scraped ON interest_rate (platform, asset, scraped_at);",
    "CREATE INDEX idx_vault_tvl_farm_scraped ON vault_tvl (farm_name, scraped_at);",
    "CREATE INDEX idx_deposit_tracking_owner ON deposit_tracking (owner_address);",
    "CREATE INDEX idx_realize_yield_farm_scraped ON realize_yield (farm_name, scraped_at);",
    "CREATE INDEX idx_v1_obligation_ltv_ltv ON v1_obligation_ltv (ltv);",
    "CREATE INDEX idx_v1_user_farm_authority ON v1_user_farm (authority);",
)

APPEND_ONLY_TABLES: tuple[str, ...] = (
    "historic_tshare_price",
    "token_balance",
    "interest_rate",
    "interest_rate_curve",
    "vault_tvl",
    "realize_yield",
    "staking_analytic",
)

# Samples may be deleted by retention jobs but never rewritten.
APPEND_ONLY_DDL: tuple[str, ...] = (
    """
    CREATE OR REPLACE FUNCTION fn_reject_sample_update()
    RETURNS trigger
    LANGUAGE plpgsql
    AS $$
    BEGIN
        RAISE EXCEPTION 'append-only table % does not allow UPDATE', TG_TABLE_NAME;
    END;
    $$;
    """,
    *(
        f"""
    CREATE TRIGGER trg_{table}_append_only
    BEFORE UPDATE ON {table}
    FOR EACH ROW EXECUTE FUNCTION fn_reject_sample_update();
    """
        for table in APPEND_ONLY_TABLES
    ),
)


def _execute_all(statements: Sequence[str]) -> None:
    """Execute an ordered sequence of SQL statements."""

    for statement in statements:
        try:
            op.execute(statement)
        except Exception:
            logger.exception("Migration statement failed.")
            raise


def upgrade() -> None:
    """Apply the initial schema migration."""

    logger.info("Starting initial schema migration upgrade.")
    _execute_all(TABLE_DDL)
    _execute_all(INDEX_DDL)
    _execute_all(APPEND_ONLY_DDL)
    logger.info("Completed initial schema migration upgrade.")


def downgrade() -> None:
    """Revert the initial schema migration."""

    logger.info("Starting initial schema migration downgrade.")
    _execute_all(
        (
            *(
                f"DROP TRIGGER IF EXISTS trg_{table}_append_only ON {table};"
                for table in reversed(APPEND_ONLY_TABLES)
            ),
            "DROP FUNCTION IF EXISTS fn_reject_sample_update();",
            "DROP TABLE IF EXISTS v1_liquidated_position;",
            "DROP TABLE IF EXISTS v1_user_farm;",
            "DROP TABLE IF EXISTS v1_obligation_ltv;",
            "DROP TABLE IF EXISTS v1_obligation_account;",
            "DROP TABLE IF EXISTS staking_analytic;",
            "DROP TABLE IF EXISTS lending_optimizer_distribution;",
            "DROP TABLE IF EXISTS advertised_yield;",
            "DROP TABLE IF EXISTS realize_yield;",
            "DROP TABLE IF EXISTS deposit_tracking;",
            "DROP TABLE IF EXISTS vault_tvl;",
            "DROP TABLE IF EXISTS vault;",
            "DROP TABLE IF EXISTS interest_rate_moving_average;",
            "DROP TABLE IF EXISTS interest_rate_curve;",
            "DROP TABLE IF EXISTS interest_rate;",
            "DROP TABLE IF EXISTS token_balance;",
            "DROP TABLE IF EXISTS historic_tshare_price;",
            "DROP TABLE IF EXISTS token_price;",
        )
    )
    logger.info("Completed initial schema migration downgrade.")
