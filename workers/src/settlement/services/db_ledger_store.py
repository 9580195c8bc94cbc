"""
db_ledger_store
================

Persistent order and balance store backed by SQLAlchemy's async engine.
PostgreSQL (``postgresql+asyncpg://...``) is the production backend;
SQLite (``sqlite+aiosqlite://...``) is used by the test-suite and for
local dry runs.

Tables:
  - orders(id TEXT PRIMARY KEY, user_id, external_order_id, asset, quote,
    side, amount, filled_amount, price, total_value, platform_fee,
    venue_fee, status, created_at, updated_at, completed_at)
  - balances(user_id, asset, balance, available_balance, locked_balance,
    updated_at; PRIMARY KEY (user_id, asset))
  - ledger_entries(id SERIAL PRIMARY KEY, order_id, user_id, asset,
    amount, created_at; UNIQUE (order_id, asset))

Reads open their own connection.  Writes take an ``AsyncConnection``
obtained from :meth:`DatabaseLedgerStore.transaction` so that an order
update and its balance legs commit or roll back together.

Balance mutations use a single ``INSERT ... ON CONFLICT DO UPDATE``
statement that adds the delta to the stored value inside the database,
so concurrent writers outside this process cannot lose an update.
Schema migrations live in ``alembic/``; :meth:`init_db` is only a
convenience for tests and first-time local setup.
"""

from __future__ import annotations

import datetime as dt
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    PrimaryKeyConstraint,
    String,
    Table,
    UniqueConstraint,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from ..errors import ConfigurationError, NegativeBalanceError
from ..models import Balance, Order, OrderStatus

logger = logging.getLogger(__name__)

# 28 significant digits with 8 decimals covers satoshi-level quantities
# and quote notionals well beyond any single retail fill.
AMOUNT = Numeric(precision=28, scale=8)

metadata = MetaData()

orders_table = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False, index=True),
    Column("external_order_id", String, nullable=True, index=True),
    Column("asset", String(16), nullable=False),
    Column("quote", String(16), nullable=False),
    Column("side", String(4), nullable=False),
    Column("amount", AMOUNT, nullable=False),
    Column("filled_amount", AMOUNT, nullable=False, default=0),
    Column("price", AMOUNT, nullable=False, default=0),
    Column("total_value", AMOUNT, nullable=False, default=0),
    Column("platform_fee", AMOUNT, nullable=False, default=0),
    Column("venue_fee", AMOUNT, nullable=False, default=0),
    Column("status", String(16), nullable=False, default=OrderStatus.PENDING.value, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=True),
    Column("completed_at", DateTime(timezone=True), nullable=True),
)

balances_table = Table(
    "balances",
    metadata,
    Column("user_id", String, nullable=False),
    Column("asset", String(16), nullable=False),
    Column("balance", AMOUNT, nullable=False, default=0),
    Column("available_balance", AMOUNT, nullable=False, default=0),
    Column("locked_balance", AMOUNT, nullable=False, default=0),
    Column("updated_at", DateTime(timezone=True), nullable=True),
    PrimaryKeyConstraint("user_id", "asset", name="pk_balances"),
)

ledger_entries_table = Table(
    "ledger_entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", String, ForeignKey("orders.id"), nullable=False),
    Column("user_id", String, nullable=False),
    Column("asset", String(16), nullable=False),
    Column("amount", AMOUNT, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("order_id", "asset", name="uq_ledger_entries_order_asset"),
)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _row_to_order(row: Any) -> Order:
    return Order(**dict(row))


class DatabaseLedgerStore:
    """Order and balance persistence for the settlement worker."""

    def __init__(self, engine: AsyncEngine) -> None:
        dialect = engine.dialect.name
        if dialect not in _INSERT_BY_DIALECT:
            raise ConfigurationError(f"Unsupported database dialect: {dialect}")
        self.engine = engine
        self._insert = _INSERT_BY_DIALECT[dialect]

    @classmethod
    def from_uri(cls, uri: str) -> "DatabaseLedgerStore":
        """Create a store from a SQLAlchemy database URI."""
        engine = create_async_engine(uri, echo=False)
        return cls(engine)

    async def init_db(self) -> None:
        """Create tables if they do not exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Yield a connection whose work commits on exit or rolls back on error."""
        async with self.engine.begin() as conn:
            yield conn

    # --- Orders ---

    async def insert_order(self, order: Order) -> None:
        """Insert a new order row as recorded at order intake."""
        values: Dict[str, Any] = order.model_dump(exclude={"created_at", "completed_at"})
        values["side"] = order.side.value
        values["status"] = order.status.value
        if order.created_at is not None:
            values["created_at"] = order.created_at
        if order.completed_at is not None:
            values["completed_at"] = order.completed_at
        async with self.transaction() as conn:
            await conn.execute(insert(orders_table).values(**values))

    async def get_order(self, order_id: str) -> Optional[Order]:
        """Return one order by local id, or ``None``."""
        async with self.engine.connect() as conn:
            result = await conn.execute(select(orders_table).where(orders_table.c.id == order_id))
            row = result.mappings().first()
        return _row_to_order(row) if row is not None else None

    async def fetch_pending_orders(self) -> List[Order]:
        """Return every PENDING order that has been routed to the venue."""
        stmt = (
            select(orders_table)
            .where(orders_table.c.status == OrderStatus.PENDING.value)
            .where(orders_table.c.external_order_id.is_not(None))
            .order_by(orders_table.c.created_at, orders_table.c.id)
        )
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [_row_to_order(row) for row in result.mappings().all()]

    async def fetch_completed_orders(self, limit: int = 10) -> List[Order]:
        """Return the most recent COMPLETED orders with a positive fill."""
        stmt = (
            select(orders_table)
            .where(orders_table.c.status == OrderStatus.COMPLETED.value)
            .where(orders_table.c.filled_amount > 0)
            .order_by(orders_table.c.created_at.desc(), orders_table.c.id.desc())
            .limit(limit)
        )
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [_row_to_order(row) for row in result.mappings().all()]

    async def update_order(
        self,
        conn: AsyncConnection,
        order_id: str,
        values: Dict[str, Any],
        *,
        expected_status: OrderStatus = OrderStatus.PENDING,
    ) -> bool:
        """Update an order only if it is still in ``expected_status``.

        Returns ``False`` when no row matched, i.e. the order was already
        moved on by another run.
        """
        values = dict(values)
        if isinstance(values.get("status"), OrderStatus):
            values["status"] = values["status"].value
        values["updated_at"] = _utcnow()
        stmt = (
            update(orders_table)
            .where(orders_table.c.id == order_id)
            .where(orders_table.c.status == expected_status.value)
            .values(**values)
        )
        result = await conn.execute(stmt)
        return result.rowcount == 1

    # --- Balances ---

    async def get_balance(self, user_id: str, asset: str) -> Optional[Balance]:
        stmt = select(balances_table).where(
            balances_table.c.user_id == user_id, balances_table.c.asset == asset
        )
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            row = result.mappings().first()
        return Balance(**dict(row)) if row is not None else None

    async def list_balances(self, user_id: str) -> List[Balance]:
        stmt = (
            select(balances_table)
            .where(balances_table.c.user_id == user_id)
            .order_by(balances_table.c.asset)
        )
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [Balance(**dict(row)) for row in result.mappings().all()]

    async def upsert_balance(
        self,
        conn: AsyncConnection,
        user_id: str,
        asset: str,
        delta: Decimal,
        *,
        allow_negative_create: bool = False,
    ) -> None:
        """Add ``delta`` to a user's balance row, creating it if absent.

        ``balance`` and ``available_balance`` move together;
        ``locked_balance`` is never touched.  A negative ``delta`` against
        a missing row raises :class:`NegativeBalanceError` unless
        ``allow_negative_create`` is set.
        """
        now = _utcnow()
        if delta < 0 and not allow_negative_create:
            result = await conn.execute(
                update(balances_table)
                .where(balances_table.c.user_id == user_id)
                .where(balances_table.c.asset == asset)
                .values(
                    balance=balances_table.c.balance + delta,
                    available_balance=balances_table.c.available_balance + delta,
                    updated_at=now,
                )
            )
            if result.rowcount == 0:
                raise NegativeBalanceError(user_id, asset, delta)
            return

        stmt = self._insert(balances_table).values(
            user_id=user_id,
            asset=asset,
            balance=delta,
            available_balance=delta,
            locked_balance=0,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[balances_table.c.user_id, balances_table.c.asset],
            set_={
                "balance": balances_table.c.balance + stmt.excluded.balance,
                "available_balance": balances_table.c.available_balance
                + stmt.excluded.available_balance,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await conn.execute(stmt)

    # --- Ledger entries ---

    async def record_ledger_entry(
        self,
        conn: AsyncConnection,
        order_id: str,
        user_id: str,
        asset: str,
        amount: Decimal,
    ) -> bool:
        """Record one applied leg.  Returns ``False`` if it was already recorded."""
        stmt = (
            self._insert(ledger_entries_table)
            .values(order_id=order_id, user_id=user_id, asset=asset, amount=amount)
            .on_conflict_do_nothing(
                index_elements=[ledger_entries_table.c.order_id, ledger_entries_table.c.asset]
            )
        )
        result = await conn.execute(stmt)
        return result.rowcount == 1

    async def ledger_entries_for(self, order_id: str) -> List[Dict[str, Any]]:
        """Return the applied legs recorded for an order, oldest first."""
        stmt = (
            select(ledger_entries_table)
            .where(ledger_entries_table.c.order_id == order_id)
            .order_by(ledger_entries_table.c.id)
        )
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [dict(row) for row in result.mappings().all()]
