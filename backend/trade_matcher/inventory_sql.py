"""SQLAlchemy-backed buy inventory for inputs too large to keep in memory."""

from __future__ import annotations

import logging
import os
import tempfile
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List

from sqlalchemy import BigInteger, Boolean, Index, Integer, String, create_engine, delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.types import TypeDecorator

from .dates import UNIX_EPOCH, as_utc
from .models import ZERO, FifoLot

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for inventory tables."""

    pass


class DecimalText(TypeDecorator):
    """Store ``Decimal`` values as text so they round-trip exactly."""

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):  # noqa: ANN001
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):  # noqa: ANN001
        return None if value is None else Decimal(value)


class BuyLotRecord(Base):
    __tablename__ = "buy_lot"
    __table_args__ = (
        Index("ix_buy_lot_run_asset_purchase", "run_id", "asset", "purchase_us"),
        Index("ix_buy_lot_run_asset_open", "run_id", "asset", "exhausted"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    run_id: Mapped[str] = mapped_column(String(32))
    asset: Mapped[str] = mapped_column(String(32))
    lot_id: Mapped[int] = mapped_column(Integer)
    purchase_us: Mapped[int] = mapped_column(BigInteger)
    cost_price: Mapped[Decimal] = mapped_column(DecimalText)
    original_quantity: Mapped[Decimal] = mapped_column(DecimalText)
    remaining_quantity: Mapped[Decimal] = mapped_column(DecimalText)
    tds: Mapped[Decimal] = mapped_column(DecimalText)
    total_cost: Mapped[Decimal | None] = mapped_column(DecimalText, nullable=True)
    exhausted: Mapped[bool] = mapped_column(Boolean, default=False)


def _to_us(value: datetime) -> int:
    delta = as_utc(value) - UNIX_EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds


def _from_us(value: int) -> datetime:
    return UNIX_EPOCH + timedelta(microseconds=value)


def _to_lot(record: BuyLotRecord) -> FifoLot:
    return FifoLot(
        lot_id=record.lot_id,
        asset=record.asset,
        cost_price=record.cost_price,
        original_quantity=record.original_quantity,
        remaining_quantity=record.remaining_quantity,
        purchase_timestamp=_from_us(record.purchase_us),
        tds=record.tds,
        total_cost=record.total_cost,
    )


def _temporary_database() -> Path:
    handle, name = tempfile.mkstemp(prefix="trade_matcher_", suffix=".sqlite3")
    os.close(handle)
    return Path(name)


class SqlBuyInventoryStore:
    """Buy lots kept in a database table, indexed by asset and purchase time.

    Each store instance owns a ``run_id``; rows written by other instances
    sharing the same table are never read, updated or deleted. Purchase
    times are kept to the microsecond, like the in-memory store.

    Lots handed out by this store are detached snapshots; all mutation goes
    through :meth:`consume`, which writes the new remaining quantity back.
    """

    def __init__(self, database_url: str | None = None, *, engine: Engine | None = None) -> None:
        self.run_id = uuid.uuid4().hex
        self._scratch_file: Path | None = None
        if database_url is None and engine is None:
            self._scratch_file = _temporary_database()
            database_url = f"sqlite:///{self._scratch_file}"
        self.database_url = database_url or str(engine.url)  # type: ignore[union-attr]
        self._engine = engine or create_engine(self.database_url, future=True)
        self._owns_engine = engine is None
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False, class_=Session)
        Base.metadata.create_all(self._engine)
        logger.info("Buy inventory store %s ready at %s", self.run_id, self._engine.url)

    def reset(self) -> None:
        with self._session_factory.begin() as session:
            session.execute(delete(BuyLotRecord).where(BuyLotRecord.run_id == self.run_id))

    def add_lots(self, asset: str, lots: Iterable[FifoLot]) -> None:
        records = [
            BuyLotRecord(
                run_id=self.run_id,
                asset=asset,
                lot_id=lot.lot_id,
                purchase_us=_to_us(lot.purchase_timestamp),
                cost_price=lot.cost_price,
                original_quantity=lot.original_quantity,
                remaining_quantity=lot.remaining_quantity,
                tds=lot.tds,
                total_cost=lot.total_cost,
                exhausted=not lot.is_open,
            )
            for lot in lots
        ]
        with self._session_factory.begin() as session:
            session.add_all(records)

    def _open_query(self, asset: str):  # noqa: ANN202
        return (
            select(BuyLotRecord)
            .where(
                BuyLotRecord.run_id == self.run_id,
                BuyLotRecord.asset == asset,
                BuyLotRecord.exhausted.is_(False),
            )
            .order_by(BuyLotRecord.purchase_us, BuyLotRecord.lot_id)
        )

    def next_open_lot(self, asset: str) -> FifoLot | None:
        with self._session_factory() as session:
            record = session.execute(self._open_query(asset).limit(1)).scalars().first()
            return _to_lot(record) if record is not None else None

    def open_lots_until(self, asset: str, as_of: datetime) -> List[FifoLot]:
        query = self._open_query(asset).where(BuyLotRecord.purchase_us <= _to_us(as_of))
        with self._session_factory() as session:
            return [_to_lot(record) for record in session.execute(query).scalars()]

    def consume(self, asset: str, lot: FifoLot, quantity: Decimal) -> Decimal:
        taken = lot.consume(quantity)
        with self._session_factory.begin() as session:
            session.execute(
                update(BuyLotRecord)
                .where(
                    BuyLotRecord.run_id == self.run_id,
                    BuyLotRecord.asset == asset,
                    BuyLotRecord.lot_id == lot.lot_id,
                )
                .values(remaining_quantity=lot.remaining_quantity, exhausted=lot.remaining_quantity <= ZERO)
            )
        return taken

    def lots(self, asset: str) -> List[FifoLot]:
        query = (
            select(BuyLotRecord)
            .where(BuyLotRecord.run_id == self.run_id, BuyLotRecord.asset == asset)
            .order_by(BuyLotRecord.lot_id)
        )
        with self._session_factory() as session:
            return [_to_lot(record) for record in session.execute(query).scalars()]

    def close(self) -> None:
        self.reset()
        if self._owns_engine:
            self._engine.dispose()
        if self._scratch_file is not None:
            self._scratch_file.unlink(missing_ok=True)
            self._scratch_file = None


__all__ = ["Base", "BuyLotRecord", "SqlBuyInventoryStore"]
