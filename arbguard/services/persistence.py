"""
Durable ledger storage.

Supports:
- SQLite (local development, tests via sqlite:///:memory:)
- Any SQLAlchemy URL for other deployments

Fixed-point values exceed 64-bit integers, so they are stored as
decimal strings.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, Integer, String, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from arbguard.core.config import Settings, get_settings
from arbguard.core.errors import LedgerStoreError
from arbguard.core.logging import get_logger
from arbguard.domain.models import OpportunityRecord

logger = get_logger("persistence")

Base = declarative_base()


class OpportunityRow(Base):
    """Database model for ledger records."""

    __tablename__ = "opportunities"

    id = Column(Integer, primary_key=True, autoincrement=False)
    buy_source = Column(Integer, nullable=False)
    sell_source = Column(Integer, nullable=False)
    token = Column(String(64), nullable=False)
    price_difference_bps = Column(Integer, nullable=False)
    profit_potential = Column(String(80), nullable=False)
    detected_height = Column(Integer, nullable=False, index=True)
    detector = Column(String(100), nullable=False)
    executed = Column(Boolean, nullable=False, default=False)
    actual_profit = Column(String(80), nullable=True)
    recorded_at = Column(DateTime, nullable=False)

    @classmethod
    def from_record(cls, record: OpportunityRecord) -> "OpportunityRow":
        return cls(
            id=record.id,
            buy_source=record.buy_source,
            sell_source=record.sell_source,
            token=record.token,
            price_difference_bps=record.price_difference_bps,
            profit_potential=str(record.profit_potential),
            detected_height=record.detected_height,
            detector=record.detector,
            executed=record.executed,
            actual_profit=None if record.actual_profit is None else str(record.actual_profit),
            recorded_at=datetime.now(timezone.utc),
        )

    def to_record(self) -> OpportunityRecord:
        return OpportunityRecord(
            id=self.id,
            buy_source=self.buy_source,
            sell_source=self.sell_source,
            token=self.token,
            price_difference_bps=self.price_difference_bps,
            profit_potential=int(self.profit_potential),
            detected_height=self.detected_height,
            detector=self.detector,
            executed=bool(self.executed),
            actual_profit=None if self.actual_profit is None else int(self.actual_profit),
        )


class LedgerStore(ABC):
    """Abstract base class for ledger stores."""

    @abstractmethod
    def save_record(self, record: OpportunityRecord) -> None:
        """Persist a new record."""
        pass

    @abstractmethod
    def mark_executed(self, opportunity_id: int, actual_profit: int) -> None:
        """Persist the executed flag for a record."""
        pass

    @abstractmethod
    def load_records(self) -> list[OpportunityRecord]:
        """Load all records in id order."""
        pass


class SQLiteLedgerStore(LedgerStore):
    """
    SQLAlchemy-backed ledger store.

    Each call runs in its own session and either commits fully or rolls
    back and raises LedgerStoreError.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        if database_url is None:
            settings = settings or get_settings()
            database_url = settings.database_url
        self.database_url = database_url

        engine_kwargs = {}
        if self.database_url in ("sqlite://", "sqlite:///:memory:"):
            # Share one connection so the in-memory database survives sessions
            engine_kwargs = {
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }
        elif self.database_url.startswith("sqlite:///"):
            db_path = Path(self.database_url.replace("sqlite:///", ""))
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(self.database_url, **engine_kwargs)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine)

        logger.info(f"Initialized ledger store: {self.database_url}")

    def save_record(self, record: OpportunityRecord) -> None:
        session = self.Session()
        try:
            session.add(OpportunityRow.from_record(record))
            session.commit()
            logger.debug(f"Saved opportunity #{record.id}")
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save opportunity #{record.id}: {e}")
            raise LedgerStoreError(
                f"Failed to save opportunity #{record.id}",
                cause=e,
            ) from e
        finally:
            session.close()

    def mark_executed(self, opportunity_id: int, actual_profit: int) -> None:
        session = self.Session()
        try:
            row = session.get(OpportunityRow, opportunity_id)
            if row is None:
                raise LedgerStoreError(
                    f"Opportunity #{opportunity_id} missing from store",
                    details={"opportunity_id": opportunity_id},
                )
            row.executed = True
            row.actual_profit = str(actual_profit)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to mark opportunity #{opportunity_id}: {e}")
            raise LedgerStoreError(
                f"Failed to mark opportunity #{opportunity_id} executed",
                cause=e,
            ) from e
        finally:
            session.close()

    def load_records(self) -> list[OpportunityRecord]:
        session = self.Session()
        try:
            rows = session.query(OpportunityRow).order_by(OpportunityRow.id).all()
            return [row.to_record() for row in rows]
        except SQLAlchemyError as e:
            raise LedgerStoreError("Failed to load ledger", cause=e) from e
        finally:
            session.close()

    def count(self) -> int:
        session = self.Session()
        try:
            return session.query(OpportunityRow).count()
        finally:
            session.close()


def create_ledger_store(
    settings: Optional[Settings] = None,
) -> Optional[LedgerStore]:
    """
    Create the ledger store configured in settings.

    Returns None when persistence is switched off.
    """
    settings = settings or get_settings()

    if not settings.persist_ledger:
        logger.info("Ledger persistence disabled, keeping records in memory")
        return None

    return SQLiteLedgerStore(settings=settings)
