"""SQLAlchemy-backed store for extracted bank records.

One row per successful extraction run. The schema is created on first
use if it does not exist. Writes are serialized so concurrent request
threads never interleave on the same connection.
"""

import threading
from dataclasses import dataclass

from sqlalchemy import Column, Integer, String, Text, create_engine, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from src.errors import PersistenceError
from src.extraction.record import (
    FIELD_NAMES,
    UPPERCASE_FIELDS,
    ExtractedRecord,
    utc_timestamp,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)

Base = declarative_base()


class BankRecord(Base):
    """Row of the ``bank_records`` table."""

    __tablename__ = "bank_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_name = Column("accountName", Text, nullable=False, default="")
    account_number = Column("accountNumber", Text, nullable=False, default="")
    routing_number = Column("routingNumber", Text, nullable=False, default="")
    check_number = Column("checkNumber", Text, nullable=False, default="")
    ifsc = Column("ifsc", Text, nullable=False, default="")
    bank_name = Column("bankName", Text, nullable=False, default="")
    branch = Column("branch", Text, nullable=False, default="")
    raw_text = Column("rawText", Text, nullable=False, default="")
    raw_micr = Column("rawMICR", Text, nullable=False, default="")
    created_at = Column("createdAt", String(40), nullable=False, default=utc_timestamp)


# Public sort keys mapped to columns.
SORT_COLUMNS = {
    "id": BankRecord.id,
    "createdAt": BankRecord.created_at,
    "accountName": BankRecord.account_name,
    "accountNumber": BankRecord.account_number,
    "bankName": BankRecord.bank_name,
    "branch": BankRecord.branch,
}

_SEARCH_COLUMNS = (
    BankRecord.account_name,
    BankRecord.account_number,
    BankRecord.routing_number,
    BankRecord.check_number,
    BankRecord.ifsc,
    BankRecord.bank_name,
    BankRecord.branch,
)


@dataclass(frozen=True)
class StoredRecord:
    """A persisted record with its row identifier."""

    id: int
    record: ExtractedRecord


def _to_stored(row: BankRecord) -> StoredRecord:
    return StoredRecord(
        id=row.id,
        record=ExtractedRecord(
            account_name=row.account_name,
            account_number=row.account_number,
            routing_number=row.routing_number,
            check_number=row.check_number,
            ifsc=row.ifsc,
            bank_name=row.bank_name,
            branch=row.branch,
            raw_text=row.raw_text,
            raw_micr=row.raw_micr,
            created_at=row.created_at,
        ),
    )


class RecordRepository:
    """CRUD access to the ``bank_records`` table.

    Args:
        database_url: SQLAlchemy database URL.
    """

    def __init__(self, database_url: str = "sqlite:///bankdata.db") -> None:
        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        try:
            self.engine = create_engine(database_url, connect_args=connect_args)
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Cannot open record store: {exc}") from exc
        self._session = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._write_lock = threading.Lock()

    def add(self, record: ExtractedRecord) -> int:
        """Insert a record and return its id.

        Raises:
            PersistenceError: If the insert fails.
        """
        values = record.fields()
        row = BankRecord(
            **values,
            raw_text=record.raw_text,
            raw_micr=record.raw_micr,
            created_at=record.created_at or utc_timestamp(),
        )
        with self._write_lock:
            try:
                with self._session.begin() as session:
                    session.add(row)
                    session.flush()
                    record_id = row.id
            except SQLAlchemyError as exc:
                raise PersistenceError(f"Insert failed: {exc}") from exc
        logger.info("Stored record %d", record_id)
        return record_id

    def get(self, record_id: int) -> StoredRecord | None:
        """Fetch one record, or ``None`` if absent."""
        try:
            with self._session() as session:
                row = session.get(BankRecord, record_id)
                return _to_stored(row) if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Read failed: {exc}") from exc

    def list_records(
        self,
        search: str | None = None,
        sort_by: str = "id",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[StoredRecord], int]:
        """List records with optional search, sorting, and paging.

        Args:
            search: Case-insensitive substring matched against every
                banking field.
            sort_by: One of :data:`SORT_COLUMNS`.
            descending: Sort direction.
            limit: Page size.
            offset: Number of rows to skip.

        Returns:
            The requested page and the total number of matching rows.

        Raises:
            ValueError: If ``sort_by`` is not a known sort key.
            PersistenceError: If the query fails.
        """
        if sort_by not in SORT_COLUMNS:
            raise ValueError(f"Unsupported sort key: {sort_by}")

        query = select(BankRecord)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(*(col.ilike(pattern) for col in _SEARCH_COLUMNS)))

        column = SORT_COLUMNS[sort_by]
        ordered = query.order_by(column.desc() if descending else column.asc())
        try:
            with self._session() as session:
                total = session.scalar(
                    select(func.count()).select_from(query.subquery())
                )
                rows = session.scalars(ordered.limit(limit).offset(offset)).all()
                return [_to_stored(row) for row in rows], total or 0
        except SQLAlchemyError as exc:
            raise PersistenceError(f"List failed: {exc}") from exc

    def update(self, record_id: int, changes: dict[str, str]) -> StoredRecord | None:
        """Apply manual edits to the banking fields of a record.

        Free-text fields are uppercased like freshly extracted ones.

        Returns:
            The updated record, or ``None`` if it does not exist.

        Raises:
            ValueError: If ``changes`` names a non-editable field.
            PersistenceError: If the update fails.
        """
        unknown = set(changes) - set(FIELD_NAMES)
        if unknown:
            raise ValueError(f"Fields not editable: {sorted(unknown)}")

        with self._write_lock:
            try:
                with self._session.begin() as session:
                    row = session.get(BankRecord, record_id)
                    if row is None:
                        return None
                    for name, value in changes.items():
                        value = (value or "").strip()
                        if name in UPPERCASE_FIELDS:
                            value = value.upper()
                        setattr(row, name, value)
                    stored = _to_stored(row)
            except SQLAlchemyError as exc:
                raise PersistenceError(f"Update failed: {exc}") from exc
        logger.info("Updated record %d: %s", record_id, sorted(changes))
        return stored

    def delete(self, record_id: int) -> bool:
        """Delete a record. Returns False if it did not exist."""
        with self._write_lock:
            try:
                with self._session.begin() as session:
                    row = session.get(BankRecord, record_id)
                    if row is None:
                        return False
                    session.delete(row)
            except SQLAlchemyError as exc:
                raise PersistenceError(f"Delete failed: {exc}") from exc
        logger.info("Deleted record %d", record_id)
        return True
