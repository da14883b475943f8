"""
Database Persistence Layer
Handles upserts of CAKE earnings into Supabase Postgres
"""

from typing import Dict, Optional, Sequence

import psycopg2
from psycopg2.extras import RealDictCursor, execute_batch

from cake_sync.config.sync_windows import EARNINGS_TABLE, UPSERT_BATCH_SIZE
from cake_sync.exceptions import StorageError
from cake_sync.models.earnings_record import EarningsRecord
from cake_sync.utils.log import log_step

CONFLICT_COLUMNS = ('cake_affiliate_id', 'date')
METRIC_COLUMNS = ('clicks', 'conversions', 'revenue', 'payout')


class DatabasePersistence:
    """Handles database operations for the earnings table"""

    def __init__(
        self,
        db_url: str,
        password: Optional[str] = None,
        table: str = EARNINGS_TABLE,
        batch_size: int = UPSERT_BATCH_SIZE,
    ):
        if not db_url:
            raise StorageError("Database URL is empty")
        self.db_url = db_url
        self.password = password
        self.table = table
        self.batch_size = batch_size
        self.connection = None
        self.cursor = None

    @classmethod
    def from_settings(cls, settings) -> "DatabasePersistence":
        return cls(
            db_url=settings.SUPABASE_DB_URL,
            password=settings.SUPABASE_DB_PASSWORD,
            table=settings.EARNINGS_TABLE,
            batch_size=settings.UPSERT_BATCH_SIZE,
        )

    def connect(self) -> None:
        """
        Establish database connection
        Raises StorageError if connection fails
        """
        try:
            log_step("Connecting to Supabase...", tag="DB")
            # An explicit password overrides any password embedded in the URL
            kwargs = {'password': self.password} if self.password else {}
            self.connection = psycopg2.connect(self.db_url, **kwargs)
            self.cursor = self.connection.cursor(cursor_factory=RealDictCursor)
            log_step("Connected successfully", "SUCCESS", tag="DB")
        except psycopg2.Error as e:
            log_step(f"Connection failed: {e}", "ERROR", tag="DB")
            raise StorageError(f"Database connection failed: {e}") from e

    def disconnect(self) -> None:
        """Close database connection"""
        if self.cursor:
            self.cursor.close()
            self.cursor = None
        if self.connection:
            self.connection.close()
            self.connection = None
            log_step("Connection closed", tag="DB")

    def begin_transaction(self) -> None:
        """Begin a database transaction (psycopg2 opens one implicitly on first statement)"""
        if not self.connection:
            raise StorageError("Must connect to database before starting transaction")

    def commit_transaction(self) -> None:
        if self.connection:
            self.connection.commit()

    def rollback_transaction(self) -> None:
        if self.connection:
            self.connection.rollback()
            log_step("Transaction rolled back", "WARNING", tag="DB")

    # ========================================
    # EARNINGS PERSISTENCE
    # ========================================

    def build_upsert_sql(self) -> str:
        """
        INSERT ... ON CONFLICT (cake_affiliate_id, date) DO UPDATE.
        Metrics are replaced by the incoming values, never added to.
        """
        columns = CONFLICT_COLUMNS + METRIC_COLUMNS
        placeholders = ", ".join(["%s"] * len(columns))
        updates = ",\n                ".join(f"{col} = EXCLUDED.{col}" for col in METRIC_COLUMNS)
        return f"""
            INSERT INTO {self.table}
                ({", ".join(columns)})
            VALUES
                ({placeholders})
            ON CONFLICT ({", ".join(CONFLICT_COLUMNS)})
            DO UPDATE SET
                {updates}
        """

    def upsert_earnings(self, records: Sequence[EarningsRecord]) -> Dict[str, int]:
        """
        Insert or update earnings rows in one transaction.
        Writing the same (cake_affiliate_id, date) twice leaves the last values.

        Args:
            records: EarningsRecords to write

        Returns:
            Dictionary with counts: {'rows_processed': N}

        Raises:
            StorageError: any database error; the transaction is rolled back
        """
        if not records:
            log_step("No earnings rows to write, skipping upsert", tag="DB")
            return {'rows_processed': 0}

        self.begin_transaction()
        insert_sql = self.build_upsert_sql()
        total_rows = len(records)

        try:
            for i in range(0, total_rows, self.batch_size):
                batch = records[i:i + self.batch_size]
                batch_data = [self._row_params(record) for record in batch]
                execute_batch(self.cursor, insert_sql, batch_data, page_size=self.batch_size)

            self.commit_transaction()
        except psycopg2.Error as e:
            self.rollback_transaction()
            log_step(f"Failed to upsert earnings into {self.table}: {e}", "ERROR", tag="DB")
            raise StorageError(f"Database error upserting earnings: {e}") from e

        log_step(f"Upserted {total_rows:,} rows into {self.table}", "SUCCESS", tag="DB")
        return {'rows_processed': total_rows}

    @staticmethod
    def _row_params(record: EarningsRecord) -> tuple:
        row = record.to_row()
        return tuple(row[col] for col in CONFLICT_COLUMNS + METRIC_COLUMNS)
