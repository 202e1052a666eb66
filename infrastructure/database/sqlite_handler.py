import logging
import sqlite3
import threading
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Iterator, Optional

from infrastructure.database.ops.feed import FeedOperations
from infrastructure.database.ops.growth import GrowthOperations
from infrastructure.database.ops.measurements import MeasurementOperations

logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"


class SQLiteDatabaseHandler(
    MeasurementOperations,
    GrowthOperations,
    FeedOperations,
):
    """Thread-safe SQLite handler backing the store access repositories.

    File databases use one connection per thread. An in-memory database is a
    single connection shared by every thread, serialized with a lock, since
    separate ``:memory:`` connections would each see an empty database.
    """

    def __init__(self, database_path: str) -> None:
        self._database_path = database_path
        self._in_memory = database_path == MEMORY_DATABASE
        self._local = threading.local()
        self._shared_connection: Optional[sqlite3.Connection] = None
        self._shared_lock = threading.RLock()

        if not self._in_memory:
            # Ensure the directory for the database file exists
            db_path = Path(database_path)
            if not db_path.parent.exists():
                db_path.parent.mkdir(parents=True, exist_ok=True)
                logger.info("Created database directory: %s", db_path.parent)

    # --- Lifecycle ------------------------------------------------------------
    def init_db(self) -> None:
        self.create_tables()

    def get_db(self) -> sqlite3.Connection:
        if self._in_memory:
            if self._shared_connection is None:
                self._shared_connection = self._open_connection()
            return self._shared_connection

        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is None:
            connection = self._open_connection()
            self._local.connection = connection
        return connection

    def _open_connection(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._database_path, check_same_thread=False)
        try:
            connection.row_factory = sqlite3.Row
            self._configure_connection(connection)
            return connection
        except sqlite3.Error:
            connection.close()
            raise

    def _configure_connection(self, connection: sqlite3.Connection) -> None:
        """Configure SQLite connection.

        - WAL mode: concurrent readers alongside the writer
        - NORMAL synchronous: still safe with WAL
        """
        if not self._in_memory:
            connection.execute("PRAGMA journal_mode=WAL")
            connection.execute("PRAGMA synchronous=NORMAL")
        connection.execute("PRAGMA temp_store=MEMORY")
        connection.commit()

    def close_db(self) -> None:
        if self._in_memory:
            if self._shared_connection is not None:
                self._shared_connection.close()
                self._shared_connection = None
            return
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is not None:
            connection.close()
            delattr(self._local, "connection")

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        guard = self._shared_lock if self._in_memory else nullcontext()
        with guard:
            conn = self.get_db()
            try:
                yield conn
            except sqlite3.Error:
                conn.rollback()
                raise
            else:
                conn.commit()

    # --- Schema ----------------------------------------------------------------
    def create_tables(self) -> None:
        """Creates the necessary tables in the database if they do not already exist."""
        with self.connection() as db:
            # Continuous device readings; each channel has an optional quality tag
            db.execute(
                """
                CREATE TABLE IF NOT EXISTS SensorReadings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    device_id TEXT NOT NULL,
                    recorded_at TEXT NOT NULL,
                    temperature REAL,
                    temperature_status TEXT,
                    ph REAL,
                    ph_status TEXT,
                    tds REAL,
                    tds_status TEXT,
                    do_level REAL,
                    do_level_status TEXT
                )
                """
            )
            db.execute(
                "CREATE INDEX IF NOT EXISTS idx_sensor_readings_device_time "
                "ON SensorReadings(device_id, recorded_at)"
            )
            # Operator spot checks
            db.execute(
                """
                CREATE TABLE IF NOT EXISTS ManualMeasurements (
                    id TEXT PRIMARY KEY,
                    device_id TEXT NOT NULL,
                    recorded_by TEXT NOT NULL,
                    measured_at TEXT NOT NULL,
                    temperature REAL,
                    ph REAL,
                    tds REAL,
                    do_level REAL,
                    notes TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            db.execute(
                "CREATE INDEX IF NOT EXISTS idx_manual_measurements_device_time "
                "ON ManualMeasurements(device_id, measured_at)"
            )
            # Fish growth samples; biomass and condition are derived on write
            db.execute(
                """
                CREATE TABLE IF NOT EXISTS FishGrowth (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    device_id TEXT NOT NULL,
                    measurement_date TEXT NOT NULL,
                    length_cm REAL,
                    weight_gram REAL,
                    biomass_kg REAL,
                    condition_indicator TEXT,
                    notes TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            db.execute(
                "CREATE INDEX IF NOT EXISTS idx_fish_growth_device_date "
                "ON FishGrowth(device_id, measurement_date)"
            )
            db.execute(
                """
                CREATE TABLE IF NOT EXISTS FeedData (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    device_id TEXT NOT NULL,
                    feed_name TEXT NOT NULL,
                    feed_type TEXT NOT NULL,
                    feed_amount_kg REAL NOT NULL,
                    fed_at TEXT NOT NULL
                )
                """
            )
            db.execute(
                "CREATE INDEX IF NOT EXISTS idx_feed_data_device_time ON FeedData(device_id, fed_at)"
            )
        logger.info("Database tables ensured at %s", self._database_path)
