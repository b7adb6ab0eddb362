# staking_pipeline/defs/resources.py
"""
Dagster Resources for database connections and ledger configuration
"""
from dagster import ConfigurableResource
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from contextlib import contextmanager
import os


class DatabaseResource(ConfigurableResource):
    """Database resource for the events DB (input) and the analytics DB (ledger output)"""

    events_db_url: str = os.getenv("EVENTS_DB_URL", "")
    analytics_db_url: str = os.getenv("ANALYTICS_DB_URL", "")

    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30

    def __init__(self, **data):
        super().__init__(**data)
        self._events_engine = None
        self._analytics_engine = None
        self._AnalyticsSessionLocal = None

    def _create_engine(self, url: str):
        return create_engine(
            url,
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            pool_timeout=self.pool_timeout,
            echo=False,
        )

    @property
    def events_engine(self):
        if self._events_engine is None:
            self._events_engine = self._create_engine(self.events_db_url)
        return self._events_engine

    @property
    def analytics_engine(self):
        if self._analytics_engine is None:
            self._analytics_engine = self._create_engine(self.analytics_db_url)
        return self._analytics_engine

    @property
    def AnalyticsSessionLocal(self):
        """Session factory for the analytics database"""
        if self._AnalyticsSessionLocal is None:
            self._AnalyticsSessionLocal = sessionmaker(
                bind=self.analytics_engine,
                expire_on_commit=False,
            )
        return self._AnalyticsSessionLocal

    @contextmanager
    def get_analytics_session(self):
        """Session on the analytics DB, committed on clean exit and rolled back on error"""
        session = self.AnalyticsSessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def execute_query(self, query: str, params: dict = None, db: str = "events"):
        """Execute a raw SQL query and return results"""
        engine = self.events_engine if db == "events" else self.analytics_engine
        with engine.connect() as conn:
            result = conn.execute(text(query), params or {})
            return result.fetchall()

    def execute_update(self, query: str, params: dict = None, db: str = "analytics"):
        """Execute an UPDATE/INSERT/DELETE query"""
        engine = self.events_engine if db == "events" else self.analytics_engine
        with engine.connect() as conn:
            result = conn.execute(text(query), params or {})
            conn.commit()
            return result.rowcount


class ConfigResource(ConfigurableResource):
    """Configuration resource for ledger pipeline settings"""

    # Checkpoint settings
    checkpoint_table: str = "pipeline_checkpoints"
    checkpoint_key: str = "staking_ledger_v1"

    # Network whose staking factory implementations are indexed
    network: str = "gnosis"

    # Blocks to lag behind the latest indexed block
    safety_buffer_blocks: int = 10

    # 0 means no cap
    max_blocks_per_run: int = 50000

    # Monitoring
    log_batch_progress_every: int = 500  # Log every N events

    # Daily summary analytics
    median_rolling_window_days: int = 7

    def get_checkpoint_query(self) -> str:
        """Get query for retrieving checkpoint"""
        return f"""
            SELECT
                last_processed_at,
                last_processed_block,
                events_processed_count,
                run_metadata
            FROM {self.checkpoint_table}
            WHERE pipeline_name = :pipeline_name
        """

    def get_update_checkpoint_query(self) -> str:
        """Get query for updating checkpoint"""
        return f"""
            INSERT INTO {self.checkpoint_table} (
                pipeline_name,
                last_processed_at,
                last_processed_block,
                events_processed_count,
                events_failed_count,
                run_duration_seconds,
                run_metadata
            ) VALUES (
                :pipeline_name,
                :last_processed_at,
                :last_processed_block,
                :events_processed_count,
                :events_failed_count,
                :run_duration_seconds,
                :run_metadata
            )
            ON CONFLICT (pipeline_name)
            DO UPDATE SET
                last_processed_at = EXCLUDED.last_processed_at,
                last_processed_block = EXCLUDED.last_processed_block,
                events_processed_count = EXCLUDED.events_processed_count,
                events_failed_count = EXCLUDED.events_failed_count,
                run_duration_seconds = EXCLUDED.run_duration_seconds,
                run_metadata = EXCLUDED.run_metadata
        """
