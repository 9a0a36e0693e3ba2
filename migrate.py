#!/usr/bin/env python3
"""
Database migration runner
Applies migrations/*.sql in filename order against DATABASE_URL
"""

import os
import sys
from pathlib import Path
from typing import List, Optional
import psycopg
from imagegen.logger import setup_logger

logger = setup_logger("migrate")

MIGRATIONS_DIR = Path(__file__).parent / 'migrations'


def schema_for_environment(environment: str) -> str:
    return 'preview' if environment == 'preview' else 'public'


def render_migration(sql: str, schema: str) -> str:
    """Replace the TARGET_SCHEMA placeholder with the actual schema name"""
    return sql.replace('TARGET_SCHEMA', schema)


def discover_migrations(migrations_dir: Path) -> List[Path]:
    return sorted(migrations_dir.glob('*.sql'))


class MigrationRunner:
    def __init__(self, database_url: Optional[str] = None, environment: Optional[str] = None,
                 migrations_dir: Path = MIGRATIONS_DIR):
        self.database_url = database_url or os.getenv('DATABASE_URL')
        if not self.database_url:
            raise ValueError("DATABASE_URL environment variable not found")
        # psycopg wants a plain libpq URL, not the SQLAlchemy dialect form
        self.database_url = self.database_url.replace('postgresql+psycopg://', 'postgresql://', 1)

        self.environment = environment or os.getenv('ENVIRONMENT', 'production')
        self.schema = schema_for_environment(self.environment)

        logger.info(f"Environment: {self.environment}")
        logger.info(f"Target schema: {self.schema}")

        self.migrations_dir = migrations_dir
        if not self.migrations_dir.exists():
            raise FileNotFoundError(f"Migrations directory not found: {self.migrations_dir}")

    def get_db_connection(self):
        return psycopg.connect(self.database_url, autocommit=True)

    def create_migration_tracking_table(self) -> None:
        sql = render_migration("""
        CREATE SCHEMA IF NOT EXISTS TARGET_SCHEMA;
        CREATE TABLE IF NOT EXISTS TARGET_SCHEMA.migration_history (
            id SERIAL PRIMARY KEY,
            migration_name VARCHAR(255) UNIQUE NOT NULL,
            applied_at TIMESTAMP DEFAULT NOW(),
            success BOOLEAN DEFAULT TRUE,
            environment VARCHAR(50)
        );
        """, self.schema)
        with self.get_db_connection() as conn:
            conn.execute(sql)
        logger.info(f"Migration tracking table ready in {self.schema} schema")

    def is_migration_applied(self, migration_name: str) -> bool:
        sql = f"SELECT COUNT(*) FROM {self.schema}.migration_history WHERE migration_name = %s AND success = TRUE"
        with self.get_db_connection() as conn:
            row = conn.execute(sql, (migration_name,)).fetchone()
        return bool(row and row[0])

    def mark_migration_applied(self, migration_name: str, success: bool = True) -> None:
        sql = f"""
        INSERT INTO {self.schema}.migration_history (migration_name, success, environment)
        VALUES (%s, %s, %s)
        ON CONFLICT (migration_name)
        DO UPDATE SET applied_at = NOW(), success = EXCLUDED.success, environment = EXCLUDED.environment
        """
        with self.get_db_connection() as conn:
            conn.execute(sql, (migration_name, success, self.environment))

    def run_migration_file(self, file_path: Path) -> bool:
        migration_name = file_path.name
        logger.info(f"Running: {migration_name}")

        try:
            with self.get_db_connection() as conn:
                conn.execute(render_migration(file_path.read_text(), self.schema))
        except psycopg.Error as e:
            logger.error(f"Failed: {migration_name}: {e}")
            self.mark_migration_applied(migration_name, False)
            return False

        self.mark_migration_applied(migration_name, True)
        logger.info(f"Success: {migration_name}")
        return True

    def get_pending_migrations(self) -> List[Path]:
        return [path for path in discover_migrations(self.migrations_dir) if not self.is_migration_applied(path.name)]

    def run_all_migrations(self) -> bool:
        logger.info("Starting database migrations")
        self.create_migration_tracking_table()

        pending = self.get_pending_migrations()
        if not pending:
            logger.info("No pending migrations. Database is up to date!")
            return True

        logger.info(f"Found {len(pending)} pending migrations")
        for file_path in pending:
            if not self.run_migration_file(file_path):
                logger.error("Migration failed. Stopping.")
                return False

        logger.info("All migrations completed successfully!")
        return True


def main():
    try:
        success = MigrationRunner().run_all_migrations()
    except (ValueError, FileNotFoundError, psycopg.Error) as e:
        logger.error(f"Migration error: {str(e)}")
        sys.exit(1)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
