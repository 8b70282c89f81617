#!/usr/bin/env python3
"""
Database setup script for the GitHub issue operator.

Creates the github_issues table that stores GithubIssue records, using a
direct PostgreSQL connection to the Supabase database.

Usage:
    python setup/setup_database.py           # Create schema
    python setup/setup_database.py --verify  # Verify existing schema
    python setup/setup_database.py --drop    # Drop and recreate (DANGEROUS)
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils.config_loader import load_config
from utils.logger import setup_logger

try:
    import psycopg2
except ImportError:
    print("Error: psycopg2 not installed. Run: pip install -e .")
    sys.exit(1)

logger = setup_logger(name=__name__)

TABLE_NAME = "github_issues"

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS github_issues (
    -- Identity
    namespace TEXT NOT NULL,
    name TEXT NOT NULL,
    uid TEXT NOT NULL,
    
    -- Store-managed metadata
    resource_version BIGINT NOT NULL DEFAULT 1,
    finalizers JSONB NOT NULL DEFAULT '[]'::jsonb,
    deletion_timestamp TIMESTAMPTZ,
    creation_timestamp TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    
    -- Spec (desired issue state)
    repo TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    
    -- Status (written by the operator only)
    conditions JSONB NOT NULL DEFAULT '[]'::jsonb,
    
    PRIMARY KEY (namespace, name)
);
"""

CREATE_INDEXES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_github_issues_repo ON github_issues(repo);",
    "CREATE INDEX IF NOT EXISTS idx_github_issues_deletion ON github_issues(deletion_timestamp) WHERE deletion_timestamp IS NOT NULL;",
]

EXPECTED_INDEXES = ["idx_github_issues_repo", "idx_github_issues_deletion"]

DROP_TABLE_SQL = "DROP TABLE IF EXISTS github_issues CASCADE;"


def get_database_url(config) -> str:
    """Get PostgreSQL database URL from DATABASE_URL."""
    if config.credentials.database_url:
        return config.credentials.database_url
    
    logger.error("DATABASE_URL not found in .env file")
    logger.error("\nTo get your DATABASE_URL:")
    logger.error("1. Go to Supabase Dashboard → Project Settings → Database")
    logger.error("2. Copy the 'URI' connection string")
    logger.error("3. Add to .env file: DATABASE_URL=postgresql://...")
    sys.exit(1)


def create_connection(database_url: str):
    """Create a PostgreSQL database connection."""
    try:
        conn = psycopg2.connect(database_url)
        logger.info("✓ Connected to PostgreSQL database")
        return conn
    except psycopg2.Error as e:
        logger.error(f"✗ Failed to connect to database: {e}")
        sys.exit(1)


def execute_sql(conn, sql_statement: str, description: str) -> bool:
    """Execute a SQL statement inside its own transaction."""
    try:
        with conn.cursor() as cursor:
            cursor.execute(sql_statement)
        conn.commit()
        logger.info(f"✓ {description}")
        return True
    except psycopg2.Error as e:
        logger.error(f"✗ {description} failed: {e}")
        conn.rollback()
        return False


def verify_schema(conn) -> bool:
    """Verify that the github_issues table and its indexes exist."""
    try:
        with conn.cursor() as cursor:
            cursor.execute(
                "SELECT EXISTS (SELECT FROM information_schema.tables WHERE table_name = %s);",
                (TABLE_NAME,),
            )
            if not cursor.fetchone()[0]:
                logger.error(f"✗ Table '{TABLE_NAME}' does not exist")
                return False
            logger.info(f"✓ Table '{TABLE_NAME}' exists")
            
            cursor.execute("SELECT indexname FROM pg_indexes WHERE tablename = %s;", (TABLE_NAME,))
            indexes = [row[0] for row in cursor.fetchall()]
        
        for idx in EXPECTED_INDEXES:
            if idx in indexes:
                logger.info(f"✓ Index '{idx}' exists")
            else:
                logger.warning(f"⚠ Index '{idx}' missing")
        return True
        
    except psycopg2.Error as e:
        logger.error(f"✗ Schema verification failed: {e}")
        return False


def create_schema(conn) -> bool:
    """Create the database schema."""
    if not execute_sql(conn, CREATE_TABLE_SQL, f"Created table '{TABLE_NAME}'"):
        return False
    
    for idx_sql in CREATE_INDEXES_SQL:
        idx_name = idx_sql.split("INDEX IF NOT EXISTS ")[1].split(" ON")[0]
        if not execute_sql(conn, idx_sql, f"Created index '{idx_name}'"):
            return False
    
    logger.info("✓ Database schema created successfully!")
    return True


def drop_schema(conn) -> bool:
    """Drop the existing schema (DANGEROUS)."""
    logger.warning("⚠️  WARNING: this deletes every GithubIssue record (GitHub issues are left as they are)")
    
    response = input("\nType 'yes' to confirm: ")
    if response.lower() != 'yes':
        logger.info("Aborted.")
        return False
    
    return execute_sql(conn, DROP_TABLE_SQL, f"Dropped table '{TABLE_NAME}'")


def main():
    parser = argparse.ArgumentParser(
        description="Set up database schema for the GitHub issue operator"
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Verify existing schema without creating"
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop and recreate the table (DANGEROUS - deletes all records)"
    )
    
    args = parser.parse_args()
    
    config = load_config()
    conn = create_connection(get_database_url(config))
    
    try:
        if args.verify:
            sys.exit(0 if verify_schema(conn) else 1)
        
        if args.drop and not drop_schema(conn):
            sys.exit(1)
        
        sys.exit(0 if create_schema(conn) else 1)
    finally:
        conn.close()
        logger.info("✓ Database connection closed")


if __name__ == "__main__":
    main()
