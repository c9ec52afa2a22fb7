#!/usr/bin/env python3
"""
Database initialization script
Creates all tables and optionally seeds teams and matches from JSON files
"""

import json
import logging
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dotenv import load_dotenv
load_dotenv()

from pydantic import ValidationError
from sqlalchemy import inspect, text

from oddsforge.models import Base, engine
from oddsforge.schemas import TeamIn
from oddsforge.services.pipeline import record_matches
from oddsforge.services.sql_store import SqlRatingStore

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


def init_database(drop_existing: bool = False):
    """
    Initialize database tables

    Args:
        drop_existing: If True, drops all tables first (DANGER: data loss!)
    """
    logger.info("🔧 Initializing OddsForge database...")

    if drop_existing:
        logger.warning("⚠️  Dropping all existing tables!")
        response = input("Are you sure? This will delete all data. Type 'yes' to confirm: ")
        if response.lower() != 'yes':
            logger.info("Aborted.")
            return False

        Base.metadata.drop_all(bind=engine)
        logger.info("✅ Existing tables dropped")

    Base.metadata.create_all(bind=engine)
    logger.info("✅ Database tables created successfully")

    tables = inspect(engine).get_table_names()
    logger.info("📋 Tables: %s", ", ".join(tables))
    return True


def seed_teams(path: str) -> int:
    """Load a JSON list of team records; teams without a rating get the league seed."""
    logger.info("🌱 Seeding teams from %s", path)
    with open(path) as fh:
        records = json.load(fh)

    store = SqlRatingStore()
    seeded = 0
    for record in records:
        try:
            team = TeamIn.model_validate(record).to_team()
        except ValidationError as exc:
            logger.error("Skipping team record %r: %s", record.get("id"), exc)
            continue
        store.add_team(team)
        seeded += 1

    logger.info("✅ Seeded %d/%d teams", seeded, len(records))
    return seeded


def load_matches(path: str) -> int:
    """Load a JSON list of fixtures and results; invalid records are logged and skipped."""
    logger.info("📅 Loading matches from %s", path)
    with open(path) as fh:
        records = json.load(fh)

    summary = record_matches(SqlRatingStore(), records)
    logger.info("✅ Loaded %d/%d matches", len(summary.recorded), len(records))
    return len(summary.recorded)


def check_connection():
    """Test database connection"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("✅ Database connection successful")
        return True
    except Exception as e:
        logger.error("❌ Database connection failed: %s", e)
        return False


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Initialize OddsForge database")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables (DANGER!)")
    parser.add_argument("--seed", metavar="TEAMS_JSON", help="Seed teams from a JSON file")
    parser.add_argument("--matches", metavar="MATCHES_JSON", help="Load fixtures and results from a JSON file")
    parser.add_argument("--check", action="store_true", help="Only check connection")

    args = parser.parse_args()

    if args.check:
        sys.exit(0 if check_connection() else 1)

    if not check_connection():
        logger.error("Cannot initialize database - connection failed")
        sys.exit(1)

    if init_database(drop_existing=args.drop):
        if args.seed:
            seed_teams(args.seed)
        if args.matches:
            load_matches(args.matches)

    logger.info("🎉 Database initialization complete!")
