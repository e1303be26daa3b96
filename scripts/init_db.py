#!/usr/bin/env python3
"""
Database initialization script.

Steps:
1. Wait until the database accepts connections
2. Create missing tables
3. Optionally seed a template wordbook from a plain-text word list

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --template words.txt --title "高中英语词汇3500乱序" \
        --template-id 095D66A2-6E17-42A3-B0FA-9022D3AD4398 --template-version 2
"""
import argparse
import sys
import time
import logging
from pathlib import Path
from uuid import UUID

# Make the project root importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from vocab_api.core.word_list_parser import load_word_list
from vocab_api.database import Base, SessionLocal, engine
from vocab_api.services.wordbook_service import WordbookService
import vocab_api.models  # noqa: F401  (registers tables on Base.metadata)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

MAX_RETRIES = 30  # max connection attempts
RETRY_INTERVAL = 2  # seconds between attempts


def wait_for_db(max_retries: int = MAX_RETRIES) -> bool:
    """
    Wait until the database is reachable.

    Returns:
        bool: True once a ``SELECT 1`` succeeds
    """
    logger.info("Waiting for database...")

    for attempt in range(1, max_retries + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
                logger.info(f"✅ Database reachable (attempt {attempt}/{max_retries})")
                return True
        except OperationalError as e:
            logger.warning(f"DB connection failed ({attempt}/{max_retries}): {str(e)[:50]}...")
            time.sleep(RETRY_INTERVAL)

    logger.error(f"❌ Database unreachable after {max_retries} attempts")
    return False


def main() -> int:
    parser = argparse.ArgumentParser(description="Create tables and seed template wordbooks")
    parser.add_argument("--template", type=Path, help="Plain-text word list to seed as a template")
    parser.add_argument("--title", default="高中英语词汇3500乱序")
    parser.add_argument("--subtitle", default=None)
    parser.add_argument("--template-id", type=UUID, default=UUID("095D66A2-6E17-42A3-B0FA-9022D3AD4398"))
    parser.add_argument("--template-version", type=int, default=1)
    args = parser.parse_args()

    if not wait_for_db():
        return 1

    Base.metadata.create_all(bind=engine)
    logger.info("✅ Tables ready")

    if args.template:
        entries = load_word_list(args.template)
        subtitle = args.subtitle or f"共 {len(entries)} 词 · 乱序"
        db = SessionLocal()
        try:
            WordbookService().upsert_template(
                db,
                args.template_id,
                args.title,
                entries,
                subtitle=subtitle,
                template_version=args.template_version
            )
        finally:
            db.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
