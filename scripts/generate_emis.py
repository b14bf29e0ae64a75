#!/usr/bin/env python3
"""Generate EMI schedules for loans that have none.

Loans that already have at least one EMI are skipped, so the script can be
re-run safely. Uses DATABASE_URL (or the DB_* variables) from the environment
or .env.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_app.core.config import settings
from loan_app.core.exceptions import LoanAppError
from loan_app.core.logging import get_logger, setup_logging
import loan_app.models  # noqa: F401
from loan_app.services.emi_schedule import backfill_missing_schedules
from loan_app.utils.database import Base, SessionLocal, engine

logger = get_logger("loan_app.scripts.generate_emis")


def main() -> None:
    parser = argparse.ArgumentParser(description="Backfill EMI schedules for existing loans")
    parser.add_argument(
        "--default-tenure",
        type=int,
        default=settings.default_tenure_months,
        help="Tenure (months) for loans with no tenure stored (default: %(default)s)",
    )
    parser.add_argument("--log-level", default=settings.log_level)
    args = parser.parse_args()

    setup_logging(args.log_level, settings.log_format)

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        result = backfill_missing_schedules(db, default_tenure_months=args.default_tenure)
    except LoanAppError as e:
        logger.error("Error generating EMIs: %s", e)
        sys.exit(1)
    finally:
        db.close()

    logger.info("Generated EMIs for: %d loans", result.generated_count)
    logger.info("Skipped (already have EMIs): %d loans", result.skipped_count)
    logger.info("Total loans processed: %d", result.total_loans)


if __name__ == "__main__":
    main()
