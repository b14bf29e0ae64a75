from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from loan_app.core.config import settings
from loan_app.utils.database import get_db
from loan_app.services.emi_schedule import backfill_missing_schedules
from loan_app.schemas.emi_schema import BackfillOut

router = APIRouter(prefix="/emi-utility", tags=["EMI Utility"])


@router.post("/generate-emis", response_model=BackfillOut)
def generate_emis_for_existing_loans(db: Session = Depends(get_db)):
    """Generate EMIs for loans that don't have any yet."""
    result = backfill_missing_schedules(db, default_tenure_months=settings.default_tenure_months)
    return BackfillOut(
        generated_count=result.generated_count,
        skipped_count=result.skipped_count,
        total_loans=result.total_loans,
        message=(
            f"EMIs generated for {result.generated_count} loans. "
            f"Skipped {result.skipped_count} loans (already have EMIs)."
        ),
    )
