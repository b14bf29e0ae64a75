from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from dateutil.relativedelta import relativedelta

ZERO = Decimal("0.00")


class EmiPolicy(str, Enum):
    FLAT = "flat"
    AMORTIZING = "amortizing"


def money(x) -> Decimal:
    """Always return 2-decimal Decimal with HALF_UP rounding."""
    if x is None:
        x = 0
    if not isinstance(x, Decimal):
        x = Decimal(str(x))
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _to_decimal(x) -> Optional[Decimal]:
    if x is None or isinstance(x, bool):
        return None
    try:
        value = x if isinstance(x, Decimal) else Decimal(str(x).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


def _parse_terms(principal, annual_rate_percent, tenure_months):
    """
    Returns (principal, rate, months) or None when the terms can't produce an EMI.

    Tenure is truncated to whole months ("12.7" -> 12).
    """
    p = _to_decimal(principal)
    r = _to_decimal(annual_rate_percent)
    n = _to_decimal(tenure_months)
    if p is None or r is None or n is None:
        return None

    months = int(n)
    if p <= 0 or months <= 0 or r < 0:
        return None
    return p, r, months


def flat_emi(principal, annual_rate_percent, tenure_months) -> Decimal:
    """
    FLAT:
      emi = principal / tenure + principal * (rate% / 100)

    Example:
      principal=12000, rate=2, tenure=12 => 1240.00

    Returns 0.00 for non-positive / non-numeric terms.
    """
    terms = _parse_terms(principal, annual_rate_percent, tenure_months)
    if terms is None:
        return ZERO
    p, r, n = terms

    monthly_principal = p / Decimal(n)
    monthly_interest = p * r / Decimal("100")
    return money(monthly_principal + monthly_interest)


def amortizing_emi(principal, annual_rate_percent, tenure_months) -> Decimal:
    """
    REDUCING BALANCE:
      r   = rate% / 12 / 100
      emi = principal * r * (1 + r)^n / ((1 + r)^n - 1)
      emi = principal / n            when r == 0

    Returns 0.00 for non-positive / non-numeric terms.
    """
    terms = _parse_terms(principal, annual_rate_percent, tenure_months)
    if terms is None:
        return ZERO
    p, rate, n = terms

    r = rate / Decimal("12") / Decimal("100")
    if r == 0:
        return money(p / Decimal(n))

    growth = (Decimal("1") + r) ** n
    return money(p * r * growth / (growth - Decimal("1")))


def calculate_emi(principal, annual_rate_percent, tenure_months, policy=EmiPolicy.FLAT) -> Decimal:
    if EmiPolicy(policy) is EmiPolicy.AMORTIZING:
        return amortizing_emi(principal, annual_rate_percent, tenure_months)
    return flat_emi(principal, annual_rate_percent, tenure_months)


def compute_total_interest_flat(principal, annual_rate_percent, tenure_months) -> Decimal:
    """
    total_interest = principal * (rate% / 100) * tenure
    """
    terms = _parse_terms(principal, annual_rate_percent, tenure_months)
    if terms is None:
        return ZERO
    p, r, n = terms
    return money(p * r / Decimal("100") * Decimal(n))


def add_months(start: date, months: int) -> date:
    """Calendar month arithmetic, clamped to the last day of the target month."""
    return start + relativedelta(months=months)


def due_date_for(start: date, emi_number: int) -> date:
    # EMI #1 falls on the start date itself
    return add_months(start, emi_number - 1)
