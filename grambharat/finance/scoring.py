"""CIBIL-style credit scoring and loan eligibility decisions.

Everything here is pure: a profile goes in, a score or an
``EligibilityResult`` comes out. Amounts are Indian Rupees.
"""

from __future__ import annotations

import math

from grambharat.finance.models import EligibilityResult, FinancialProfile, ProfileSummary

MIN_SCORE = 300
MAX_SCORE = 900

ANNUAL_INTEREST_RATE = 0.10
TENURE_MONTHS = 60
MONTHLY_RATE = ANNUAL_INTEREST_RATE / 12

# Score floor -> income multiplier for the maximum loan amount.
LOAN_MULTIPLIERS: list[tuple[int, int]] = [
    (750, 25),
    (700, 18),
    (650, 12),
    (600, 8),
    (550, 6),
]
DEFAULT_LOAN_MULTIPLIER = 3
MAX_AMOUNT_PADDING = 1.2

LARGE_LOAN_THRESHOLD = 300_000
COLLATERAL_COVERAGE = 1.2

STABILITY_POINTS = {
    "Very Stable": 60,
    "Stable": 50,
    "Regular": 40,
    "Seasonal": 25,
}


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_inr(amount: float) -> str:
    """Format a rupee amount with Indian digit grouping (1,50,000)."""
    whole = _round_half_up(abs(amount))
    digits = str(whole)
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups: list[str] = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join([*groups, tail])
    return f"-{digits}" if amount < 0 and whole else digits


def monthly_emi(principal: float) -> float:
    """Amortized monthly installment at the fixed rate and tenure."""
    growth = (1 + MONTHLY_RATE) ** TENURE_MONTHS
    return principal * MONTHLY_RATE * growth / (growth - 1)


# -- Score -------------------------------------------------------------------


def _payment_history_points(profile: FinancialProfile) -> float:
    history = profile.credit_history
    total = history.on_time_payments + history.late_payments + history.missed_payments
    points = history.on_time_payments / total * 210 if total > 0 else 0
    points -= 50 * history.total_defaults
    points -= 80 * history.recent_defaults
    return max(0, points)


def _utilization_points(profile: FinancialProfile) -> int:
    income = profile.income.total_monthly_income
    ratio = profile.liabilities.monthly_emi / income if income > 0 else 1
    if ratio < 0.3:
        return 180
    if ratio < 0.4:
        return 150
    if ratio < 0.5:
        return 100
    if ratio < 0.6:
        return 50
    return 0


def _history_length_points(profile: FinancialProfile) -> int:
    years = profile.credit_history.oldest_account_years
    if years >= 10:
        return 90
    if years >= 5:
        return 70
    if years >= 3:
        return 50
    if years >= 1:
        return 30
    return 10


def _income_stability_points(profile: FinancialProfile) -> int:
    points = STABILITY_POINTS.get(profile.income.income_stability, 10)
    tenure = profile.income.tenure_years
    if tenure >= 10:
        points += 10
    elif tenure >= 5:
        points += 5
    return min(60, points)


def _asset_coverage_points(profile: FinancialProfile) -> int:
    debt = profile.liabilities.total_debt
    ratio = profile.assets.total_assets / debt if debt > 0 else 100
    if ratio >= 20:
        return 60
    if ratio >= 10:
        return 50
    if ratio >= 5:
        return 40
    if ratio >= 2:
        return 25
    return 10


def _inquiry_penalty(profile: FinancialProfile) -> int:
    inquiries = profile.credit_history.credit_inquiries
    if inquiries > 5:
        return 20
    if inquiries > 3:
        return 10
    return 0


def calculate_cibil_score(profile: FinancialProfile) -> int:
    """Compute a 300-900 credit score from five weighted factors."""
    score = (
        MIN_SCORE
        + _payment_history_points(profile)
        + _utilization_points(profile)
        + _history_length_points(profile)
        + _income_stability_points(profile)
        + _asset_coverage_points(profile)
        - _inquiry_penalty(profile)
    )
    return max(MIN_SCORE, min(MAX_SCORE, _round_half_up(score)))


# -- Eligibility -------------------------------------------------------------


def _loan_multiplier(score: int) -> int:
    for floor, multiplier in LOAN_MULTIPLIERS:
        if score >= floor:
            return multiplier
    return DEFAULT_LOAN_MULTIPLIER


def max_eligible_amount(score: int, monthly_income: float, disposable_income: float) -> int:
    """Lesser of the score-tier cap and what half the disposable income can
    service over the tenure, padded by 20%."""
    by_score = monthly_income * _loan_multiplier(score)
    safe_emi = disposable_income * 0.5
    by_income = safe_emi * TENURE_MONTHS / (1 + MONTHLY_RATE * TENURE_MONTHS / 2)
    return _round_half_up(min(by_score, by_income) * MAX_AMOUNT_PADDING)


def evaluate(profile: FinancialProfile, requested_amount: float) -> EligibilityResult:
    """Decide whether *profile* qualifies for *requested_amount*.

    Hard checks run first and count critical failures. The override tiers
    then run in a fixed order and may approve asset-rich applicants whose
    only weakness is cash flow. Multiple recent defaults are never
    overridden.
    """
    score = calculate_cibil_score(profile)
    history = profile.credit_history
    assets = profile.assets

    monthly_income = profile.income.total_monthly_income
    current_emi = profile.liabilities.monthly_emi
    disposable = monthly_income - current_emi - profile.expenses.total_monthly_expenses

    new_emi = monthly_emi(requested_amount)
    total_emi = current_emi + new_emi
    dti = total_emi / monthly_income * 100 if monthly_income > 0 else 100.0

    max_amount = max_eligible_amount(score, monthly_income, disposable)
    remaining = disposable - new_emi

    eligible = True
    critical_failures = 0
    reasons: list[str] = []
    recommendations: list[str] = []

    # 1. Credit score
    if score < 500:
        eligible = False
        critical_failures += 1
        reasons.append(f"CIBIL score ({score}) is below minimum requirement of 500")
        recommendations.append("Improve payment history by clearing existing dues on time")
    elif score < 600:
        reasons.append(f"CIBIL score ({score}) is in fair range - collateral may be required")
        recommendations.append("Consider providing collateral to improve loan terms")

    # 2. Debt-to-income
    if dti > 60:
        eligible = False
        critical_failures += 1
        reasons.append(f"Debt-to-Income ratio ({dti:.1f}%) exceeds maximum limit of 60%")
        recommendations.append("Pay off existing loans to reduce EMI burden")
    elif dti > 50:
        reasons.append(f"Debt-to-Income ratio ({dti:.1f}%) is high - interest rate may be higher")

    # 3. Requested vs. maximum amount (10% tolerance)
    if requested_amount > max_amount * 1.1:
        eligible = False
        critical_failures += 1
        reasons.append(
            f"Requested amount (₹{format_inr(requested_amount)}) significantly exceeds "
            f"maximum eligible amount (₹{format_inr(max_amount)})"
        )
        recommendations.append(f"Consider applying for ₹{format_inr(max_amount)} or less")
    elif requested_amount > max_amount:
        reasons.append(
            "Requested amount slightly above recommended limit - "
            "may require additional documentation"
        )

    # 4. Disposable income after the new EMI (soft until the overrides run)
    min_required = max(1500, monthly_income * 0.05)
    income_issue = remaining < min_required
    if income_issue:
        reasons.append(f"Limited disposable income after EMI (₹{format_inr(remaining)})")
        recommendations.append(
            f"Consider reducing loan amount to ₹{format_inr(max_amount * 0.7)}"
        )
    elif remaining < 2500:
        reasons.append(
            f"Moderate disposable income after EMI (₹{format_inr(remaining)}) - budget carefully"
        )
    elif remaining < 4000:
        reasons.append(
            f"Good disposable income after EMI (₹{format_inr(remaining)}) - manageable"
        )
    else:
        reasons.append(f"Excellent disposable income after EMI (₹{format_inr(remaining)})")

    # 5. Recent defaults
    repeat_defaulter = history.recent_defaults > 1
    if repeat_defaulter:
        eligible = False
        critical_failures += 1
        reasons.append(f"Multiple recent loan defaults detected ({history.recent_defaults})")
        recommendations.append("Clear all defaults and wait 6 months before reapplying")
    elif history.recent_defaults == 1:
        reasons.append("One recent default detected - may require guarantor")
        recommendations.append("Provide a guarantor to strengthen application")

    # 6. Collateral for large loans (advisory only)
    collateral_required = requested_amount > LARGE_LOAN_THRESHOLD and score < 700
    if collateral_required:
        available = assets.collateral_value
        needed = requested_amount * COLLATERAL_COVERAGE
        if available < needed:
            reasons.append(
                f"Limited collateral for loan amount (Required: ₹{format_inr(needed)}, "
                f"Available: ₹{format_inr(available)})"
            )
            recommendations.append("Provide additional collateral or consider a co-applicant")
        else:
            reasons.append(f"Collateral available (₹{format_inr(available)}) - good security")

    # Overrides, in order.
    if (
        not repeat_defaulter
        and score >= 700
        and assets.total_assets > requested_amount * 2.5
        and remaining > 1200
    ):
        eligible = True
        reasons.append(
            f"✓ Strong credit (CIBIL: {score}) and excellent asset base "
            f"(₹{assets.total_assets / 100_000:.1f}L) support approval"
        )
        if income_issue:
            recommendations.append(
                "Maintain strict budget discipline - consider seasonal income patterns"
            )
    elif (
        not repeat_defaulter
        and score >= 750
        and assets.total_assets > requested_amount * 2
        and remaining > 1500
    ):
        eligible = True
        reasons.append(
            f"✓ Excellent credit score (CIBIL: {score}) and strong assets "
            "compensate for tight cash flow"
        )
    elif income_issue and remaining < 1200:
        eligible = False
        critical_failures += 1
        recommendations.append("Increase income or reduce requested loan amount")

    if (
        critical_failures == 0
        and score >= 800
        and assets.total_assets > requested_amount * 1.5
        and remaining > 1000
    ):
        eligible = True
        reasons.append("✓ Exceptional credit history supports approval")

    if eligible:
        reasons.extend(
            _positive_factors(profile, score, dti, remaining, requested_amount)
        )

    return EligibilityResult(
        applicant=profile.personal_info.name,
        requested_amount=requested_amount,
        eligible=eligible,
        cibil_score=score,
        max_eligible_amount=max_amount,
        monthly_income=monthly_income,
        current_emi=current_emi,
        new_emi=_round_half_up(new_emi),
        total_emi=_round_half_up(total_emi),
        debt_to_income_ratio=round(dti, 1),
        disposable_income=_round_half_up(disposable),
        remaining_income=_round_half_up(remaining),
        collateral_required=collateral_required,
        reasons=reasons,
        recommendations=recommendations,
        profile_summary=ProfileSummary(
            age=profile.personal_info.age,
            occupation=profile.personal_info.occupation,
            total_assets=assets.total_assets,
            total_debt=profile.liabilities.total_debt,
            land_owned=f"{assets.land_ownership.acres:g} acres",
        ),
    )


def _positive_factors(
    profile: FinancialProfile,
    score: int,
    dti: float,
    remaining: float,
    requested_amount: float,
) -> list[str]:
    factors: list[str] = []
    if score >= 750:
        factors.append("✓ Excellent credit score - best interest rates available")
    elif score >= 700:
        factors.append("✓ Very good credit score - favorable terms")
    elif score >= 650:
        factors.append("✓ Good credit score")

    if dti < 30:
        factors.append("✓ Low debt burden - healthy financial position")
    elif dti < 40:
        factors.append("✓ Moderate debt burden - manageable")

    total_assets = profile.assets.total_assets
    if total_assets > requested_amount * 3:
        factors.append("✓ Excellent asset base - strong security")
    elif total_assets > requested_amount * 2:
        factors.append("✓ Strong asset base - good security")

    stability = profile.income.income_stability
    if stability == "Very Stable":
        factors.append("✓ Very stable income - reliable repayment capacity")
    elif stability == "Stable":
        factors.append("✓ Stable income source")

    income = profile.income.total_monthly_income
    if remaining > income * 0.3:
        factors.append("✓ Excellent disposable income - comfortable repayment")
    elif remaining > income * 0.2:
        factors.append("✓ Good disposable income")
    return factors
