"""Tests for CIBIL scoring and loan eligibility decisions."""

import pytest

from grambharat.finance.models import FinancialProfile
from grambharat.finance.scoring import (
    calculate_cibil_score,
    evaluate,
    format_inr,
    max_eligible_amount,
    monthly_emi,
)


def _profile(profile_data, **kwargs) -> FinancialProfile:
    return FinancialProfile.model_validate(profile_data(**kwargs))


def _low_score_kwargs() -> dict:
    """Score 420: poor history, heavy EMI, recent default, many inquiries."""
    return {
        "credit": {
            "onTimePayments": 10,
            "latePayments": 10,
            "missedPayments": 10,
            "totalDefaults": 2,
            "recentDefaults": 1,
            "oldestAccountYears": 2,
            "creditInquiries": 4,
        },
        "income": {"totalMonthlyIncome": 10000, "incomeStability": "Regular", "employmentYears": 2},
        "liabilities": {"monthlyEMI": 5500, "totalDebt": 100000},
        "assets": {
            "totalAssets": 100000,
            "landOwnership": {"acres": 0.5, "estimatedValue": 60000},
            "property": {"estimatedValue": 30000},
            "gold": {"estimatedValue": 10000},
        },
        "expenses": 3000,
    }


# -- Score -------------------------------------------------------------------


class TestCibilScore:
    def test_reference_profile_scores_780(self, profile_data):
        assert calculate_cibil_score(_profile(profile_data)) == 780

    def test_weak_profile_scores_420(self, profile_data):
        assert calculate_cibil_score(_profile(profile_data, **_low_score_kwargs())) == 420

    def test_perfect_profile_hits_ceiling(self, profile_data):
        profile = _profile(
            profile_data,
            credit={"oldestAccountYears": 15, "latePayments": 0, "creditInquiries": 0},
            income={"incomeStability": "Very Stable", "employmentYears": 12},
            liabilities={"monthlyEMI": 0, "totalDebt": 0},
        )
        assert calculate_cibil_score(profile) == 900

    def test_no_payments_and_no_income(self, profile_data):
        profile = _profile(
            profile_data,
            credit={"onTimePayments": 0, "latePayments": 0, "missedPayments": 0},
            income={"totalMonthlyIncome": 0},
        )
        # 300 + 0 + 0 (ratio treated as 1) + 70 + 50 + 50
        assert calculate_cibil_score(profile) == 470

    def test_business_years_count_as_tenure(self, profile_data):
        base = _profile(profile_data, income={"employmentYears": None, "businessYears": 12})
        # Stable (50) + 10 bonus, capped at 60
        assert calculate_cibil_score(base) == 790

    def test_inquiry_penalties(self, profile_data):
        four = _profile(profile_data, credit={"creditInquiries": 4})
        six = _profile(profile_data, credit={"creditInquiries": 6})
        assert calculate_cibil_score(four) == 770
        assert calculate_cibil_score(six) == 760

    @pytest.mark.parametrize(
        ("credit", "liabilities"),
        [
            ({"onTimePayments": 0, "missedPayments": 40, "totalDefaults": 9}, {"monthlyEMI": 90000}),
            ({"recentDefaults": 5, "creditInquiries": 20}, {"totalDebt": 10**9}),
            ({"oldestAccountYears": 40}, {"monthlyEMI": 0, "totalDebt": 0}),
        ],
    )
    def test_score_stays_in_range(self, profile_data, credit, liabilities):
        score = calculate_cibil_score(_profile(profile_data, credit=credit, liabilities=liabilities))
        assert 300 <= score <= 900

    def test_monotonic_in_on_time_ratio(self, profile_data):
        scores = [
            calculate_cibil_score(
                _profile(profile_data, credit={"onTimePayments": n, "latePayments": 10})
            )
            for n in range(0, 60, 3)
        ]
        assert scores == sorted(scores)


# -- Helpers -----------------------------------------------------------------


class TestHelpers:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            (0, "0"),
            (999, "999"),
            (1000, "1,000"),
            (150000, "1,50,000"),
            (12345678, "1,23,45,678"),
            (1062.4, "1,062"),
            (-2500, "-2,500"),
        ],
    )
    def test_format_inr(self, amount, expected):
        assert format_inr(amount) == expected

    def test_monthly_emi(self):
        assert monthly_emi(100000) == pytest.approx(2124.7, abs=0.5)

    def test_max_amount_is_lesser_of_tier_and_affordability(self):
        # tier 25 * 20000 = 500000; affordability 5000*60/1.25 = 240000
        assert max_eligible_amount(780, 20000, 10000) == 288000
        # tier 3 * 20000 = 60000 is lower
        assert max_eligible_amount(420, 20000, 10000) == 72000


# -- Eligibility -------------------------------------------------------------


class TestEvaluate:
    def test_strong_applicant_is_eligible(self, profile_data):
        result = evaluate(_profile(profile_data), 50000)

        assert result.eligible is True
        assert result.cibil_score == 780
        assert result.max_eligible_amount == 288000
        assert result.new_emi == 1062
        assert result.total_emi == 3062
        assert result.disposable_income == 10000
        assert result.remaining_income == 8938
        assert result.debt_to_income_ratio == pytest.approx(15.3)
        assert result.collateral_required is False
        assert "✓ Excellent credit score - best interest rates available" in result.reasons
        assert any(r.startswith("✓ Strong credit (CIBIL: 780)") for r in result.reasons)

    def test_low_score_is_rejected(self, profile_data):
        result = evaluate(_profile(profile_data, **_low_score_kwargs()), 50000)

        assert result.eligible is False
        assert result.cibil_score == 420
        assert "CIBIL score (420) is below minimum requirement of 500" in result.reasons
        assert "Improve payment history by clearing existing dues on time" in result.recommendations
        assert "Provide a guarantor to strengthen application" in result.recommendations
        assert not any(r.startswith("✓") for r in result.reasons)

    def test_multiple_recent_defaults_never_approved(self, profile_data):
        # Score 740 with huge assets would otherwise trigger the asset override.
        profile = _profile(
            profile_data,
            credit={
                "onTimePayments": 60,
                "latePayments": 0,
                "recentDefaults": 2,
                "oldestAccountYears": 10,
                "creditInquiries": 0,
            },
            income={"totalMonthlyIncome": 50000, "incomeStability": "Very Stable"},
            liabilities={"monthlyEMI": 0, "totalDebt": 0},
            assets={"totalAssets": 5000000},
            expenses=10000,
        )
        result = evaluate(profile, 100000)

        assert result.cibil_score == 740
        assert result.eligible is False
        assert "Multiple recent loan defaults detected (2)" in result.reasons
        assert not any(r.startswith("✓") for r in result.reasons)

    def test_request_far_above_max_is_rejected(self, profile_data):
        result = evaluate(_profile(profile_data, assets={"totalAssets": 100000}), 400000)

        assert result.eligible is False
        assert any("significantly exceeds" in r for r in result.reasons)
        assert "Consider applying for ₹2,88,000 or less" in result.recommendations

    def test_large_loan_with_low_score_records_collateral_shortfall(self, profile_data):
        result = evaluate(_profile(profile_data, **_low_score_kwargs()), 400000)

        assert result.collateral_required is True
        assert (
            "Limited collateral for loan amount (Required: ₹4,80,000, Available: ₹1,00,000)"
            in result.reasons
        )

    def test_asset_override_rescues_tight_cash_flow(self, profile_data):
        # Remaining income after EMI is ~1,375: below the 1,500 floor but above 1,200.
        profile = _profile(profile_data, assets={"totalAssets": 2000000}, expenses=16200)
        result = evaluate(profile, 20000)

        assert result.remaining_income == 1375
        assert result.eligible is True
        assert any(r.startswith("Limited disposable income") for r in result.reasons)
        assert (
            "Maintain strict budget discipline - consider seasonal income patterns"
            in result.recommendations
        )

    def test_first_override_tier_wins_when_both_apply(self, profile_data):
        result = evaluate(_profile(profile_data), 20000)

        assert any(r.startswith("✓ Strong credit (CIBIL: 780)") for r in result.reasons)
        assert not any(r.startswith("✓ Excellent credit score") for r in result.reasons)

    def test_second_override_tier_when_assets_below_first_tier(self, profile_data):
        # 2.4x the request: short of 2.5x, above 2x. Debt keeps asset coverage at 12x.
        profile = _profile(
            profile_data,
            assets={"totalAssets": 240000},
            liabilities={"totalDebt": 20000},
        )
        result = evaluate(profile, 100000)

        assert result.cibil_score == 780
        assert result.eligible is True
        assert (
            "✓ Excellent credit score (CIBIL: 780) and strong assets compensate for tight cash flow"
            in result.reasons
        )
        assert not any(r.startswith("✓ Strong credit") for r in result.reasons)
        assert "✓ Exceptional credit history supports approval" not in result.reasons

    def test_exceptional_credit_tier(self, profile_data):
        # 1.8x the request: below both asset tiers, above 1.5x.
        profile = _profile(
            profile_data,
            credit={"oldestAccountYears": 15, "latePayments": 0, "creditInquiries": 0},
            income={"incomeStability": "Very Stable", "employmentYears": 12},
            liabilities={"monthlyEMI": 0, "totalDebt": 0},
            assets={"totalAssets": 180000},
        )
        result = evaluate(profile, 100000)

        assert result.cibil_score == 900
        assert result.eligible is True
        assert "✓ Exceptional credit history supports approval" in result.reasons
        assert not any(r.startswith("✓ Strong credit") for r in result.reasons)
        assert not any(r.startswith("✓ Excellent credit score") for r in result.reasons)

    def test_exceptional_credit_tier_skipped_after_critical_failure(self, profile_data):
        # New EMI ~2,550 on 4,000 income: debt ratio ~63.7% with ~1,450 left over.
        profile = _profile(
            profile_data,
            credit={"oldestAccountYears": 15, "latePayments": 0, "creditInquiries": 0},
            income={
                "totalMonthlyIncome": 4000,
                "incomeStability": "Very Stable",
                "employmentYears": 12,
            },
            liabilities={"monthlyEMI": 0, "totalDebt": 0},
            assets={"totalAssets": 200000},
            expenses=0,
        )
        result = evaluate(profile, 120000)

        assert result.cibil_score == 900
        assert result.remaining_income > 1000
        assert result.eligible is False
        assert any("exceeds maximum limit of 60%" in r for r in result.reasons)
        assert "✓ Exceptional credit history supports approval" not in result.reasons

    def test_insufficient_residual_income_is_rejected(self, profile_data):
        profile = _profile(profile_data, assets={"totalAssets": 60000}, expenses=17500)
        result = evaluate(profile, 20000)

        assert result.eligible is False
        assert "Increase income or reduce requested loan amount" in result.recommendations

    def test_zero_income_reports_full_debt_ratio(self, profile_data):
        result = evaluate(_profile(profile_data, income={"totalMonthlyIncome": 0}), 10000)

        assert result.debt_to_income_ratio == 100.0
        assert result.eligible is False

    def test_result_serializes_with_camel_case_keys(self, profile_data):
        data = evaluate(_profile(profile_data), 50000).model_dump(by_alias=True)

        assert data["success"] is True
        assert data["applicant"] == "Test Farmer"
        assert {"cibilScore", "maxEligibleAmount", "currentEMI", "newEMI", "totalEMI"} <= data.keys()
        assert data["profileSummary"]["landOwned"] == "2 acres"
