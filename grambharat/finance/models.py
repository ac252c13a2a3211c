"""Financial profile and eligibility result models.

Profiles are stored as camelCase JSON documents, so every model accepts
both the camelCase alias and the snake_case field name.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PersonalInfo(_CamelModel):
    name: str
    age: int | None = None
    occupation: str = ""


class CreditHistory(_CamelModel):
    on_time_payments: int = 0
    late_payments: int = 0
    missed_payments: int = 0
    total_defaults: int = 0
    recent_defaults: int = 0
    oldest_account_years: float = 0
    credit_inquiries: int = 0


class Income(_CamelModel):
    total_monthly_income: float
    income_stability: str = ""
    employment_years: float | None = None
    business_years: float | None = None

    @property
    def tenure_years(self) -> float:
        """Employment tenure, falling back to years in business."""
        return self.employment_years or self.business_years or 0


class Liabilities(_CamelModel):
    monthly_emi: float = Field(default=0, alias="monthlyEMI")
    total_debt: float = 0


class ValuedAsset(_CamelModel):
    estimated_value: float = 0


class Land(ValuedAsset):
    acres: float = 0


class Assets(_CamelModel):
    total_assets: float = 0
    land_ownership: Land = Field(default_factory=Land)
    real_estate: ValuedAsset = Field(default_factory=ValuedAsset, alias="property")
    gold: ValuedAsset = Field(default_factory=ValuedAsset)

    @property
    def collateral_value(self) -> float:
        """Pledgeable value: land, property and gold."""
        return (
            self.land_ownership.estimated_value
            + self.real_estate.estimated_value
            + self.gold.estimated_value
        )


class Expenses(_CamelModel):
    total_monthly_expenses: float = 0


class FinancialProfile(_CamelModel):
    """Read-only applicant profile supplied by the profile store."""

    personal_info: PersonalInfo
    credit_history: CreditHistory
    income: Income
    liabilities: Liabilities
    assets: Assets
    expenses: Expenses


class ProfileSummary(_CamelModel):
    age: int | None
    occupation: str
    total_assets: float
    total_debt: float
    land_owned: str


class EligibilityResult(_CamelModel):
    """Outcome of a loan eligibility evaluation."""

    success: bool = True
    applicant: str
    requested_amount: float
    eligible: bool
    cibil_score: int
    max_eligible_amount: int
    monthly_income: float
    current_emi: float = Field(alias="currentEMI")
    new_emi: int = Field(alias="newEMI")
    total_emi: int = Field(alias="totalEMI")
    debt_to_income_ratio: float
    disposable_income: int
    remaining_income: int
    collateral_required: bool
    reasons: list[str]
    recommendations: list[str]
    profile_summary: ProfileSummary
