"""Loan eligibility tool backed by the financial profile store."""

from pydantic import Field

from grambharat.tools.base import ToolContext, ToolParams, ToolResult
from grambharat.tools.registry import ToolKind, registry


class LoanEligibilityParams(ToolParams):
    person_name: str = Field(
        min_length=1,
        description="The full name of the person (e.g., 'Ram Vilas', 'Phool Kumari')",
    )
    loan_amount: float = Field(
        gt=0,
        description="The requested loan amount in Indian Rupees (e.g., 500000 for 5 lakhs)",
    )


@registry.tool(
    ToolKind.CHECK_LOAN_ELIGIBILITY,
    description=(
        "Check if a person is eligible for a loan based on their financial profile. "
        "Use this when someone asks about loan eligibility, loan approval, or if "
        "someone can get a loan. Available profiles: {available_profiles}"
    ),
    params_model=LoanEligibilityParams,
    start_status="Checking loan eligibility for {person_name}...",
    done_status="Calculation complete. Generating response...",
    fallback_reply="I've checked the loan eligibility.",
)
async def check_loan_eligibility(
    person_name: str, loan_amount: float, tool_context: ToolContext
) -> ToolResult:
    # Lookup failures are part of the payload so the model can explain them.
    return ToolResult(
        data=tool_context.profile_store.check_loan_eligibility(person_name, loan_amount)
    )
