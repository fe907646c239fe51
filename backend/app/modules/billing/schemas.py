from pydantic import BaseModel


class BillingTotals(BaseModel):
    entries: int
    completion_calls: int
    errors: int
    validation_failures: int
    commits: int
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    estimated_cost_usd: float


class BillingDailyPoint(BaseModel):
    date: str
    completion_calls: int
    errors: int
    total_tokens: int
    estimated_cost_usd: float


class BillingModelBreakdown(BaseModel):
    provider: str
    model: str
    completion_calls: int
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    estimated_cost_usd: float
    pricing_source: str


class BillingSummary(BaseModel):
    currency: str
    range_days: int
    generated_at: float
    totals: BillingTotals
    by_model: list[BillingModelBreakdown]
    daily: list[BillingDailyPoint]
