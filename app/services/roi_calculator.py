"""
AI pilot ROI calculator.

Values additional developer capacity (team size x velocity lift) at salary
cost and sets it against license, implementation and training spend.

    monthly_savings   = team_size * lift% * avg_salary / 12
    total_annual_cost = license/user/month * team_size * 12 + implementation + training
    payback_months    = ceil(upfront / (monthly_savings - monthly_license)), 999 if never
    three_year_npv    = -upfront + sum(net_annual_benefit / 1.1^year, year=1..3)
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace

from app.core.exceptions import ValidationError

DISCOUNT_RATE = 0.10
MONTHS_PER_YEAR = 12
NPV_YEARS = 3
NEVER_PAID_BACK = 999
SENSITIVITY_LIFTS: tuple[int, ...] = (10, 20, 30, 40, 50, 60, 70, 80)


@dataclass(frozen=True)
class RoiInputs:
    team_size: float
    avg_salary: float
    current_velocity: float
    projected_velocity_lift: float
    license_cost_per_user: float
    implementation_cost: float
    training_cost: float

    @classmethod
    def from_dict(cls, data: dict) -> "RoiInputs":
        if not isinstance(data, dict):
            raise ValidationError("ROI inputs must be an object")
        errors: dict[str, str] = {}
        values: dict[str, float] = {}
        for name in cls.__dataclass_fields__:
            value = data.get(name, 0 if name == "current_velocity" else None)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                errors[name] = "must be a number"
            elif not math.isfinite(value):
                errors[name] = "must be a finite number"
            elif value < 0:
                errors[name] = "must not be negative"
            else:
                values[name] = value
        if "team_size" in values and values["team_size"] <= 0:
            errors["team_size"] = "must be greater than 0"
        if errors:
            raise ValidationError("Invalid ROI inputs", details=errors)
        return cls(**values)


@dataclass(frozen=True)
class RoiResults:
    monthly_savings: int
    annual_savings: int
    total_annual_cost: int
    net_annual_benefit: int
    payback_months: int
    three_year_npv: int
    roi_percentage: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SensitivityRow:
    velocity_lift: int
    monthly_savings: int
    annual_savings: int
    payback_months: int
    three_year_npv: int

    def to_dict(self) -> dict:
        return asdict(self)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def calculate_npv(annual_benefit: float, upfront_cost: float, years: int, rate: float) -> float:
    npv = -upfront_cost
    for year in range(1, years + 1):
        npv += annual_benefit / (1 + rate) ** year
    return npv


def calculate_roi(inputs: RoiInputs) -> RoiResults:
    additional_capacity = inputs.team_size * (inputs.projected_velocity_lift / 100)
    monthly_salary = inputs.avg_salary / MONTHS_PER_YEAR

    monthly_savings = additional_capacity * monthly_salary
    annual_savings = monthly_savings * MONTHS_PER_YEAR

    annual_license = inputs.license_cost_per_user * inputs.team_size * MONTHS_PER_YEAR
    upfront = inputs.implementation_cost + inputs.training_cost
    total_annual_cost = annual_license + upfront
    net_annual_benefit = annual_savings - total_annual_cost

    monthly_net = monthly_savings - annual_license / MONTHS_PER_YEAR
    payback_months = math.ceil(upfront / monthly_net) if monthly_net > 0 else NEVER_PAID_BACK

    npv = calculate_npv(net_annual_benefit, upfront, NPV_YEARS, DISCOUNT_RATE)
    roi_pct = net_annual_benefit / total_annual_cost * 100 if total_annual_cost > 0 else 0.0

    return RoiResults(
        monthly_savings=_round_half_up(monthly_savings),
        annual_savings=_round_half_up(annual_savings),
        total_annual_cost=_round_half_up(total_annual_cost),
        net_annual_benefit=_round_half_up(net_annual_benefit),
        payback_months=payback_months,
        three_year_npv=_round_half_up(npv),
        roi_percentage=_round_half_up(roi_pct * 10) / 10,
    )


def calculate_sensitivity(inputs: RoiInputs) -> list[SensitivityRow]:
    """Re-run the calculation across the standard velocity-lift range."""
    rows = []
    for lift in SENSITIVITY_LIFTS:
        results = calculate_roi(replace(inputs, projected_velocity_lift=lift))
        rows.append(SensitivityRow(
            velocity_lift=lift,
            monthly_savings=results.monthly_savings,
            annual_savings=results.annual_savings,
            payback_months=results.payback_months,
            three_year_npv=results.three_year_npv,
        ))
    return rows
