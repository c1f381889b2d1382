"""
Payout Calculator (Domain Logic).

Pure transformation from a driver's weekly gross inputs to the net payout
("repasse"). No I/O; identical inputs always yield identical outputs.

Flow (fixed order, rounded to the cent at every step):
1. gross = uber + bolt
2. vat = gross * VAT rate
3. gross_less_vat = gross - vat
4. admin_fee = gross_less_vat * admin fee rate
5. tolls / rent only applied to renters
6. total_expenses = fuel + tolls + rent + financing_total
7. net_payout = gross_less_vat - admin_fee - total_expenses (may be negative)
"""

from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Dict, Optional

from conduz.app.core.config import settings
from conduz.app.core.exceptions import ValidationError
from conduz.app.domain.payroll.money import Amount, to_cents, from_cents, percent_of
from conduz.app.models.payroll_enums import DriverType


@dataclass(frozen=True)
class PayoutInputs:
    """Weekly inputs for one driver, in integer cents."""
    driver_type: DriverType
    uber_cents: int = 0
    bolt_cents: int = 0
    fuel_cents: int = 0
    tolls_cents: int = 0
    rent_cents: int = 0
    financing_total_cents: int = 0

    @classmethod
    def from_amounts(
        cls,
        driver_type: DriverType,
        uber_total: Amount = 0,
        bolt_total: Amount = 0,
        fuel: Amount = 0,
        tolls: Amount = 0,
        rent: Amount = 0,
        financing_total: Amount = 0,
    ) -> "PayoutInputs":
        return cls(
            driver_type=DriverType(driver_type),
            uber_cents=to_cents(uber_total, "uber_total"),
            bolt_cents=to_cents(bolt_total, "bolt_total"),
            fuel_cents=to_cents(fuel, "fuel"),
            tolls_cents=to_cents(tolls, "tolls"),
            rent_cents=to_cents(rent, "rent"),
            financing_total_cents=to_cents(financing_total, "financing_total"),
        )


@dataclass(frozen=True)
class PayoutBreakdown:
    """Result of the payout computation, in integer cents."""
    uber_cents: int
    bolt_cents: int
    gross_cents: int
    vat_cents: int
    gross_less_vat_cents: int
    admin_fee_cents: int
    fuel_cents: int
    tolls_applied_cents: int
    rent_applied_cents: int
    financing_total_cents: int
    total_expenses_cents: int
    net_payout_cents: int

    def as_amounts(self) -> Dict[str, Decimal]:
        """Currency-unit view keyed by the weekly record column names."""
        return {
            "uber_total": from_cents(self.uber_cents),
            "bolt_total": from_cents(self.bolt_cents),
            "gross_total": from_cents(self.gross_cents),
            "vat_amount": from_cents(self.vat_cents),
            "gross_less_vat": from_cents(self.gross_less_vat_cents),
            "admin_fee": from_cents(self.admin_fee_cents),
            "fuel": from_cents(self.fuel_cents),
            "financing_total": from_cents(self.financing_total_cents),
            "total_expenses": from_cents(self.total_expenses_cents),
            "net_payout": from_cents(self.net_payout_cents),
        }


def calculate_payout(
    inputs: PayoutInputs,
    vat_rate: Optional[Decimal] = None,
    admin_fee_rate: Optional[Decimal] = None,
) -> PayoutBreakdown:
    """
    Compute the weekly payout breakdown.

    Args:
        inputs: Validated weekly inputs
        vat_rate: Override of settings.vat_rate
        admin_fee_rate: Override of settings.admin_fee_rate

    Returns:
        PayoutBreakdown (net payout is never clamped)

    Raises:
        ValidationError: If any input amount is negative
    """
    for name, value in asdict(inputs).items():
        if name.endswith("_cents") and value < 0:
            raise ValidationError(f"{name[:-6]} must not be negative", details={"field": name[:-6]})

    vat_rate = settings.vat_rate if vat_rate is None else vat_rate
    admin_fee_rate = settings.admin_fee_rate if admin_fee_rate is None else admin_fee_rate

    gross = inputs.uber_cents + inputs.bolt_cents
    vat = percent_of(gross, vat_rate)
    gross_less_vat = gross - vat
    admin_fee = percent_of(gross_less_vat, admin_fee_rate)

    is_renter = inputs.driver_type == DriverType.RENTER
    tolls_applied = inputs.tolls_cents if is_renter else 0
    rent_applied = inputs.rent_cents if is_renter else 0

    total_expenses = inputs.fuel_cents + tolls_applied + rent_applied + inputs.financing_total_cents
    net_payout = gross_less_vat - admin_fee - total_expenses

    return PayoutBreakdown(
        uber_cents=inputs.uber_cents,
        bolt_cents=inputs.bolt_cents,
        gross_cents=gross,
        vat_cents=vat,
        gross_less_vat_cents=gross_less_vat,
        admin_fee_cents=admin_fee,
        fuel_cents=inputs.fuel_cents,
        tolls_applied_cents=tolls_applied,
        rent_applied_cents=rent_applied,
        financing_total_cents=inputs.financing_total_cents,
        total_expenses_cents=total_expenses,
        net_payout_cents=net_payout,
    )
