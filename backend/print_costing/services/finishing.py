from decimal import Decimal

from print_costing.models.costing import JobSpecifications

# Per-unit rates in the base currency. Engine constants, not cost parameters.
LAMINATION_UNIT_RATE = Decimal("0.005")
FINISHING_OPTION_UNIT_RATE = Decimal("0.002")


class FinishingCostCalculator:
    """Lamination plus a flat per-unit charge for every finishing option."""

    def __init__(
        self,
        lamination_unit_rate: Decimal = LAMINATION_UNIT_RATE,
        finishing_option_unit_rate: Decimal = FINISHING_OPTION_UNIT_RATE,
    ):
        self.lamination_unit_rate = lamination_unit_rate
        self.finishing_option_unit_rate = finishing_option_unit_rate

    def compute(self, quantity: int, specs: JobSpecifications) -> Decimal:
        qty = Decimal(quantity)
        cost = Decimal("0")
        if specs.has_lamination:
            cost += qty * self.lamination_unit_rate
        for _option in specs.finishing:
            cost += qty * self.finishing_option_unit_rate
        return cost
