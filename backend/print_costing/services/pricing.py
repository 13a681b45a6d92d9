import logging
from decimal import Decimal, localcontext
from typing import Optional

from print_costing.errors import RateSourceUnavailableError
from print_costing.models.costing import (
    BASE_CURRENCY,
    CostBreakdown,
    CostCalculationResult,
    CostParameters,
    Currency,
    ExchangeRateTable,
    JobSpecifications,
    JobType,
)
from print_costing.services.currency import DECIMAL_PRECISION, CurrencyConverter
from print_costing.services.delivery import DeliveryEstimator
from print_costing.services.exchange_rates import ExchangeRateSource
from print_costing.services.finishing import FinishingCostCalculator
from print_costing.services.validation import SpecificationValidator

logger = logging.getLogger(__name__)

# Press throughput used to turn sheets into labor hours.
SHEETS_PER_LABOR_HOUR = Decimal("2000")
MIN_LABOR_HOURS = Decimal("0.5")


class PricingEngine:
    """Rule-based cost engine for print jobs.

    Costs are computed in the base currency (USD) with Decimal arithmetic and no
    intermediate rounding:

        sheets        = quantity * (pages or 1)
        paper         = paper_cost_per_sheet * sheets
        plate         = plate_cost_per_job                 (flat, independent of colors)
        labor         = labor_cost_per_hour * max(sheets / SHEETS_PER_LABOR_HOUR, MIN_LABOR_HOURS)
        binding       = binding_cost_per_unit * quantity   (only when a binding is given)
        finishing     = FinishingCostCalculator.compute(quantity, specs)
        overhead      = subtotal * overhead_percentage
        profit_margin = (subtotal + overhead) * profit_margin_percentage
        total         = subtotal + overhead + profit_margin
        unit          = total / quantity

    When a target currency other than USD is requested, every monetary field is
    converted against one rate table snapshot.
    """

    def __init__(
        self,
        finishing: Optional[FinishingCostCalculator] = None,
        delivery: Optional[DeliveryEstimator] = None,
        converter: Optional[CurrencyConverter] = None,
        rate_source: Optional[ExchangeRateSource] = None,
        validator: Optional[SpecificationValidator] = None,
    ):
        self.finishing = finishing or FinishingCostCalculator()
        self.delivery = delivery or DeliveryEstimator()
        self.converter = converter or CurrencyConverter()
        self.rate_source = rate_source
        self.validator = validator or SpecificationValidator()

    def _labor_hours(self, sheets: Decimal) -> Decimal:
        return max(sheets / SHEETS_PER_LABOR_HOUR, MIN_LABOR_HOURS)

    def breakdown(self, quantity: int, specs: JobSpecifications, params: CostParameters) -> CostBreakdown:
        self.validator.ensure_valid(quantity, specs)
        qty = Decimal(quantity)
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            sheets = qty * specs.sheets_per_copy

            paper_cost = params.paper_cost_per_sheet * sheets
            plate_cost = params.plate_cost_per_job
            labor_cost = params.labor_cost_per_hour * self._labor_hours(sheets)
            binding_cost = params.binding_cost_per_unit * qty if specs.has_binding else Decimal("0")
            finishing_cost = self.finishing.compute(quantity, specs)

            subtotal = paper_cost + plate_cost + labor_cost + binding_cost + finishing_cost
            overhead = subtotal * params.overhead_percentage

        return CostBreakdown(
            paper_cost=paper_cost,
            plate_cost=plate_cost,
            labor_cost=labor_cost,
            binding_cost=binding_cost,
            finishing_cost=finishing_cost,
            overhead=overhead,
        )

    def calculate(
        self,
        job_type: JobType,
        quantity: int,
        specs: JobSpecifications,
        params: CostParameters,
        target_currency: Optional[Currency] = None,
        rates: Optional[ExchangeRateTable] = None,
    ) -> CostCalculationResult:
        cost_breakdown = self.breakdown(quantity, specs, params)
        delivery_days = self.delivery.estimate(job_type, quantity)

        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            total_before_margin = cost_breakdown.subtotal + cost_breakdown.overhead
            profit_margin = total_before_margin * params.profit_margin_percentage
            total_cost = total_before_margin + profit_margin
            unit_cost = total_cost / Decimal(quantity)

        logger.debug(
            "Priced job_type=%s quantity=%s subtotal=%s overhead=%s margin=%s total=%s",
            job_type, quantity, cost_breakdown.subtotal, cost_breakdown.overhead, profit_margin, total_cost,
        )

        if target_currency is None:
            return CostCalculationResult(
                cost_breakdown=cost_breakdown,
                profit_margin=profit_margin,
                total_cost=total_cost,
                unit_cost=unit_cost,
                estimated_delivery_days=delivery_days,
            )

        target_currency = Currency.from_code(target_currency)
        if target_currency == BASE_CURRENCY:
            return CostCalculationResult(
                cost_breakdown=cost_breakdown,
                profit_margin=profit_margin,
                total_cost=total_cost,
                unit_cost=unit_cost,
                estimated_delivery_days=delivery_days,
                currency=BASE_CURRENCY,
                exchange_rate=Decimal(1),
            )

        # one snapshot for every field of this result
        table = rates if rates is not None else self._fetch_rates()

        def to_target(amount: Decimal) -> Decimal:
            return self.converter.convert(amount, BASE_CURRENCY, target_currency, table)

        result = CostCalculationResult(
            cost_breakdown=self.converter.convert_breakdown(cost_breakdown, BASE_CURRENCY, target_currency, table),
            profit_margin=to_target(profit_margin),
            total_cost=to_target(total_cost),
            unit_cost=to_target(unit_cost),
            estimated_delivery_days=delivery_days,
            currency=target_currency,
            exchange_rate=self.converter.exchange_rate(BASE_CURRENCY, target_currency, table),
        )
        logger.debug("Converted job total %s USD -> %s %s", total_cost, result.total_cost, target_currency.code)
        return result

    def _fetch_rates(self) -> ExchangeRateTable:
        if self.rate_source is None:
            raise RateSourceUnavailableError("No exchange rates available for currency conversion")
        return self.rate_source.rates()


_default_engine = PricingEngine()


def calculate(
    job_type: JobType,
    quantity: int,
    specs: JobSpecifications,
    params: CostParameters,
    target_currency: Optional[Currency] = None,
    rates: Optional[ExchangeRateTable] = None,
) -> CostCalculationResult:
    return _default_engine.calculate(job_type, quantity, specs, params, target_currency, rates)
