import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from print_costing.api.deps import get_parameter_store, get_pricing_engine, get_rate_source
from print_costing.models.costing import (
    BASE_CURRENCY,
    CostCalculationResult,
    Currency,
    JobSpecifications,
    JobType,
)
from print_costing.services.cost_parameters import CostParameterStore
from print_costing.services.exchange_rates import ExchangeRateSource
from print_costing.services.pricing import PricingEngine

logger = logging.getLogger(__name__)
router = APIRouter()


class CostCalculationRequest(BaseModel):
    job_type: JobType
    quantity: int
    specifications: JobSpecifications
    # parsed by Currency.from_code so unknown codes surface as unsupported_currency
    currency: Optional[str] = None


def _calculate(
    req: CostCalculationRequest,
    store: CostParameterStore,
    rate_source: ExchangeRateSource,
    engine: PricingEngine,
) -> CostCalculationResult:
    target = Currency.from_code(req.currency) if req.currency else None
    params = store.current()
    # fetch rates before pricing, only when a conversion will happen
    rates = rate_source.rates() if target is not None and target != BASE_CURRENCY else None
    result = engine.calculate(req.job_type, req.quantity, req.specifications, params, target, rates)
    logger.info(
        "Calculated cost job_type=%s quantity=%s total=%s currency=%s",
        req.job_type.value, req.quantity, result.total_cost, (result.currency or BASE_CURRENCY).code,
    )
    return result


@router.post("/calculate", response_model=CostCalculationResult)
def calculate_cost(
    req: CostCalculationRequest,
    store: CostParameterStore = Depends(get_parameter_store),
    rate_source: ExchangeRateSource = Depends(get_rate_source),
    engine: PricingEngine = Depends(get_pricing_engine),
):
    return _calculate(req, store, rate_source, engine)


@router.post("/preview", response_model=CostCalculationResult)
def preview_cost(
    req: CostCalculationRequest,
    store: CostParameterStore = Depends(get_parameter_store),
    rate_source: ExchangeRateSource = Depends(get_rate_source),
    engine: PricingEngine = Depends(get_pricing_engine),
):
    """Same calculation as /calculate; kept as a separate route for draft jobs."""
    return _calculate(req, store, rate_source, engine)


@router.get("/delivery")
def delivery_estimate(
    job_type: JobType,
    quantity: int,
    engine: PricingEngine = Depends(get_pricing_engine),
):
    days = engine.delivery.estimate(job_type, quantity)
    return {"job_type": job_type.value, "quantity": quantity, "estimated_delivery_days": days}
