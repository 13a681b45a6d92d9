from functools import lru_cache

from print_costing.db.session import get_engine
from print_costing.models.costing import DEFAULT_COST_PARAMETERS
from print_costing.services.cost_parameters import CostParameterStore, SqlCostParameterStore
from print_costing.services.exchange_rates import ExchangeRateSource, build_rate_source_from_env
from print_costing.services.pricing import PricingEngine

# FastAPI dependencies; tests swap them through app.dependency_overrides.


@lru_cache(maxsize=None)
def get_parameter_store() -> CostParameterStore:
    return SqlCostParameterStore(get_engine(), default=DEFAULT_COST_PARAMETERS)


@lru_cache(maxsize=None)
def get_rate_source() -> ExchangeRateSource:
    return build_rate_source_from_env()


@lru_cache(maxsize=None)
def get_pricing_engine() -> PricingEngine:
    return PricingEngine()
