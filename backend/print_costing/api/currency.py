from decimal import Decimal

from fastapi import APIRouter, Depends, Query

from print_costing.api.deps import get_rate_source
from print_costing.models.costing import (
    BASE_CURRENCY,
    SUPPORTED_CURRENCIES,
    ConversionResult,
    Currency,
    ExchangeRateTable,
)
from print_costing.services.currency import CurrencyConverter
from print_costing.services.exchange_rates import ExchangeRateSource

router = APIRouter()


@router.get("/supported")
def supported_currencies():
    return [c.describe() for c in SUPPORTED_CURRENCIES]


@router.get("/rates", response_model=ExchangeRateTable)
def exchange_rates(rate_source: ExchangeRateSource = Depends(get_rate_source)):
    return rate_source.rates()


@router.get("/convert", response_model=ConversionResult)
def convert_currency(
    amount: Decimal,
    from_code: str = Query(..., alias="from"),
    to_code: str = Query(..., alias="to"),
    rate_source: ExchangeRateSource = Depends(get_rate_source),
):
    from_currency = Currency.from_code(from_code)
    to_currency = Currency.from_code(to_code)
    return CurrencyConverter().convert_amount(amount, from_currency, to_currency, rate_source.rates())


@router.get("/settings")
def currency_settings():
    return {
        "default_currency": BASE_CURRENCY.describe(),
        "supported_currencies": [c.describe() for c in SUPPORTED_CURRENCIES],
    }
