import logging
from decimal import Decimal, localcontext

from print_costing.models.costing import (
    ConversionResult,
    CostBreakdown,
    Currency,
    ExchangeRateTable,
)
from print_costing.utils.money import to_decimal

logger = logging.getLogger(__name__)

DECIMAL_PRECISION = 28


class CurrencyConverter:
    """Converts amounts between supported currencies using a rate table snapshot.

    Every conversion goes through the table's base currency, so any pair uses
    the same cross rate no matter which currencies are involved. Unknown
    currencies raise UnsupportedCurrencyError instead of assuming a 1.0 rate.
    """

    def convert(self, amount, from_currency: Currency, to_currency: Currency, rates: ExchangeRateTable) -> Decimal:
        amount = to_decimal(amount)
        from_currency = Currency.from_code(from_currency)
        to_currency = Currency.from_code(to_currency)
        if from_currency == to_currency:
            return amount

        from_rate = rates.rate_for(from_currency)
        to_rate = rates.rate_for(to_currency)
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            base_amount = amount / from_rate
            return base_amount * to_rate

    def exchange_rate(self, from_currency: Currency, to_currency: Currency, rates: ExchangeRateTable) -> Decimal:
        from_currency = Currency.from_code(from_currency)
        to_currency = Currency.from_code(to_currency)
        if from_currency == to_currency:
            return Decimal(1)
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            return rates.rate_for(to_currency) / rates.rate_for(from_currency)

    def convert_breakdown(
        self, breakdown: CostBreakdown, from_currency: Currency, to_currency: Currency, rates: ExchangeRateTable
    ) -> CostBreakdown:
        return breakdown.map_amounts(lambda value: self.convert(value, from_currency, to_currency, rates))

    def convert_amount(
        self, amount, from_currency: Currency, to_currency: Currency, rates: ExchangeRateTable
    ) -> ConversionResult:
        from_currency = Currency.from_code(from_currency)
        to_currency = Currency.from_code(to_currency)
        original = to_decimal(amount)
        converted = self.convert(original, from_currency, to_currency, rates)
        logger.debug("Converted %s %s -> %s %s", original, from_currency.code, converted, to_currency.code)
        return ConversionResult(
            original_amount=original,
            converted_amount=converted,
            from_currency=from_currency,
            to_currency=to_currency,
            exchange_rate=self.exchange_rate(from_currency, to_currency, rates),
            formatted=to_currency.format_amount(converted),
        )


_default_converter = CurrencyConverter()


def convert(amount, from_currency: Currency, to_currency: Currency, rates: ExchangeRateTable) -> Decimal:
    return _default_converter.convert(amount, from_currency, to_currency, rates)
