from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from print_costing.errors import InvalidInputError, UnsupportedCurrencyError
from print_costing.utils.money import round_money


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # naive datetimes are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Currency(str, Enum):
    """Currencies a quote can be expressed in. The value is the ISO code."""

    USD = "USD"
    FCFA = "XAF"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        code = value.strip().upper()
        if code == "FCFA":
            return cls.FCFA
        for member in cls:
            if member.value == code:
                return member
        return None

    @classmethod
    def from_code(cls, code) -> "Currency":
        try:
            return cls(code)
        except ValueError:
            raise UnsupportedCurrencyError(str(code)) from None

    @property
    def code(self) -> str:
        return self.value

    @property
    def symbol(self) -> str:
        return _CURRENCY_INFO[self][0]

    @property
    def display_name(self) -> str:
        return _CURRENCY_INFO[self][1]

    @property
    def decimal_places(self) -> int:
        # CFA francs are quoted without minor units
        return 0 if self is Currency.FCFA else 2

    def format_amount(self, amount: Decimal) -> str:
        places = self.decimal_places
        text = f"{round_money(amount, places):,.{places}f}"
        if self is Currency.FCFA:
            return f"{text} {self.symbol}"
        return f"{self.symbol}{text}"

    def describe(self) -> Dict[str, str]:
        return {"code": self.code, "symbol": self.symbol, "name": self.display_name}


_CURRENCY_INFO = {
    Currency.USD: ("$", "US Dollar"),
    Currency.FCFA: ("FCFA", "Central African CFA Franc"),
    Currency.EUR: ("€", "Euro"),
    Currency.GBP: ("£", "British Pound"),
    Currency.CAD: ("C$", "Canadian Dollar"),
}

BASE_CURRENCY = Currency.USD
SUPPORTED_CURRENCIES: Tuple[Currency, ...] = tuple(Currency)


class JobType(str, Enum):
    BOOK = "book"
    FLYER = "flyer"
    BUSINESS_CARD = "business_card"
    BROCHURE = "brochure"
    POSTER = "poster"
    BANNER = "banner"
    STICKER = "sticker"
    CUSTOM = "custom"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class ColorSpecification(BaseModel):
    model_config = ConfigDict(frozen=True)

    front_colors: int = 0
    back_colors: int = 0
    spot_colors: Tuple[str, ...] = ()
    is_full_color: bool = False


class JobSpecifications(BaseModel):
    """What is being printed. Paper type/size are opaque labels to the engine."""

    model_config = ConfigDict(frozen=True)

    paper_type: str
    paper_size: str
    paper_weight: Optional[str] = None
    colors: ColorSpecification = Field(default_factory=ColorSpecification)
    pages: Optional[int] = None
    binding: Optional[str] = None
    lamination: Optional[str] = None
    finishing: Tuple[str, ...] = ()
    special_requirements: Optional[str] = None

    @property
    def sheets_per_copy(self) -> int:
        return self.pages or 1

    @property
    def has_binding(self) -> bool:
        return bool(self.binding and self.binding.strip())

    @property
    def has_lamination(self) -> bool:
        return bool(self.lamination and self.lamination.strip())


class CostParameters(BaseModel):
    """Adjustable cost inputs, in the base currency. Percentages are fractions (0.15 = 15%)."""

    model_config = ConfigDict(frozen=True)

    paper_cost_per_sheet: Decimal = Field(ge=0)
    plate_cost_per_job: Decimal = Field(ge=0)
    labor_cost_per_hour: Decimal = Field(ge=0)
    binding_cost_per_unit: Decimal = Field(ge=0)
    overhead_percentage: Decimal = Field(ge=0)
    profit_margin_percentage: Decimal = Field(ge=0)
    updated_at: Optional[datetime] = None


DEFAULT_COST_PARAMETERS = CostParameters(
    paper_cost_per_sheet=Decimal("0.10"),
    plate_cost_per_job=Decimal("25.00"),
    labor_cost_per_hour=Decimal("15.00"),
    binding_cost_per_unit=Decimal("0.50"),
    overhead_percentage=Decimal("0.15"),
    profit_margin_percentage=Decimal("0.20"),
)


class CostParametersUpdate(BaseModel):
    paper_cost_per_sheet: Optional[Decimal] = None
    plate_cost_per_job: Optional[Decimal] = None
    labor_cost_per_hour: Optional[Decimal] = None
    binding_cost_per_unit: Optional[Decimal] = None
    overhead_percentage: Optional[Decimal] = None
    profit_margin_percentage: Optional[Decimal] = None

    def apply(self, params: CostParameters) -> CostParameters:
        data = params.model_dump()
        data.update(self.model_dump(exclude_none=True))
        data["updated_at"] = _utcnow()
        try:
            return CostParameters(**data)
        except ValidationError as e:
            fields = sorted(str(err["loc"][0]) for err in e.errors())
            raise InvalidInputError(
                "Cost parameters must be non-negative: " + ", ".join(fields),
                issues=[f"negative:{f}" for f in fields],
            ) from e


class CostBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    paper_cost: Decimal
    plate_cost: Decimal
    labor_cost: Decimal
    binding_cost: Decimal
    finishing_cost: Decimal
    overhead: Decimal

    @property
    def subtotal(self) -> Decimal:
        return (
            self.paper_cost
            + self.plate_cost
            + self.labor_cost
            + self.binding_cost
            + self.finishing_cost
        )

    def map_amounts(self, fn: Callable[[Decimal], Decimal]) -> "CostBreakdown":
        return CostBreakdown(**{name: fn(value) for name, value in self})


class ExchangeRateTable(BaseModel):
    """Snapshot of rates: units of each currency per 1 unit of `base`."""

    model_config = ConfigDict(frozen=True)

    base: Currency = BASE_CURRENCY
    rates: Dict[str, Decimal]
    last_updated: datetime = Field(default_factory=_utcnow)

    @field_validator("rates")
    @classmethod
    def rates_must_be_positive(cls, rates: Dict[str, Decimal]) -> Dict[str, Decimal]:
        normalized = {}
        for code, rate in rates.items():
            if rate <= 0:
                raise ValueError(f"rate for {code} must be positive, got {rate}")
            normalized[code.strip().upper()] = rate
        return normalized

    @field_validator("last_updated")
    @classmethod
    def last_updated_in_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    def rate_for(self, currency: Currency) -> Decimal:
        rate = self.rates.get(currency.code)
        if rate is not None:
            return rate
        if currency == self.base:
            return Decimal(1)
        raise UnsupportedCurrencyError(currency.code)

    def is_stale(self, max_age: timedelta, now: Optional[datetime] = None) -> bool:
        now = _as_utc(now) if now is not None else _utcnow()
        return now - self.last_updated > max_age


class CostCalculationResult(BaseModel):
    """Priced job. All monetary fields share `currency` (USD when it is None)."""

    model_config = ConfigDict(frozen=True)

    cost_breakdown: CostBreakdown
    profit_margin: Decimal
    total_cost: Decimal
    unit_cost: Decimal
    estimated_delivery_days: int
    currency: Optional[Currency] = None
    exchange_rate: Optional[Decimal] = None


class ConversionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    original_amount: Decimal
    converted_amount: Decimal
    from_currency: Currency
    to_currency: Currency
    exchange_rate: Decimal
    formatted: str
