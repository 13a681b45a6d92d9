import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

import requests
from pydantic import ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from print_costing.errors import RateSourceUnavailableError, UnsupportedCurrencyError
from print_costing.models.costing import BASE_CURRENCY, SUPPORTED_CURRENCIES, Currency, ExchangeRateTable
from print_costing.utils.money import to_decimal

logger = logging.getLogger(__name__)

DEFAULT_RATE_URL = os.getenv("EXCHANGE_RATE_URL", "https://api.exchangerate-api.com/v4/latest/USD")
DEFAULT_TTL_SECONDS = int(os.getenv("EXCHANGE_RATE_TTL_SECONDS", "3600"))
DEFAULT_RETRY_SECONDS = int(os.getenv("EXCHANGE_RATE_RETRY_SECONDS", "60"))

# Approximate USD-based rates used when no live source is configured.
SAMPLE_RATES: Dict[str, Decimal] = {
    "USD": Decimal("1.0"),
    "XAF": Decimal("620.0"),
    "EUR": Decimal("0.85"),
    "GBP": Decimal("0.73"),
    "CAD": Decimal("1.35"),
}


class ExchangeRateSource(ABC):
    """Supplies rate table snapshots. Implementations never hand out shared mutable state."""

    @abstractmethod
    def rates(self) -> ExchangeRateTable:
        """Return the current table or raise RateSourceUnavailableError."""
        raise NotImplementedError


class StaticExchangeRateSource(ExchangeRateSource):
    def __init__(
        self,
        rates: Optional[Mapping[str, Decimal]] = None,
        base: Currency = BASE_CURRENCY,
        last_updated: Optional[datetime] = None,
    ):
        self._table = ExchangeRateTable(
            base=base,
            rates=dict(rates if rates is not None else SAMPLE_RATES),
            last_updated=last_updated or datetime.now(timezone.utc),
        )

    def rates(self) -> ExchangeRateTable:
        # a fresh copy per call so callers can't mutate the shared table
        return self._table.model_copy(update={"rates": dict(self._table.rates)})


class HttpExchangeRateSource(ExchangeRateSource):
    """Fetches rates from an exchangerate-api.com style endpoint.

    Expected payload: {"base": "USD", "rates": {"EUR": 0.85, ...}, "time_last_updated": 1700000000}.
    Only supported currencies are kept; every value goes through Decimal(str(value)).
    """

    def __init__(self, url: str = DEFAULT_RATE_URL, timeout_seconds: int = 5, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout_seconds = timeout_seconds
        if session is None:
            session = requests.Session()
            retry = Retry(
                total=2,
                connect=2,
                read=2,
                backoff_factor=0.5,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["GET"],
            )
            adapter = HTTPAdapter(max_retries=retry)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self.session = session
        logger.debug("HttpExchangeRateSource initialized with url=%s timeout=%s", self.url, self.timeout_seconds)

    def rates(self) -> ExchangeRateTable:
        try:
            resp = self.session.get(self.url, timeout=self.timeout_seconds)
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Failed to fetch exchange rates url=%s: %s", self.url, e)
            raise RateSourceUnavailableError(f"Exchange rate request failed: {e}") from e

        return self._parse(payload)

    def _parse(self, payload: Any) -> ExchangeRateTable:
        if not isinstance(payload, dict):
            raise RateSourceUnavailableError(f"Exchange rate payload is not an object: {type(payload).__name__}")
        raw_rates = payload.get("rates")
        if not isinstance(raw_rates, dict):
            raise RateSourceUnavailableError("Exchange rate payload has no rates")

        try:
            base = Currency.from_code(payload.get("base", BASE_CURRENCY.code))
        except UnsupportedCurrencyError as e:
            raise RateSourceUnavailableError(f"Exchange rate payload has unsupported base: {payload.get('base')}") from e

        rates: Dict[str, Decimal] = {}
        for currency in SUPPORTED_CURRENCIES:
            value = raw_rates.get(currency.code)
            if value is None:
                continue
            try:
                rates[currency.code] = to_decimal(value)
            except ValueError as e:
                raise RateSourceUnavailableError(f"Invalid {currency.code} rate from provider: {value!r}") from e

        last_updated = datetime.now(timezone.utc)
        stamp = payload.get("time_last_updated")
        if isinstance(stamp, (int, float)):
            last_updated = datetime.fromtimestamp(stamp, tz=timezone.utc)

        try:
            table = ExchangeRateTable(base=base, rates=rates, last_updated=last_updated)
        except ValidationError as e:
            raise RateSourceUnavailableError(f"Invalid exchange rates from provider: {e}") from e
        logger.info("Fetched %s exchange rates base=%s", len(rates), base.code)
        return table


class CachedExchangeRateSource(ExchangeRateSource):
    """Caches another source for `ttl_seconds` and serves the last good table when it fails.

    After a failed refresh the provider is not asked again for `retry_seconds`;
    the last good (or fallback) table is served in the meantime.
    The cached table is replaced, never mutated, under a lock; readers get their
    own copy, so a concurrent refresh can't produce a half-updated table.
    """

    def __init__(
        self,
        inner: ExchangeRateSource,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        fallback: Optional[ExchangeRateTable] = None,
        clock=time.monotonic,
        retry_seconds: int = DEFAULT_RETRY_SECONDS,
    ):
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self.retry_seconds = retry_seconds
        self.fallback = fallback
        self._clock = clock
        self._lock = threading.Lock()
        self._table: Optional[ExchangeRateTable] = None
        self._expires_at: Optional[float] = None

    def _is_fresh(self) -> bool:
        return self._expires_at is not None and self._clock() < self._expires_at

    def rates(self) -> ExchangeRateTable:
        with self._lock:
            if self._table is None or not self._is_fresh():
                try:
                    self._table = self.inner.rates()
                    self._expires_at = self._clock() + self.ttl_seconds
                except RateSourceUnavailableError as e:
                    if self._table is not None:
                        logger.warning("Rate source unavailable, using cached rates from %s: %s", self._table.last_updated, e)
                    elif self.fallback is not None:
                        logger.warning("Rate source unavailable and nothing cached, using fallback rates: %s", e)
                        self._table = self.fallback
                    else:
                        raise
                    self._expires_at = self._clock() + self.retry_seconds
            table = self._table
        return table.model_copy(update={"rates": dict(table.rates)})


def build_rate_source_from_env() -> ExchangeRateSource:
    provider_name = os.getenv("EXCHANGE_RATE_PROVIDER", "static").strip().lower()
    if provider_name == "static":
        return StaticExchangeRateSource()
    if provider_name == "http":
        return CachedExchangeRateSource(
            HttpExchangeRateSource(),
            fallback=StaticExchangeRateSource().rates(),
        )
    raise RuntimeError("Unsupported EXCHANGE_RATE_PROVIDER. Use 'static' or 'http'.")
