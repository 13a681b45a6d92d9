from datetime import datetime, timezone
from decimal import Decimal

import pytest
import requests

from print_costing.errors import RateSourceUnavailableError
from print_costing.models.costing import Currency, ExchangeRateTable
from print_costing.services.exchange_rates import (
    SAMPLE_RATES,
    CachedExchangeRateSource,
    ExchangeRateSource,
    HttpExchangeRateSource,
    StaticExchangeRateSource,
)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


class FlakySource(ExchangeRateSource):
    def __init__(self, tables):
        self.tables = list(tables)
        self.calls = 0

    def rates(self):
        self.calls += 1
        item = self.tables.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestStaticSource:
    def test_sample_rates(self):
        table = StaticExchangeRateSource().rates()
        assert table.base == Currency.USD
        assert table.rate_for(Currency.FCFA) == Decimal("620.0")

    def test_snapshots_are_independent(self):
        source = StaticExchangeRateSource()
        first = source.rates()
        first.rates["EUR"] = Decimal("99")
        assert source.rates().rates["EUR"] == SAMPLE_RATES["EUR"]


class TestHttpSource:
    def test_parses_payload(self):
        payload = {
            "base": "USD",
            "time_last_updated": 1704067200,
            "rates": {"USD": 1, "EUR": 0.92, "GBP": 0.79, "XAF": 603.5, "CAD": 1.33, "JPY": 141.2},
        }
        session = FakeSession(FakeResponse(payload))
        table = HttpExchangeRateSource(url="http://rates.test/latest", session=session).rates()

        assert session.calls == [("http://rates.test/latest", 5)]
        assert table.rates["EUR"] == Decimal("0.92")
        assert table.rates["XAF"] == Decimal("603.5")
        assert "JPY" not in table.rates
        assert table.last_updated == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_transport_error(self):
        session = FakeSession(error=requests.ConnectionError("refused"))
        with pytest.raises(RateSourceUnavailableError):
            HttpExchangeRateSource(session=session).rates()

    def test_http_error_status(self):
        session = FakeSession(FakeResponse({}, status_code=502))
        with pytest.raises(RateSourceUnavailableError):
            HttpExchangeRateSource(session=session).rates()

    def test_bad_json(self):
        session = FakeSession(FakeResponse(ValueError("not json")))
        with pytest.raises(RateSourceUnavailableError):
            HttpExchangeRateSource(session=session).rates()

    def test_missing_rates(self):
        session = FakeSession(FakeResponse({"base": "USD"}))
        with pytest.raises(RateSourceUnavailableError):
            HttpExchangeRateSource(session=session).rates()

    def test_non_positive_rate(self):
        session = FakeSession(FakeResponse({"base": "USD", "rates": {"EUR": 0}}))
        with pytest.raises(RateSourceUnavailableError):
            HttpExchangeRateSource(session=session).rates()

    @pytest.mark.parametrize("payload", [[{"EUR": 0.85}], "rates unavailable", 42])
    def test_payload_not_an_object(self, payload):
        session = FakeSession(FakeResponse(payload))
        with pytest.raises(RateSourceUnavailableError):
            HttpExchangeRateSource(session=session).rates()

    def test_unsupported_base(self):
        session = FakeSession(FakeResponse({"base": "JPY", "rates": {"EUR": 0.006}}))
        with pytest.raises(RateSourceUnavailableError):
            HttpExchangeRateSource(session=session).rates()


class TestCachedSource:
    def _table(self, eur):
        return ExchangeRateTable(rates={"USD": Decimal("1"), "EUR": Decimal(eur)})

    def test_serves_cache_within_ttl(self):
        inner = FlakySource([self._table("0.85"), self._table("0.90")])
        clock = FakeClock()
        source = CachedExchangeRateSource(inner, ttl_seconds=60, clock=clock)

        assert source.rates().rates["EUR"] == Decimal("0.85")
        clock.now = 30
        assert source.rates().rates["EUR"] == Decimal("0.85")
        assert inner.calls == 1

        clock.now = 61
        assert source.rates().rates["EUR"] == Decimal("0.90")
        assert inner.calls == 2

    def test_keeps_last_good_table_on_failure(self):
        inner = FlakySource([self._table("0.85"), RateSourceUnavailableError("down")])
        clock = FakeClock()
        source = CachedExchangeRateSource(inner, ttl_seconds=60, clock=clock)

        source.rates()
        clock.now = 120
        assert source.rates().rates["EUR"] == Decimal("0.85")

    def test_uses_fallback_when_nothing_cached(self):
        fallback = self._table("0.80")
        inner = FlakySource([RateSourceUnavailableError("down")])
        source = CachedExchangeRateSource(inner, fallback=fallback)
        assert source.rates().rates["EUR"] == Decimal("0.80")

    def test_raises_without_cache_or_fallback(self):
        inner = FlakySource([RateSourceUnavailableError("down")])
        with pytest.raises(RateSourceUnavailableError):
            CachedExchangeRateSource(inner).rates()

    def test_callers_get_copies(self):
        inner = FlakySource([self._table("0.85")])
        source = CachedExchangeRateSource(inner, ttl_seconds=60, clock=FakeClock())
        source.rates().rates["EUR"] = Decimal("5")
        assert source.rates().rates["EUR"] == Decimal("0.85")

    def test_backs_off_after_failed_refresh(self):
        down = RateSourceUnavailableError("down")
        inner = FlakySource([self._table("0.85"), down, down, self._table("0.90")])
        clock = FakeClock()
        source = CachedExchangeRateSource(inner, ttl_seconds=60, retry_seconds=30, clock=clock)

        source.rates()
        clock.now = 61
        for _ in range(10):
            assert source.rates().rates["EUR"] == Decimal("0.85")
        assert inner.calls == 2

        clock.now = 92
        assert source.rates().rates["EUR"] == Decimal("0.85")
        assert inner.calls == 3

        clock.now = 123
        assert source.rates().rates["EUR"] == Decimal("0.90")
        assert inner.calls == 4

    def test_fallback_is_not_refetched_every_call(self):
        inner = FlakySource([RateSourceUnavailableError("down")])
        clock = FakeClock()
        source = CachedExchangeRateSource(inner, fallback=self._table("0.80"), retry_seconds=30, clock=clock)
        for _ in range(5):
            assert source.rates().rates["EUR"] == Decimal("0.80")
        assert inner.calls == 1
