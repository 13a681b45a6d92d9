from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlmodel import create_engine
from sqlalchemy.pool import StaticPool

from print_costing.models.costing import (
    ColorSpecification,
    CostParameters,
    ExchangeRateTable,
    JobSpecifications,
)
from print_costing.services.cost_parameters import SqlCostParameterStore


@pytest.fixture
def example_params():
    return CostParameters(
        paper_cost_per_sheet=Decimal("0.10"),
        plate_cost_per_job=Decimal("25.00"),
        labor_cost_per_hour=Decimal("50.00"),
        binding_cost_per_unit=Decimal("0.50"),
        overhead_percentage=Decimal("0.15"),
        profit_margin_percentage=Decimal("0.20"),
    )


@pytest.fixture
def flyer_specs():
    return JobSpecifications(
        paper_type="gloss",
        paper_size="A5",
        colors=ColorSpecification(front_colors=4, back_colors=4, is_full_color=True),
    )


@pytest.fixture
def bound_specs():
    return JobSpecifications(
        paper_type="matte",
        paper_size="A4",
        colors=ColorSpecification(front_colors=4, back_colors=0),
        binding="saddle_stitch",
    )


@pytest.fixture
def rate_table():
    return ExchangeRateTable(
        rates={
            "USD": Decimal("1.0"),
            "XAF": Decimal("620.0"),
            "EUR": Decimal("0.85"),
            "GBP": Decimal("0.73"),
            "CAD": Decimal("1.35"),
        },
        last_updated=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def sqlite_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(sqlite_engine):
    store = SqlCostParameterStore(sqlite_engine)
    store.create_schema()
    return store
