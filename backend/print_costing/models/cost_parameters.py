from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import SQLModel, Field

from print_costing.models.costing import CostParameters

# scale of every stored amount and percentage column
STORED_DECIMAL_PLACES = 4


class CostParametersRecord(SQLModel, table=True):
    __tablename__ = "cost_parameters"

    id: Optional[int] = Field(default=None, primary_key=True)
    paper_cost_per_sheet: Decimal = Field(max_digits=12, decimal_places=STORED_DECIMAL_PLACES)
    plate_cost_per_job: Decimal = Field(max_digits=12, decimal_places=STORED_DECIMAL_PLACES)
    labor_cost_per_hour: Decimal = Field(max_digits=12, decimal_places=STORED_DECIMAL_PLACES)
    binding_cost_per_unit: Decimal = Field(max_digits=12, decimal_places=STORED_DECIMAL_PLACES)
    overhead_percentage: Decimal = Field(max_digits=8, decimal_places=STORED_DECIMAL_PLACES)
    profit_margin_percentage: Decimal = Field(max_digits=8, decimal_places=STORED_DECIMAL_PLACES)
    updated_at: datetime = Field(index=True)

    @classmethod
    def from_parameters(cls, params: CostParameters) -> "CostParametersRecord":
        return cls(**params.model_dump())

    def to_parameters(self) -> CostParameters:
        return CostParameters(
            paper_cost_per_sheet=self.paper_cost_per_sheet,
            plate_cost_per_job=self.plate_cost_per_job,
            labor_cost_per_hour=self.labor_cost_per_hour,
            binding_cost_per_unit=self.binding_cost_per_unit,
            overhead_percentage=self.overhead_percentage,
            profit_margin_percentage=self.profit_margin_percentage,
            updated_at=self.updated_at,
        )
