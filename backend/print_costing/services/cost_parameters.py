import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from sqlmodel import SQLModel, select

from print_costing.db.session import get_session
from print_costing.errors import InvalidInputError, NotConfiguredError
from print_costing.models.cost_parameters import STORED_DECIMAL_PLACES, CostParametersRecord
from print_costing.models.costing import CostParameters, CostParametersUpdate

logger = logging.getLogger(__name__)


class CostParameterStore(ABC):
    """Supplies the current cost parameters as an immutable snapshot."""

    @abstractmethod
    def current(self) -> CostParameters:
        """Return the active parameters or raise NotConfiguredError."""
        raise NotImplementedError


class StaticCostParameterStore(CostParameterStore):
    def __init__(self, params: Optional[CostParameters] = None, default: Optional[CostParameters] = None):
        self._params = params
        self._default = default

    def current(self) -> CostParameters:
        if self._params is not None:
            return self._params
        if self._default is not None:
            return self._default
        raise NotConfiguredError("No cost parameters have been configured")


class SqlCostParameterStore(CostParameterStore):
    """Cost parameters kept in the `cost_parameters` table; the newest row wins.

    Every update appends a row, so readers always see one complete set of values.
    """

    def __init__(self, engine, default: Optional[CostParameters] = None):
        self.engine = engine
        self.default = default

    def create_schema(self) -> None:
        SQLModel.metadata.create_all(self.engine, tables=[CostParametersRecord.__table__])

    def _latest(self) -> Optional[CostParameters]:
        session = get_session(self.engine)
        try:
            stmt = select(CostParametersRecord).order_by(
                CostParametersRecord.updated_at.desc(), CostParametersRecord.id.desc()
            )
            record = session.exec(stmt).first()
            return record.to_parameters() if record is not None else None
        finally:
            session.close()

    def current(self) -> CostParameters:
        params = self._latest()
        if params is not None:
            return params
        if self.default is not None:
            logger.debug("No stored cost parameters, using defaults")
            return self.default
        raise NotConfiguredError("No cost parameters have been configured")

    def _check_scale(self, changes: CostParametersUpdate) -> None:
        step = Decimal(1).scaleb(-STORED_DECIMAL_PLACES)
        # trailing zeros are fine: 0.123400 fits, 0.123456 does not
        fields = sorted(
            name for name, value in changes
            if value is not None and value != value.quantize(step)
        )
        if fields:
            raise InvalidInputError(
                f"Cost parameters allow at most {STORED_DECIMAL_PLACES} decimal places: " + ", ".join(fields),
                issues=[f"too_precise:{f}" for f in fields],
            )

    def update(self, changes: CostParametersUpdate) -> CostParameters:
        self._check_scale(changes)
        base = self._latest() or self.default
        if base is None:
            missing = [name for name, value in changes if value is None]
            if missing:
                raise NotConfiguredError(
                    "No cost parameters to update; provide every field: " + ", ".join(sorted(missing))
                )
            # validated by apply() below
            base = CostParameters.model_construct(**changes.model_dump())

        updated = changes.apply(base)
        session = get_session(self.engine)
        try:
            record = CostParametersRecord.from_parameters(updated)
            session.add(record)
            session.commit()
            session.refresh(record)
            logger.info("Cost parameters updated record_id=%s", record.id)
            # report what was stored, as current() will read it back
            return record.to_parameters()
        finally:
            session.close()
