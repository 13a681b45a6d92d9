import logging

from fastapi import APIRouter, Depends, HTTPException

from print_costing.api.deps import get_parameter_store
from print_costing.models.costing import CostParameters, CostParametersUpdate
from print_costing.services.cost_parameters import CostParameterStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/cost-parameters", response_model=CostParameters)
def get_cost_parameters(store: CostParameterStore = Depends(get_parameter_store)):
    return store.current()


@router.put("/cost-parameters", response_model=CostParameters)
def update_cost_parameters(changes: CostParametersUpdate, store: CostParameterStore = Depends(get_parameter_store)):
    update = getattr(store, "update", None)
    if update is None:
        logger.warning("Cost parameter store %s is read-only", type(store).__name__)
        raise HTTPException(status_code=405, detail="Cost parameters are read-only")
    return update(changes)
