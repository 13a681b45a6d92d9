from typing import Dict, List, Tuple

from print_costing.errors import InvalidInputError
from print_costing.models.costing import JobType

BASE_DAYS: Dict[JobType, int] = {
    JobType.BUSINESS_CARD: 1,
    JobType.FLYER: 2,
    JobType.POSTER: 2,
    JobType.STICKER: 2,
    JobType.BROCHURE: 3,
    JobType.BANNER: 3,
    JobType.BOOK: 5,
    JobType.CUSTOM: 5,
}

# (inclusive upper quantity bound, extra days); anything larger gets LARGE_RUN_DAYS
QUANTITY_SURCHARGE: List[Tuple[int, int]] = [
    (100, 0),
    (500, 1),
    (1000, 2),
    (5000, 3),
]
LARGE_RUN_DAYS = 5


class DeliveryEstimator:
    """Lead time in working days from job type and run length."""

    def estimate(self, job_type: JobType, quantity: int) -> int:
        if quantity <= 0:
            raise InvalidInputError(f"Quantity must be positive, got {quantity}", issues=["invalid_quantity"])
        try:
            job_type = JobType(job_type)
        except ValueError:
            raise InvalidInputError(f"Invalid job type: {job_type}", issues=["invalid_job_type"]) from None
        return BASE_DAYS[job_type] + self._quantity_surcharge(quantity)

    def _quantity_surcharge(self, quantity: int) -> int:
        for upper, days in QUANTITY_SURCHARGE:
            if quantity <= upper:
                return days
        return LARGE_RUN_DAYS


_default_estimator = DeliveryEstimator()


def estimate_delivery(job_type: JobType, quantity: int) -> int:
    return _default_estimator.estimate(job_type, quantity)
