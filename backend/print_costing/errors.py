from typing import List, Optional


class CostingError(Exception):
    """Base class for every failure a cost calculation can end with.

    Each subclass carries a stable `kind` (used in API error bodies) and the
    HTTP status the service layer answers with. None of them are retried
    inside the engine.
    """

    kind = "costing_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(CostingError):
    kind = "invalid_input"
    status_code = 400

    def __init__(self, message: str, issues: Optional[List[str]] = None):
        super().__init__(message)
        self.issues = list(issues or [])


class UnsupportedCurrencyError(CostingError):
    kind = "unsupported_currency"
    status_code = 400

    def __init__(self, code: str):
        super().__init__(f"Unsupported currency: {code}")
        self.code = code


class RateSourceUnavailableError(CostingError):
    kind = "rate_source_unavailable"
    status_code = 503


class NotConfiguredError(CostingError):
    kind = "not_configured"
    status_code = 503
