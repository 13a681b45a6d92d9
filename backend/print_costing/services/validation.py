from typing import List

from print_costing.errors import InvalidInputError
from print_costing.models.costing import JobSpecifications


class SpecificationValidator:
    """Validation logic for a job before it is priced.

    Rules:
    - quantity must be a positive integer
    - pages, when given, must be positive
    - front/back color counts cannot be negative
    - paper type and size cannot be blank
    - finishing entries cannot be blank

    Deterministic: issues are returned sorted and de-duplicated.
    """

    def _add_issue(self, issues: List[str], issue: str) -> None:
        if issue not in issues:
            issues.append(issue)

    def validate(self, quantity: int, specs: JobSpecifications) -> List[str]:
        issues: List[str] = []

        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            self._add_issue(issues, "invalid_quantity")

        if specs.pages is not None and specs.pages <= 0:
            self._add_issue(issues, "invalid_pages")

        if specs.colors.front_colors < 0:
            self._add_issue(issues, "invalid_front_colors")
        if specs.colors.back_colors < 0:
            self._add_issue(issues, "invalid_back_colors")

        if not specs.paper_type.strip():
            self._add_issue(issues, "blank_paper_type")
        if not specs.paper_size.strip():
            self._add_issue(issues, "blank_paper_size")

        for option in specs.finishing:
            if not option.strip():
                self._add_issue(issues, "blank_finishing_option")

        return sorted(issues)

    def ensure_valid(self, quantity: int, specs: JobSpecifications) -> None:
        issues = self.validate(quantity, specs)
        if issues:
            raise InvalidInputError("Invalid job: " + ", ".join(issues), issues=issues)
