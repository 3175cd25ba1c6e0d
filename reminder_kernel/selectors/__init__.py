"""Read-only selectors."""

from reminder_kernel.selectors.base import BaseSelector
from reminder_kernel.selectors.eligibility_selector import (
    EligibilitySelector,
    EligibleCredit,
)

__all__ = ["BaseSelector", "EligibilitySelector", "EligibleCredit"]
