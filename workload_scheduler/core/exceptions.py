"""
Refusal reasons raised by store mutators.
"""

from enum import Enum
from typing import Optional


class RefusalReason(Enum):
    HAS_DEPENDENT_COURSES = "HasDependentCourses"
    HAS_ASSIGNMENTS = "HasAssignments"
    INVALID_INTERVAL = "InvalidInterval"
    LAST_VARIANT = "LastVariant"
    NOT_FOUND = "NotFound"
    NAME_EXISTS = "NameExists"
    INVALID_NAME = "InvalidName"
    INVALID_SLOT = "InvalidSlot"
    INVALID_VALUE = "InvalidValue"


class MutationRefused(Exception):
    """
    A mutator declined a structurally valid but forbidden operation.
    The store is left exactly as it was.
    """

    def __init__(self, reason: RefusalReason, detail: Optional[str] = None):
        self.reason = reason
        self.detail = detail or reason.value
        super().__init__(f"{reason.value}: {self.detail}")
