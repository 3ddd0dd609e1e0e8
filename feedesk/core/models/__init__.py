from feedesk.core.models.school import School
from feedesk.core.models.class_model import SchoolClass
from feedesk.core.models.student import Student
from feedesk.core.models.fee_head import FeeHead
from feedesk.core.models.fee_challan import FeeChallan
from feedesk.core.models.activity_log import ActivityLog

__all__ = [
    "ActivityLog",
    "FeeChallan",
    "FeeHead",
    "School",
    "SchoolClass",
    "Student",
]
