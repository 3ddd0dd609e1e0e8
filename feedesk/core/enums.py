from enum import Enum


class UserRole(str, Enum):
    OWNER = "Owner"
    ADMIN = "Admin"
    ACCOUNTANT = "Accountant"
    TEACHER = "Teacher"
    PARENT = "Parent"
    STUDENT = "Student"


class Permission(str, Enum):
    MANAGE_STUDENTS = "CAN_MANAGE_STUDENTS"
    VIEW_STUDENT_LISTS = "CAN_VIEW_STUDENT_LISTS"
    MANAGE_FEES = "CAN_MANAGE_FEES"
    MANAGE_FEE_HEADS = "CAN_MANAGE_FEE_HEADS"
    VIEW_FINANCIAL_REPORTS = "CAN_VIEW_FINANCIAL_REPORTS"


class StudentStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    LEFT = "Left"


class ChallanStatus(str, Enum):
    UNPAID = "Unpaid"
    PARTIAL = "Partial"
    PAID = "Paid"
    CANCELLED = "Cancelled"


class DefaulterReportType(str, Enum):
    MONTHLY = "monthly"
    CUMULATIVE = "cumulative"
