from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    SUPERADMIN = "superadmin"


class StaffStatus(str, Enum):
    """Employment status of a staff record. Descriptive only: any value may follow any other."""
    AT_POST = "AT POST"
    ON_LEAVE = "ON LEAVE"
    TRANSFERRED = "TRANSFERRED"
    VACATED_POST = "VACATED POST"


class ApprovalStatus(str, Enum):
    """Values that can actually be written to the monthly ledger."""
    APPROVED = "Approved"
    DISAPPROVED = "Disapproved"


class DerivedStatus(str, Enum):
    """What a staff member's month looks like to a reader. PENDING is never stored."""
    PENDING = "Pending"
    APPROVED = "Approved"
    DISAPPROVED = "Disapproved"


class ArchivalState(str, Enum):
    ACTIVE = "Active"
    ARCHIVED = "Archived"
