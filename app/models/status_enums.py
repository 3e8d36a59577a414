"""
Centralized status enums for different entities
"""

from enum import Enum


class GeneratorStatus(str, Enum):
    """Lifecycle of a generator listing"""
    PENDING_REVIEW = "pending_review"   # Parsed cleanly, waiting for an admin
    FOR_SALE = "for_sale"               # Approved or entered manually
    SOLD = "sold"                       # Seller replied SOLD (terminal)
    REJECTED = "rejected"               # Rejected by an admin (terminal)
    FAILED_PARSING = "failed_parsing"   # Parser reported errors at creation


class UserRole(str, Enum):
    """Roles of marketplace users"""
    SELLER = "seller"
    ADMIN = "admin"


class ProcessingStatus(str, Enum):
    """Marker stamped on payloads travelling through the queue"""
    QUEUED = "queued"          # Accepted by the webhook receiver
    FAILED = "failed"          # Moved to the dead-letter list


class SoldReplyAction(str, Enum):
    """Outcome of a SOLD reply"""
    IGNORED = "ignored"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    ALREADY_SOLD = "already_sold"
    INVALID_STATUS = "invalid_status"
    MARKED_SOLD = "marked_sold"
    ERROR = "error"


class ReviewAction(str, Enum):
    """Admin decision on a pending listing"""
    APPROVE = "approve"
    REJECT = "reject"
