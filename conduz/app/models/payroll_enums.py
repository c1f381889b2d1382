"""
Payroll enumerations.
"""

import enum


class DriverType(str, enum.Enum):
    """Driver contract type."""
    AFFILIATE = "affiliate"  # Own vehicle, no rent or tolls charged
    RENTER = "renter"  # Company vehicle, charged weekly rent and tolls


class PaymentStatus(str, enum.Enum):
    """Weekly record payment status. PAID and CANCELLED are terminal."""
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class DataSource(str, enum.Enum):
    MANUAL = "manual"
    AUTO = "auto"


class FinancingType(str, enum.Enum):
    """Financing type enumeration."""
    LOAN = "loan"  # Amortized over N weeks
    DISCOUNT = "discount"  # Flat recurring weekly deduction, not amortized


class FinancingStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class FinancingRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Platform(str, enum.Enum):
    """Earnings and expense sources merged into a weekly record."""
    UBER = "uber"
    BOLT = "bolt"
    MYPRIO = "myprio"  # fuel
    VIAVERDE = "viaverde"  # tolls
