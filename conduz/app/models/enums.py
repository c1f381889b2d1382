"""
User roles enumeration.

Defines the role types for the payroll backend.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    
    Roles:
        ADMIN: Back-office operator (payments, financing, drivers)
        DRIVER: Driver using the self-service portal (default role)
    """
    ADMIN = "ADMIN"
    DRIVER = "DRIVER"
