"""
Reviewer roles.

Users live in the identity provider; the review service only sees the role
and id of whoever is acting on a review.
"""
import enum


class UserRole(str, enum.Enum):
    """
    - ADMIN: Platform administration, may finalize reviews at the HR stage
    - HR: Human resources, finalizes reviews at the HR stage
    - MANAGER: Second-line reviewer (R2), may also act as R1
    - TEAMLEAD: First-line reviewer (R1)
    - EMPLOYEE: Self-assessment only
    """
    ADMIN = "ADMIN"
    HR = "HR"
    MANAGER = "MANAGER"
    TEAMLEAD = "TEAMLEAD"
    EMPLOYEE = "EMPLOYEE"
