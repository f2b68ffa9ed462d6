"""
Database models for the admin API.

All SQLAlchemy models are imported here so the metadata knows every table.
"""

from impatient_review.models.admin import Admin
from impatient_review.models.passwordless_credential import PasswordlessCredential
from impatient_review.models.session import SessionRecord

__all__ = [
    "Admin",
    "PasswordlessCredential",
    "SessionRecord",
]
