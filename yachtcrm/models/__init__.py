"""
Data Models Package.

Re-exports the Pydantic models for short imports::

    from yachtcrm.models import Client, Boat, User, ServiceResult
"""

from yachtcrm.models.boat import Boat, BoatForm, BoatImage, BoatSearch, BoatUpdateForm, ImageRef
from yachtcrm.models.client import Client, ClientForm, ClientSearch, ClientUpdateForm, ReminderForm
from yachtcrm.models.dashboard import Dashboard, DashboardStats, PriorityReminder, ReminderBuckets
from yachtcrm.models.enums import BudgetRange, Currency, ReminderBucket, UserRole
from yachtcrm.models.service_models import ServiceResult
from yachtcrm.models.upload import UploadFile, UploadOutcome
from yachtcrm.models.user import User

__all__ = [
    "Boat",
    "BoatForm",
    "BoatImage",
    "BoatSearch",
    "BoatUpdateForm",
    "BudgetRange",
    "Client",
    "ClientForm",
    "ClientSearch",
    "ClientUpdateForm",
    "Currency",
    "Dashboard",
    "DashboardStats",
    "ImageRef",
    "PriorityReminder",
    "ReminderBucket",
    "ReminderBuckets",
    "ServiceResult",
    "UploadFile",
    "UploadOutcome",
    "User",
    "UserRole",
]
