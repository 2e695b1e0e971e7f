"""Data models for the admin console.

This package contains Pydantic mirrors of server rows and the drafts the
console builds from form input:
- BaseDataModel / ServerRecord: Base classes
- UserProfile, UserPermission, AuthSession: Users and sessions
- Customer, Invoice, Payment, PaymentApplication: Business records
- Reminder, ReminderDraft: Invoice reminders
- SyncStatus, SyncLog, SyncChangeLog, SchedulerLog, SyncCredentials,
  CronJob, BackfillProgress: Sync administration
- Collector, CollectorProgressPoint: Collectors
"""

from ar_admin.models.base import BaseDataModel, ServerRecord
from ar_admin.models.collectors import Collector, CollectorProgressPoint
from ar_admin.models.records import Customer, Invoice, Payment, PaymentApplication
from ar_admin.models.reminders import Reminder, ReminderDraft
from ar_admin.models.sync import (
    BackfillProgress,
    CronJob,
    SchedulerLog,
    SyncChangeLog,
    SyncConfig,
    SyncCredentials,
    SyncLog,
    SyncStatus,
)
from ar_admin.models.users import AuthSession, UserPermission, UserProfile

__all__ = [
    "BaseDataModel",
    "ServerRecord",
    "UserProfile",
    "UserPermission",
    "AuthSession",
    "Customer",
    "Invoice",
    "Payment",
    "PaymentApplication",
    "Reminder",
    "ReminderDraft",
    "SyncStatus",
    "SyncConfig",
    "SyncLog",
    "SyncChangeLog",
    "SchedulerLog",
    "SyncCredentials",
    "CronJob",
    "BackfillProgress",
    "Collector",
    "CollectorProgressPoint",
]
