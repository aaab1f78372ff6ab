"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from intavia.db.models.company import Company
from intavia.db.models.profile import Profile
from intavia.db.models.job import Job
from intavia.db.models.candidate import Candidate, CandidateResponse, CandidateResume
from intavia.db.models.evaluation import Evaluation
from intavia.db.models.interview import Interview
from intavia.db.models.contract_offer import Contract, ContractOffer
from intavia.db.models.integration import Integration
from intavia.db.models.invite import Invite
from intavia.db.models.subscription import Subscription
from intavia.db.models.notification_preference import NotificationPreference
from intavia.db.models.monitor_notification import MonitorNotification

__all__ = [
    "Company",
    "Profile",
    "Job",
    "Candidate",
    "CandidateResponse",
    "CandidateResume",
    "Evaluation",
    "Interview",
    "Contract",
    "ContractOffer",
    "Integration",
    "Invite",
    "Subscription",
    "NotificationPreference",
    "MonitorNotification",
]
