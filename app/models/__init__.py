from app.models.user import User
from app.models.subscription import Subscription
from app.models.usage_log import UsageLog
from app.models.crm_lead import CrmLead, CRM_STATUSES
from app.models.saved_search import SavedSearch
from app.models.genienet import GenieNetDeal, WaitlistEntry

__all__ = [
    "User",
    "Subscription",
    "UsageLog",
    "CrmLead",
    "CRM_STATUSES",
    "SavedSearch",
    "GenieNetDeal",
    "WaitlistEntry",
]
