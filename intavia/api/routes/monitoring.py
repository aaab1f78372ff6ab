"""
Scheduler-facing endpoints. Callers authenticate with the monitoring key or an
admin bearer token.
"""
import logging

from fastapi import APIRouter, Depends

from intavia.api.responses import success
from intavia.core.auth_dependency import require_monitoring_access
from intavia.core.service_dependency import get_subscription_monitor, get_token_refresher
from intavia.services.subscription_monitor import SubscriptionMonitor
from intavia.services.token_refresher import TokenRefresher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Monitoring"])


@router.post("/monitoring/subscriptions")
def run_subscription_monitor(
    caller: str = Depends(require_monitoring_access),
    monitor: SubscriptionMonitor = Depends(get_subscription_monitor),
):
    logger.info(f"Subscription monitor triggered by {caller}")
    return success(monitor.run_all_checks())


@router.post("/integrations/google/refresh-tokens")
def refresh_google_tokens(
    caller: str = Depends(require_monitoring_access),
    token_refresher: TokenRefresher = Depends(get_token_refresher),
):
    logger.info(f"Google token refresh triggered by {caller}")
    return success(token_refresher.refresh_expiring_tokens())
