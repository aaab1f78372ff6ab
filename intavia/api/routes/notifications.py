"""
Notification endpoints: preferences and the ad-hoc emails the front end triggers.
"""
import logging

from fastapi import APIRouter, Depends

from intavia.api.responses import success
from intavia.core.auth_dependency import get_current_profile
from intavia.core.config import Settings, get_settings
from intavia.core.errors import UpstreamError
from intavia.core.service_dependency import get_dispatcher, get_preferences_service
from intavia.db.models.profile import Profile
from intavia.schemas.notification import DemoRequest, JobPermissionGrantedRequest, NotificationPreferencesUpdate
from intavia.services.notification_dispatcher import NotificationDispatcher
from intavia.services.notification_preferences_service import NotificationPreferencesService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notifications"])


@router.get("/user/notification-preferences")
def get_preferences(
    profile: Profile = Depends(get_current_profile),
    preferences: NotificationPreferencesService = Depends(get_preferences_service),
):
    return success(preferences.get(profile.id))


@router.patch("/user/notification-preferences")
def update_preferences(
    request: NotificationPreferencesUpdate,
    profile: Profile = Depends(get_current_profile),
    preferences: NotificationPreferencesService = Depends(get_preferences_service),
):
    changes = request.model_dump(exclude_none=True)
    return success(preferences.update(profile.id, changes))


@router.post("/notifications/job-permission-granted")
def job_permission_granted(
    request: JobPermissionGrantedRequest,
    profile: Profile = Depends(get_current_profile),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    action_url = f"{settings.app_base_url}/dashboard/jobs/{request.job_id}" if request.job_id else f"{settings.app_base_url}/dashboard"
    result = dispatcher.send(
        "job-permission-granted",
        request.recipient_email,
        {
            "recipient_name": request.recipient_name or request.recipient_email,
            "granter_name": request.granter_name or profile.full_name or profile.email,
            "job_title": request.job_title,
            "company_name": request.company_name or "",
            "permission_level": request.permission_level,
            "action_url": action_url,
        },
    )
    if not result.success:
        raise UpstreamError(result.error or "Failed to send notification")
    return success(result.to_dict())


@router.post("/request-demo")
def request_demo(
    request: DemoRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Public form. The sales inbox gets the request with reply-to set to the requester."""
    result = dispatcher.send(
        "demo-request",
        settings.sales_email,
        {
            "name": request.name,
            "email": request.email,
            "company": request.company,
            "phone": request.phone,
            "team_size": request.team_size,
            "message": request.message,
        },
        reply_to=request.email,
    )
    if not result.success:
        logger.error(f"Demo request email failed company={request.company}: {result.error}")
        raise UpstreamError("Failed to submit demo request")
    return success(result.to_dict())
