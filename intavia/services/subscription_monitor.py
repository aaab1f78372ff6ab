"""
Subscription monitor: the periodic reconciliation sweep.

Checks run in a fixed order and each one is independently fallible. A failure on one
subscription becomes an entry in that check's error list; it never stops the sweep.

"Already notified" is an explicit MonitorNotification row keyed by
(subscription, check, window). The row is claimed before dispatch and released
again when the dispatch fails, so a later sweep retries and concurrent sweeps
collide on the unique constraint instead of sending twice.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from intavia.core.config import Settings
from intavia.core.timeutils import as_utc, utcnow
from intavia.db.models.monitor_notification import MonitorNotification
from intavia.db.models.profile import Profile
from intavia.db.models.subscription import Subscription
from intavia.services.billing_service import sync_from_provider
from intavia.services.notification_dispatcher import NotificationDispatcher
from intavia.services.notification_preferences_service import NotificationPreferencesService

logger = logging.getLogger(__name__)

PREFERENCE_CHANNEL = "email"
PREFERENCE_CATEGORY = "system_updates"


def _days_left(until: datetime, now: datetime) -> int:
    return max(0, math.ceil((until - now).total_seconds() / 86400))


def _fmt_date(value: Optional[datetime]) -> str:
    return value.strftime("%B %d, %Y") if value else ""


class CheckResult:
    def __init__(self):
        self.notifications = 0
        self.errors: List[str] = []

    def to_dict(self) -> Dict[str, Any]:
        return {"notifications": self.notifications, "errors": list(self.errors)}


class SubscriptionMonitor:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        gateway,
        dispatcher: NotificationDispatcher,
        preferences: NotificationPreferencesService,
    ):
        self.db = db
        self.settings = settings
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.preferences = preferences

    @property
    def checks(self):
        return [
            ("trial_ending", self.check_trial_ending),
            ("payment_failed", self.check_payment_failed),
            ("subscription_expiring", self.check_subscription_expiring),
            ("past_due_escalation", self.check_past_due_escalation),
            ("status_sync", self.sync_statuses),
        ]

    def run_all_checks(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Run every check and aggregate the results.

        Returns:
            {checks: {name: {notifications, errors}}, summary: {notifications, errors}}
        """
        now = now or utcnow()
        checks: Dict[str, Dict[str, Any]] = {}
        total = 0
        all_errors: List[str] = []

        for name, check in self.checks:
            result = CheckResult()
            try:
                check(now, result)
            except Exception as e:
                self.db.rollback()
                logger.error(f"Monitor check {name} failed: {e}", exc_info=True)
                result.errors.append(f"{name}: {e}")
            checks[name] = result.to_dict()
            total += result.notifications
            all_errors.extend(result.errors)

        logger.info(f"Subscription monitor finished notifications={total} errors={len(all_errors)}")
        return {"checks": checks, "summary": {"notifications": total, "errors": all_errors}}

    def _subscriptions(self, status: str) -> List[Subscription]:
        return self.db.query(Subscription).filter(Subscription.status == status).all()

    def _notify(
        self,
        subscription: Subscription,
        check_name: str,
        window_key: str,
        kind: str,
        data: Dict[str, Any],
        result: CheckResult,
    ) -> None:
        claimed = False
        try:
            owner = self.db.query(Profile).filter(Profile.id == subscription.user_id).first() if subscription.user_id else None
            if not owner or not owner.email:
                result.errors.append(f"Subscription {subscription.id}: owner email not found")
                return

            if not self.preferences.allows(owner.id, PREFERENCE_CHANNEL, PREFERENCE_CATEGORY):
                logger.debug(f"Skipping {check_name} for subscription_id={subscription.id}: notifications disabled")
                return

            claim = MonitorNotification(subscription_id=subscription.id, check_name=check_name, window_key=window_key)
            self.db.add(claim)
            try:
                self.db.commit()
            except IntegrityError:
                # another sweep already notified for this window
                self.db.rollback()
                return
            claimed = True

            data = dict(data, user_name=owner.first_name or owner.email, action_url=f"{self.settings.app_base_url}/billing")
            sent = self.dispatcher.send(kind, owner.email, data)
            if not sent.success:
                self._release_claim(subscription.id, check_name, window_key)
                result.errors.append(f"Subscription {subscription.id}: {sent.error or 'notification failed'}")
                return

            claim.message_id = sent.message_id
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Monitor {check_name} failed subscription_id={subscription.id}: {e}", exc_info=True)
            if claimed:
                self._release_claim(subscription.id, check_name, window_key)
            result.errors.append(f"Subscription {subscription.id}: {e}")
            return

        result.notifications += 1
        logger.info(f"Monitor notification sent check={check_name} subscription_id={subscription.id}")

    def _release_claim(self, subscription_id: str, check_name: str, window_key: str) -> None:
        """Drop a claim so the next sweep retries this window."""
        try:
            self.db.query(MonitorNotification).filter(
                MonitorNotification.subscription_id == subscription_id,
                MonitorNotification.check_name == check_name,
                MonitorNotification.window_key == window_key,
            ).delete(synchronize_session=False)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Could not release monitor claim subscription_id={subscription_id} check={check_name}: {e}")

    def check_trial_ending(self, now: datetime, result: CheckResult) -> None:
        horizon = now + timedelta(days=self.settings.monitor_trial_window_days)
        for subscription in self._subscriptions("trialing"):
            trial_end = as_utc(subscription.trial_end)
            if not trial_end or not (now < trial_end <= horizon):
                continue
            self._notify(
                subscription,
                "trial_ending",
                trial_end.isoformat(),
                "trial-ending",
                {
                    "plan_id": subscription.plan_id,
                    "trial_end": _fmt_date(trial_end),
                    "days_left": _days_left(trial_end, now),
                },
                result,
            )

    def check_payment_failed(self, now: datetime, result: CheckResult) -> None:
        """One reminder per open invoice per UTC day."""
        for subscription in self._subscriptions("past_due"):
            if not subscription.stripe_subscription_id:
                continue
            try:
                invoices = self.gateway.list_open_invoices(subscription.stripe_subscription_id, 1)
            except Exception as e:
                logger.warning(f"Could not list invoices for subscription_id={subscription.id}: {e}")
                result.errors.append(f"Subscription {subscription.id}: {e}")
                continue
            if not invoices:
                continue
            invoice = invoices[0]
            self._notify(
                subscription,
                "payment_failed",
                f"{invoice['id']}:{now.date().isoformat()}",
                "payment-failed",
                {
                    "amount": f"{(invoice.get('amount_due') or 0) / 100:.2f}",
                    "currency": (invoice.get("currency") or "usd").upper(),
                    "invoice_id": invoice["id"],
                },
                result,
            )

    def check_subscription_expiring(self, now: datetime, result: CheckResult) -> None:
        horizon = now + timedelta(days=self.settings.monitor_expiring_window_days)
        for subscription in self._subscriptions("active"):
            period_end = as_utc(subscription.current_period_end)
            if not subscription.cancel_at_period_end or not period_end or not (now < period_end <= horizon):
                continue
            self._notify(
                subscription,
                "subscription_expiring",
                period_end.isoformat(),
                "subscription-expiring",
                {
                    "plan_id": subscription.plan_id,
                    "period_end": _fmt_date(period_end),
                    "days_left": _days_left(period_end, now),
                },
                result,
            )

    def check_past_due_escalation(self, now: datetime, result: CheckResult) -> None:
        """One final notice per past-due episode."""
        cutoff = now - timedelta(days=self.settings.monitor_past_due_grace_days)
        for subscription in self._subscriptions("past_due"):
            since = as_utc(subscription.past_due_since)
            if not since or since > cutoff:
                continue
            self._notify(
                subscription,
                "past_due_escalation",
                since.isoformat(),
                "past-due-final-notice",
                {"past_due_since": _fmt_date(since)},
                result,
            )

    def sync_statuses(self, now: datetime, result: CheckResult) -> None:
        """Re-read each live subscription from the provider. The counter counts status changes."""
        subscriptions = (
            self.db.query(Subscription)
            .filter(Subscription.status != "expired", Subscription.stripe_subscription_id.isnot(None))
            .all()
        )
        for subscription in subscriptions:
            try:
                provider = self.gateway.retrieve_subscription(subscription.stripe_subscription_id)
                if sync_from_provider(self.db, subscription, provider, "monitor.status_sync"):
                    result.notifications += 1
            except Exception as e:
                self.db.rollback()
                logger.warning(f"Status sync failed subscription_id={subscription.id}: {e}")
                result.errors.append(f"Subscription {subscription.id}: {e}")
