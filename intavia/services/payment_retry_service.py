"""
Payment retry after a failed subscription charge.

Steps run strictly in order: resolve customer, attach the payment method, make it the
default for the customer and then for the subscription, list open invoices, pay each.
There is no compensation if a later setup step fails: the customer default may be
updated while the subscription default is not. Per-invoice failures are collected
and never stop the remaining attempts.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from intavia.core.config import Settings
from intavia.core.errors import UpstreamError, ValidationError
from intavia.core.timeutils import utcnow
from intavia.db.models.subscription import Subscription
from intavia.services.stripe_service import PaymentProviderError

logger = logging.getLogger(__name__)


@dataclass
class InvoiceRetryResult:
    invoice_id: str
    success: bool
    status: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"invoiceId": self.invoice_id, "success": self.success}
        if self.success:
            body["status"] = self.status
        else:
            body["error"] = self.error
        return body


@dataclass
class PaymentRetryResult:
    subscription_id: str
    subscription_status: Optional[str]
    retry_results: List[InvoiceRetryResult] = field(default_factory=list)
    local_status: Optional[str] = None

    @property
    def all_paid(self) -> bool:
        return bool(self.retry_results) and all(r.success and r.status == "paid" for r in self.retry_results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "retryResults": [r.to_dict() for r in self.retry_results],
            "subscription": {"id": self.subscription_id, "status": self.subscription_status},
            "localStatus": self.local_status,
        }


class PaymentRetryCoordinator:
    def __init__(self, db: Session, settings: Settings, gateway):
        self.db = db
        self.settings = settings
        self.gateway = gateway

    def retry_payment(self, subscription_ref: str, payment_method_ref: str) -> PaymentRetryResult:
        if not subscription_ref or not payment_method_ref:
            raise ValidationError("Missing paymentMethodId or subscriptionId")

        try:
            subscription = self.gateway.retrieve_subscription(subscription_ref)
            customer_id = subscription["customer"]
            self.gateway.attach_payment_method(payment_method_ref, customer_id)
            self.gateway.set_customer_default_payment_method(customer_id, payment_method_ref)
            self.gateway.set_subscription_default_payment_method(subscription_ref, payment_method_ref)
            invoices = self.gateway.list_open_invoices(subscription_ref, self.settings.payment_retry_invoice_limit)
        except PaymentProviderError as e:
            logger.error(f"Payment retry setup failed subscription={subscription_ref}: {e}")
            raise UpstreamError(f"Payment retry failed: {e}") from e

        logger.info(
            f"Payment method updated subscription={subscription_ref} customer={customer_id} "
            f"open_invoices={len(invoices)}"
        )

        result = PaymentRetryResult(subscription_id=subscription["id"], subscription_status=subscription["status"])
        for invoice in invoices:
            invoice_id = invoice.get("id")
            if not invoice_id:
                continue
            try:
                paid = self.gateway.pay_invoice(invoice_id, payment_method_ref)
                result.retry_results.append(
                    InvoiceRetryResult(invoice_id=invoice_id, success=True, status=paid.get("status"))
                )
                logger.info(f"Invoice retried invoice_id={invoice_id} status={paid.get('status')}")
            except Exception as e:
                logger.warning(f"Invoice retry failed invoice_id={invoice_id}: {e}")
                result.retry_results.append(
                    InvoiceRetryResult(invoice_id=invoice_id, success=False, error=str(e) or "Payment failed")
                )

        result.local_status = self._reconcile_local(subscription_ref, result)
        return result

    def _reconcile_local(self, subscription_ref: str, result: PaymentRetryResult) -> Optional[str]:
        local = (
            self.db.query(Subscription)
            .filter(Subscription.stripe_subscription_id == subscription_ref)
            .first()
        )
        if not local:
            return None
        if local.status == "past_due" and result.all_paid:
            updated = (
                self.db.query(Subscription)
                .filter(Subscription.id == local.id, Subscription.status == "past_due")
                .update(
                    {
                        Subscription.status: "active",
                        Subscription.past_due_since: None,
                        Subscription.updated_at: utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            self.db.commit()
            if updated:
                logger.info(f"Subscription recovered subscription_id={local.id} past_due->active")
            self.db.refresh(local)
        return local.status
