"""
Contract offer lifecycle: sent -> signed | rejected | expired.

Only `sent` offers move. Manual cancellation keeps the source vocabulary
(status "expired") and stamps canceled_at so it stays distinguishable from
time-based expiry. Signers authenticate with the offer's signing token.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from intavia.core.config import Settings
from intavia.core.errors import (
    ForbiddenError,
    InvalidTransitionError,
    LinkExpiredError,
    NotFoundError,
    ValidationError,
)
from intavia.core.timeutils import as_utc, utcnow
from intavia.db.models.candidate import Candidate
from intavia.db.models.contract_offer import ContractOffer
from intavia.db.models.job import Job
from intavia.db.models.profile import Profile
from intavia.services.notification_dispatcher import NotificationDispatcher
from intavia.services.outcome import Outcome
from intavia.services.storage_service import SIGNED_CONTRACTS_BUCKET

logger = logging.getLogger(__name__)


def signed_document_path(offer: ContractOffer) -> str:
    return f"{offer.company_id}/{offer.id}.pdf"


class ContractOfferStateMachine:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        blob_store,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.db = db
        self.settings = settings
        self.blob_store = blob_store
        self.dispatcher = dispatcher

    # ----- loading -----

    def _get_for_actor(self, offer_id: str, actor: Profile) -> ContractOffer:
        offer = self.db.query(ContractOffer).filter(ContractOffer.id == offer_id).first()
        if not offer:
            raise NotFoundError("Contract offer not found")
        if not actor.company_id or offer.company_id != actor.company_id:
            raise ForbiddenError("You do not have access to this contract offer")
        return offer

    def _get_for_signer(self, offer_id: str, signing_token: str) -> ContractOffer:
        """Token check, then expiry, then status. A wrong token looks like a missing offer."""
        if not signing_token:
            raise ValidationError("Signing token is required")
        offer = (
            self.db.query(ContractOffer)
            .filter(ContractOffer.id == offer_id, ContractOffer.signing_token == signing_token)
            .first()
        )
        if not offer:
            raise NotFoundError("Invalid signing token or contract offer not found")

        expires_at = as_utc(offer.expires_at)
        if expires_at is not None and utcnow() > expires_at:
            raise LinkExpiredError("This signing link has expired")
        if offer.status != "sent":
            raise InvalidTransitionError(
                f"This contract has already been {offer.status}", details={"status": offer.status}
            )
        return offer

    def get_for_signer(self, offer_id: str, signing_token: str) -> ContractOffer:
        return self._get_for_signer(offer_id, signing_token)

    def _conditional_update(self, offer: ContractOffer, values: Dict[Any, Any], signing_token: Optional[str] = None) -> None:
        query = self.db.query(ContractOffer).filter(ContractOffer.id == offer.id, ContractOffer.status == "sent")
        if signing_token is not None:
            query = query.filter(ContractOffer.signing_token == signing_token)
        updated = query.update(values, synchronize_session=False)
        if updated != 1:
            self.db.rollback()
            self.db.refresh(offer)
            raise InvalidTransitionError(
                f"This contract has already been {offer.status}", details={"status": offer.status}
            )
        self.db.commit()
        self.db.refresh(offer)

    # ----- operations -----

    def cancel(self, offer_id: str, actor: Profile) -> ContractOffer:
        offer = self._get_for_actor(offer_id, actor)
        if offer.status != "sent":
            raise InvalidTransitionError(
                f"Only sent offers can be cancelled, this one is {offer.status}",
                details={"status": offer.status},
            )
        now = utcnow()
        self._conditional_update(
            offer,
            {ContractOffer.status: "expired", ContractOffer.canceled_at: now, ContractOffer.updated_at: now},
        )
        logger.info(f"Contract offer cancelled offer_id={offer_id} actor={actor.id}")
        return offer

    def sign(
        self,
        offer_id: str,
        signing_token: str,
        signature: Optional[Dict[str, Any]] = None,
        signed_document: Optional[bytes] = None,
    ) -> Outcome:
        offer = self._get_for_signer(offer_id, signing_token)
        now = utcnow()
        values: Dict[Any, Any] = {
            ContractOffer.status: "signed",
            ContractOffer.signed_at: now,
            ContractOffer.updated_at: now,
        }
        if signature:
            values[ContractOffer.signature] = {**signature, "signedAt": signature.get("signedAt") or now.isoformat()}
        self._conditional_update(offer, values, signing_token=signing_token)
        logger.info(f"Contract offer signed offer_id={offer_id}")

        outcome = Outcome(offer)
        if signed_document:
            path = signed_document_path(offer)
            try:
                self.blob_store.upload(SIGNED_CONTRACTS_BUCKET, path, signed_document, "application/pdf")
                self.db.query(ContractOffer).filter(ContractOffer.id == offer.id).update(
                    {ContractOffer.signed_document_path: path}, synchronize_session=False
                )
                self.db.commit()
                self.db.refresh(offer)
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to store signed contract offer_id={offer_id}: {e}", exc_info=True)
                outcome.warn(f"Signed document could not be stored: {e}")

        self._notify_sender(offer, "contract-signed", outcome, signed_at=now.strftime("%Y-%m-%d"))
        return outcome

    def reject(self, offer_id: str, signing_token: str, reason: Optional[str] = None) -> Outcome:
        offer = self._get_for_signer(offer_id, signing_token)
        now = utcnow()
        self._conditional_update(
            offer,
            {
                ContractOffer.status: "rejected",
                ContractOffer.rejected_at: now,
                ContractOffer.rejection_reason: reason,
                ContractOffer.updated_at: now,
            },
            signing_token=signing_token,
        )
        logger.info(f"Contract offer rejected offer_id={offer_id}")

        outcome = Outcome(offer)
        self._notify_sender(offer, "contract-rejected", outcome, rejection_reason=reason)
        return outcome

    def get_signed_document_url(self, offer_id: str, actor: Profile) -> str:
        offer = self._get_for_actor(offer_id, actor)
        if offer.status != "signed" or not offer.signed_document_path:
            raise NotFoundError("No signed document available for this contract offer")
        return self.blob_store.create_signed_url(
            SIGNED_CONTRACTS_BUCKET, offer.signed_document_path, self.settings.signed_url_ttl_seconds
        )

    # ----- notifications -----

    def _notify_sender(self, offer: ContractOffer, kind: str, outcome: Outcome, **extra) -> None:
        if self.dispatcher is None or not offer.sent_by:
            return
        try:
            sender = self.db.query(Profile).filter(Profile.id == offer.sent_by).first()
            row = (
                self.db.query(Candidate, Job)
                .join(Job, Candidate.job_id == Job.id)
                .filter(Candidate.id == offer.candidate_id)
                .first()
            )
            if not sender or not row:
                return
            candidate, job = row
            result = self.dispatcher.send(
                kind,
                sender.email,
                {
                    "recipient_name": sender.first_name or sender.email,
                    "candidate_name": candidate.full_name,
                    "job_title": job.title,
                    "action_url": f"{self.settings.app_base_url.rstrip('/')}/dashboard/contracts",
                    **extra,
                },
            )
        except Exception as e:
            logger.error(f"Failed to notify contract sender offer_id={offer.id}: {e}", exc_info=True)
            outcome.warn(f"{kind} notification failed: {e}")
            return
        if not result.success:
            outcome.warn(f"{kind} notification failed: {result.error}")
