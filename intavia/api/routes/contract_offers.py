"""
Contract offer endpoints.

Cancel and download are for the sending company. Sign and reject are public and
gated by the offer's signing token.
"""
import logging

from fastapi import APIRouter, Depends

from intavia.api.responses import dump, success
from intavia.core.auth_dependency import require_company_profile
from intavia.core.errors import AppError, InternalError
from intavia.core.service_dependency import get_contract_offer_state_machine
from intavia.db.models.profile import Profile
from intavia.schemas.contract_offer import (
    ContractOfferResponse,
    RejectContractRequest,
    SignContractRequest,
    SignedDocumentResponse,
)
from intavia.services.contract_offer_service import ContractOfferStateMachine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contract-offers", tags=["Contract Offers"])


@router.post("/{offer_id}/cancel")
def cancel_offer(
    offer_id: str,
    profile: Profile = Depends(require_company_profile),
    offers: ContractOfferStateMachine = Depends(get_contract_offer_state_machine),
):
    try:
        offer = offers.cancel(offer_id, profile)
        return success(dump(ContractOfferResponse, offer))
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Cancel failed offer_id={offer_id}: {e}", exc_info=True)
        raise InternalError("Failed to cancel contract offer")


@router.post("/{offer_id}/sign")
def sign_offer(
    offer_id: str,
    request: SignContractRequest,
    offers: ContractOfferStateMachine = Depends(get_contract_offer_state_machine),
):
    try:
        outcome = offers.sign(
            offer_id,
            request.signing_token,
            signature=request.signature,
            signed_document=request.document_bytes(),
        )
        return success(dump(ContractOfferResponse, outcome.value), outcome.warnings)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Sign failed offer_id={offer_id}: {e}", exc_info=True)
        raise InternalError("Failed to sign contract offer")


@router.post("/{offer_id}/reject")
def reject_offer(
    offer_id: str,
    request: RejectContractRequest,
    offers: ContractOfferStateMachine = Depends(get_contract_offer_state_machine),
):
    try:
        outcome = offers.reject(offer_id, request.signing_token, reason=request.reason)
        return success(dump(ContractOfferResponse, outcome.value), outcome.warnings)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Reject failed offer_id={offer_id}: {e}", exc_info=True)
        raise InternalError("Failed to reject contract offer")


@router.get("/{offer_id}/download")
def download_signed_document(
    offer_id: str,
    profile: Profile = Depends(require_company_profile),
    offers: ContractOfferStateMachine = Depends(get_contract_offer_state_machine),
):
    """Time-limited URL for the signed contract document."""
    url = offers.get_signed_document_url(offer_id, profile)
    return success(SignedDocumentResponse(url=url))
