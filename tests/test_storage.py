"""
Tests for the local blob store and its signed URLs.
"""
import pytest

from intavia.core.errors import NotFoundError, ValidationError
from intavia.core.security import create_access_token


def test_upload_download_and_remove(blob_store):
    blob_store.upload("signed-contracts", "offer-1/contract.pdf", b"%PDF-1.4")

    assert blob_store.exists("signed-contracts", "offer-1/contract.pdf")
    assert blob_store.download("signed-contracts", "offer-1/contract.pdf") == b"%PDF-1.4"

    blob_store.remove("signed-contracts", "offer-1/contract.pdf")

    assert not blob_store.exists("signed-contracts", "offer-1/contract.pdf")
    with pytest.raises(NotFoundError):
        blob_store.download("signed-contracts", "offer-1/contract.pdf")


def test_paths_cannot_escape_bucket(blob_store):
    with pytest.raises(ValidationError):
        blob_store.upload("signed-contracts", "../../etc/passwd", b"x")


def test_signed_token_is_bound_to_bucket_and_path(blob_store):
    url = blob_store.create_signed_url("signed-contracts", "offer-1/contract.pdf")
    token = url.split("token=", 1)[1]

    assert url.startswith("https://app.example.com/storage/signed-contracts/offer-1/contract.pdf?token=")
    assert blob_store.verify_signed_token("signed-contracts", "offer-1/contract.pdf", token)
    assert not blob_store.verify_signed_token("signed-contracts", "offer-2/contract.pdf", token)
    assert not blob_store.verify_signed_token("resumes", "offer-1/contract.pdf", token)


def test_expired_signed_token_is_rejected(blob_store):
    url = blob_store.create_signed_url("signed-contracts", "offer-1/contract.pdf", ttl_seconds=-1)

    assert not blob_store.verify_signed_token("signed-contracts", "offer-1/contract.pdf", url.split("token=", 1)[1])


def test_bearer_tokens_are_not_blob_tokens(blob_store, settings):
    token = create_access_token({"sub": "profile-1"}, settings=settings)

    assert not blob_store.verify_signed_token("signed-contracts", "offer-1/contract.pdf", token)
