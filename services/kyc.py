import logging
from datetime import datetime, timezone
from typing import List

from fastapi import HTTPException
from pymongo import DESCENDING

from models.kyc import KycDocument, KycSubmission, KycOverview
from models.user import KycStatus, UserProfile
from services.database import get_db
from services.storage import upload_image

logger = logging.getLogger(__name__)

KYC_DOCUMENT_TYPES = {
    "India": ["id-proof", "address-proof", "pan-card"],
    "Nigeria": ["id-proof", "address-proof"],
    "USA": ["id-proof", "address-proof"],
}
DEFAULT_KYC_DOCUMENT_TYPES = ["id-proof", "address-proof"]

# A rejected submission may be replaced; pending and approved ones may not
SUBMITTABLE_STATUSES = {KycStatus.NOT_SUBMITTED.value, KycStatus.REJECTED.value}


def required_documents(country: str) -> List[str]:
    return KYC_DOCUMENT_TYPES.get(country, DEFAULT_KYC_DOCUMENT_TYPES)


def can_submit(kyc_status: str) -> bool:
    return kyc_status in SUBMITTABLE_STATUSES


async def get_kyc_documents(user_id: str) -> List[KycDocument]:
    docs = await get_db().kyc_documents.find({"user_id": user_id}).sort("created_at", DESCENDING).to_list(length=None)
    return [KycDocument(**doc) for doc in docs]


async def get_kyc_overview(user: UserProfile) -> KycOverview:
    return KycOverview(
        status=user.kyc_status,
        can_submit=can_submit(user.kyc_status),
        required_documents=required_documents(user.country),
        documents=await get_kyc_documents(user.id),
    )


async def submit_kyc_document(user: UserProfile, submission: KycSubmission) -> KycDocument:
    if not can_submit(user.kyc_status):
        raise HTTPException(status_code=400, detail=f"KYC is already {user.kyc_status.lower()}")
    if submission.document_type not in required_documents(user.country):
        raise HTTPException(status_code=400, detail="Unsupported document type for your country")

    folder = f"kyc/{user.id}"
    front_url = await upload_image(submission.front_image, folder, "front")
    back_url = await upload_image(submission.back_image, folder, "back") if submission.back_image else ""
    selfie_url = await upload_image(submission.selfie, folder, "selfie") if submission.selfie else ""

    document = KycDocument(
        user_id=user.id,
        document_type=submission.document_type,
        document_number=submission.document_number,
        front_image_url=front_url,
        back_image_url=back_url,
        selfie_url=selfie_url,
    )
    await get_db().kyc_documents.insert_one(document.model_dump(by_alias=True))
    await get_db().users.update_one(
        {"_id": user.id},
        {"$set": {"kyc_status": KycStatus.PENDING.value, "updated_at": datetime.now(timezone.utc)}},
    )
    logger.info("KYC document %s submitted by %s", document.id, user.id)
    return document
