from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from models.kyc import KycSubmission
from models.user import UserProfile
from services.auth import get_current_user
from services.kyc import get_kyc_overview, submit_kyc_document

router = APIRouter(prefix="/kyc")


@router.get("")
async def kyc_overview(user: UserProfile = Depends(get_current_user)):
    overview = await get_kyc_overview(user)
    return jsonable_encoder(overview.model_dump(by_alias=True))


@router.post("")
async def submit_kyc(submission: KycSubmission, user: UserProfile = Depends(get_current_user)):
    document = await submit_kyc_document(user, submission)
    return JSONResponse(status_code=201, content={
        "message": "Your KYC documents have been submitted for verification.",
        "document": jsonable_encoder(document.model_dump(by_alias=True)),
    })
