from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from models.user import UserProfile
from models.wallet import DepositRequest, WithdrawalRequest
from services.auth import get_current_user
from services.wallet import request_deposit, request_withdrawal

router = APIRouter(prefix="/wallet")


@router.post("/deposits")
async def deposit(request: DepositRequest, user: UserProfile = Depends(get_current_user)):
    entry = await request_deposit(user, request)
    return JSONResponse(status_code=201, content={
        "message": "Deposit request submitted for admin approval",
        "transaction": jsonable_encoder(entry.model_dump(by_alias=True)),
    })


@router.post("/withdrawals")
async def withdraw(request: WithdrawalRequest, user: UserProfile = Depends(get_current_user)):
    entry = await request_withdrawal(user, request)
    return JSONResponse(status_code=201, content={
        "message": "Withdrawal request submitted for admin approval",
        "transaction": jsonable_encoder(entry.model_dump(by_alias=True)),
    })
