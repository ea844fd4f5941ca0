from fastapi import APIRouter, Depends, HTTPException, status

from models.user import UserProfile, PublicProfile, ProfileUpdate
from services.auth import get_current_user
from services.user import get_usernames_starting_with, update_profile
from services.wallet import get_user_transactions, get_wallet_balance

router = APIRouter(prefix="/users")


def ensure_owner_or_admin(uid: str, user: UserProfile):
    if user.id != uid and not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed")


@router.get("/me", response_model=PublicProfile)
async def read_users_me(user: UserProfile = Depends(get_current_user)):
    return PublicProfile(**user.model_dump(by_alias=True))


@router.get("/search")
async def search_usernames(query: str, user: UserProfile = Depends(get_current_user)):
    return await get_usernames_starting_with(query)


@router.patch("/{uid}", response_model=PublicProfile)
async def update_user(uid: str, updates: ProfileUpdate, user: UserProfile = Depends(get_current_user)):
    updated = await update_profile(uid, updates, requester=user)
    return PublicProfile(**updated.model_dump(by_alias=True))


@router.get("/{uid}/transactions")
async def user_transactions(uid: str, user: UserProfile = Depends(get_current_user)):
    ensure_owner_or_admin(uid, user)
    transactions = await get_user_transactions(uid)
    return {"transactions": [transaction.model_dump(by_alias=True) for transaction in transactions]}


@router.get("/{uid}/wallet")
async def user_wallet(uid: str, user: UserProfile = Depends(get_current_user)):
    ensure_owner_or_admin(uid, user)
    return {"wallet_balance": await get_wallet_balance(uid)}
