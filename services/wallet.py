import logging
import time
from typing import List

from fastapi import HTTPException, status
from pymongo import DESCENDING

from models.user import KycStatus, UserProfile
from models.wallet import (WalletTransaction, PendingDeposit, PendingWithdrawal, DepositRequest, WithdrawalRequest,
                           UserDetails)
from services.currency import MIN_DEPOSIT, MAX_TRANSFER, min_withdrawal
from services.database import get_db, run_transaction

logger = logging.getLogger(__name__)

KYC_REQUIRED = "You need to complete KYC verification before withdrawing funds."
AMOUNT_EXCEEDS_BALANCE = "Withdrawal amount cannot exceed your wallet balance"


def _millis() -> int:
    return int(time.time() * 1000)


def _user_details(user: UserProfile) -> UserDetails:
    return UserDetails(name=user.display_name or user.username or "Unknown", email=user.email)


async def request_deposit(user: UserProfile, request: DepositRequest) -> WalletTransaction:
    """Record a manual deposit request; the balance is credited only on admin approval."""
    if request.amount < MIN_DEPOSIT:
        raise HTTPException(status_code=400, detail=f"Minimum amount is {MIN_DEPOSIT}")
    if request.amount > MAX_TRANSFER:
        raise HTTPException(status_code=400, detail=f"Maximum amount is {MAX_TRANSFER:,}")
    if not request.payment_method.strip():
        raise HTTPException(status_code=400, detail="Please select a payment method")

    metadata = {"payment_method": request.payment_method, "gateway": "MANUAL_DEPOSIT"}
    deposit = PendingDeposit(
        user_id=user.id,
        amount=request.amount,
        currency=user.currency,
        upi_ref_id=request.upi_ref_id or f"MANUAL_{_millis()}",
        user_details=_user_details(user),
        metadata=metadata,
    )
    entry = WalletTransaction(
        user_id=user.id,
        type="deposit",
        amount=request.amount,
        currency=user.currency,
        payment_method=request.payment_method,
        description=f"Manual deposit via {request.payment_method}",
        reference=f"DEP_{_millis()}",
        metadata=metadata,
        pending_deposit_id=deposit.id,
    )

    async def record(session):
        await get_db().pending_deposits.insert_one(deposit.model_dump(by_alias=True), session=session)
        await get_db().transactions.insert_one(entry.model_dump(by_alias=True), session=session)

    await run_transaction(record)
    logger.info("Deposit request %s for %s %s by %s", deposit.id, request.amount, user.currency, user.id)
    return entry


def _bank_details(request: WithdrawalRequest) -> dict:
    fields = {
        "account_number": request.account_number,
        "account_name": request.account_name,
        "bank_name": request.bank_name,
        "ifsc_code": request.ifsc_code,
        "upi_id": request.upi_id,
        "swift_code": request.swift_code,
        "routing_number": request.routing_number,
    }
    return {key: value for key, value in fields.items() if value}


async def request_withdrawal(user: UserProfile, request: WithdrawalRequest) -> WalletTransaction:
    """Record a manual withdrawal request.

    Every rule is checked before anything is persisted. The balance is not touched;
    it is debited when an administrator approves the request.
    """
    minimum = min_withdrawal(user.currency)
    if request.amount < minimum:
        raise HTTPException(status_code=400, detail=f"Minimum withdrawal is {minimum}")
    if request.amount > MAX_TRANSFER:
        raise HTTPException(status_code=400, detail=f"Maximum withdrawal is {MAX_TRANSFER:,}")
    if user.kyc_status != KycStatus.APPROVED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=KYC_REQUIRED)
    if request.amount > user.wallet_balance:
        raise HTTPException(status_code=400, detail=AMOUNT_EXCEEDS_BALANCE)
    if not request.payment_method.strip():
        raise HTTPException(status_code=400, detail="Please select a payment method")

    bank_details = _bank_details(request)
    withdrawal = PendingWithdrawal(
        user_id=user.id,
        amount=request.amount,
        currency=user.currency,
        user_details=_user_details(user),
        bank_details=bank_details,
        payment_method=request.payment_method,
    )
    account = request.upi_id or request.account_number
    entry = WalletTransaction(
        user_id=user.id,
        type="withdrawal",
        amount=request.amount,
        currency=user.currency,
        payment_method=request.payment_method,
        description=f"Withdrawal request to {request.payment_method}: {account}",
        reference=f"WTH_{_millis()}",
        metadata={"bank_details": bank_details},
        pending_withdrawal_id=withdrawal.id,
        bank_details=bank_details,
    )

    async def record(session):
        await get_db().pending_withdrawals.insert_one(withdrawal.model_dump(by_alias=True), session=session)
        await get_db().transactions.insert_one(entry.model_dump(by_alias=True), session=session)

    await run_transaction(record)
    logger.info("Withdrawal request %s for %s %s by %s", withdrawal.id, request.amount, user.currency, user.id)
    return entry


async def get_user_transactions(user_id: str) -> List[WalletTransaction]:
    docs = await get_db().transactions.find({"user_id": user_id}).sort("created_at", DESCENDING).to_list(length=None)
    transactions = []
    for doc in docs:
        doc["status"] = (doc.get("status") or "PENDING").upper()
        transactions.append(WalletTransaction(**doc))
    return transactions


async def get_wallet_balance(user_id: str) -> float:
    user = await get_db().users.find_one({"_id": user_id}, {"wallet_balance": 1})
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user.get("wallet_balance", 0)
