from datetime import timedelta

from core.config import ACCESS_TOKEN_EXPIRE_MINUTES, GOOGLE_CLIENT_ID
from fastapi import APIRouter, HTTPException, status
from google.auth.transport.requests import Request
from google.oauth2 import id_token
from pydantic import BaseModel, Field

from models.user import UserProfile, LoginRequest, UserCreate
from services.auth import get_password_hash, authenticate_user, create_access_token, send_password_reset_email, \
    create_reset_token, verify_reset_token, update_user_password, issue_otp, verify_otp
from services.currency import currency_for_country
from services.user import create_user, get_user, get_user_by_email, unique_username

router = APIRouter(prefix="/auth")


def issue_token(user: UserProfile):
    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.id}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer", "user_id": user.id, "username": user.username}


class GoogleLoginRequest(BaseModel):
    accessToken: str


@router.post("/google-login")
async def google_login(request: GoogleLoginRequest):
    id_token_str = request.accessToken
    if not id_token_str:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid Google token str")

    try:
        id_info = id_token.verify_oauth2_token(id_token_str, Request(), GOOGLE_CLIENT_ID)
    except ValueError as error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid Google token {error}")

    email = id_info.get("email")
    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid Google email")

    user = await get_user_by_email(email)
    if not user:
        username = await unique_username(email.split('@')[0])
        user = await create_user(UserProfile(
            email=email,
            username=username,
            display_name=id_info.get("name"),
        ))
    return issue_token(user)


@router.post("/register")
async def register_user(user: UserCreate):
    if await get_user(user.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Username '{user.username}' is already taken.",
        )
    if await get_user_by_email(user.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="auth/email-already-in-use")

    profile = UserProfile(
        email=user.email,
        username=user.username,
        password=get_password_hash(user.password),
        display_name=user.display_name,
        game_id=user.game_id,
        country=user.country,
        currency=currency_for_country(user.country),
    )
    await create_user(profile)
    return issue_token(profile)


@router.post("/token")
async def login_for_access_token(login_request: LoginRequest):
    user = await authenticate_user(login_request.email, login_request.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="auth/wrong-password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return issue_token(user)


class PasswordRecoveryRequest(BaseModel):
    email: str


class PasswordResetRequest(BaseModel):
    token: str
    new_password: str = Field(min_length=6)


@router.post("/password-recovery")
async def password_recovery(request: PasswordRecoveryRequest):
    user = await get_user_by_email(request.email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    token = create_reset_token(user.id)
    await send_password_reset_email(user.email, token)
    return {"message": "Password recovery email sent"}


@router.post("/password-reset")
async def password_reset(request: PasswordResetRequest):
    user_id = verify_reset_token(request.token)
    if not user_id:
        raise HTTPException(status_code=400, detail="Invalid or expired token")
    await update_user_password(user_id, request.new_password)
    return {"message": "Password has been reset"}


class SendOtpRequest(BaseModel):
    email: str = ""
    purpose: str = "registration"


class VerifyOtpRequest(BaseModel):
    email: str = ""
    otp: str = ""


@router.post("/send-otp")
async def send_otp(request: SendOtpRequest):
    if not request.email:
        raise HTTPException(status_code=400, detail="Email is required")
    expires = await issue_otp(request.email, request.purpose)
    return {"message": "OTP sent successfully", "expires": expires}


@router.post("/verify-otp")
async def verify_otp_endpoint(request: VerifyOtpRequest):
    if not request.email or not request.otp:
        raise HTTPException(status_code=400, detail="Email and OTP are required")
    await verify_otp(request.email, request.otp)
    return {"message": "OTP verified successfully", "verified": True}
