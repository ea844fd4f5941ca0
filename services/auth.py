import logging
import re
import secrets
import smtplib
from datetime import timedelta, datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from core.config import SMTP_SERVER, SMTP_PORT, SMTP_USERNAME, SMTP_PASSWORD, EMAIL_FROM, EMAIL_SUBJECT_PASSWORD_RESET, \
    EMAIL_SUBJECT_OTP, SECRET_KEY, ALGORITHM, SITE_DOMAIN, OTP_TTL_SECONDS
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from models.user import UserProfile
from .database import as_utc, get_db
from .user import get_user_by_id, get_user_by_email

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# OAuth2 setup
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


async def get_user_from_token(token: str) -> Optional[UserProfile]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None:
            return None
    except JWTError:
        return None
    return await get_user_by_id(user_id)


async def get_current_user(token: str = Depends(oauth2_scheme)) -> UserProfile:
    user = await get_user_from_token(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_admin_user(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


async def authenticate_user(email: str, password: str):
    user = await get_user_by_email(email)
    if not user or not user.password or not verify_password(password, user.password):
        return False
    return user


def create_reset_token(user_id: str):
    expire = datetime.now(timezone.utc) + timedelta(hours=1)
    to_encode = {"exp": expire, "sub": user_id, "purpose": "password_reset"}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_reset_token(token: str):
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None or payload.get("purpose") != "password_reset":
            return None
        return user_id
    except JWTError:
        return None


async def update_user_password(user_id: str, new_password: str):
    hashed_password = get_password_hash(new_password)
    await get_db().users.update_one(
        {"_id": user_id},
        {"$set": {"password": hashed_password, "updated_at": datetime.now(timezone.utc)}},
    )


def _deliver(email: str, message: MIMEMultipart):
    with smtplib.SMTP(SMTP_SERVER, SMTP_PORT) as server:
        server.starttls()
        server.login(SMTP_USERNAME, SMTP_PASSWORD)
        server.sendmail(EMAIL_FROM, email, message.as_string())


async def send_email(email: str, subject: str, text: str, html: str):
    if not (SMTP_SERVER and SMTP_USERNAME and SMTP_PASSWORD):
        logger.warning("SMTP not configured, email to %s not sent: %s", email, text)
        return

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = EMAIL_FROM
    message["To"] = email
    message.attach(MIMEText(text, "plain"))
    message.attach(MIMEText(html, "html"))

    await run_in_threadpool(_deliver, email, message)


async def send_password_reset_email(email: str, token: str):
    reset_link = f"{SITE_DOMAIN}/reset-password?token={token}"
    text = f"Please click the link to reset your password: {reset_link}"
    html = f"""\
    <html>
      <body>
        <p>Please click the link to reset your password:<br>
           <a href="{reset_link}">Reset Password</a>
           If you did not request a password reset, please ignore this email.
           If you cannot see the link, please copy and paste the following URL into your browser:<br>
              {reset_link}
        </p>
      </body>
    </html>
    """
    await send_email(email, EMAIL_SUBJECT_PASSWORD_RESET, text, html)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def generate_otp() -> str:
    return str(100000 + secrets.randbelow(900000))


async def issue_otp(email: str, purpose: str = "registration") -> int:
    """Store a fresh code for ``email`` (replacing any earlier one) and mail it.

    Returns the number of seconds the code stays valid.
    """
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Invalid email format")

    otp = generate_otp()
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=OTP_TTL_SECONDS)
    await get_db().email_otps.update_one(
        {"email": email},
        {"$set": {"email": email, "otp": otp, "purpose": purpose, "expires_at": expires_at}},
        upsert=True,
    )

    text = f"Your Netwin verification code for {purpose} is {otp}. It expires in {OTP_TTL_SECONDS // 60} minutes."
    html = f"""\
    <html>
      <body>
        <p>Your Netwin verification code for {purpose} is:</p>
        <h2>{otp}</h2>
        <p>It expires in {OTP_TTL_SECONDS // 60} minutes. If you did not request it, please ignore this email.</p>
      </body>
    </html>
    """
    await send_email(email, EMAIL_SUBJECT_OTP, text, html)
    return OTP_TTL_SECONDS


async def verify_otp(email: str, otp: str):
    stored = await get_db().email_otps.find_one({"email": email})
    if not stored:
        raise HTTPException(status_code=400, detail="OTP not found or expired")

    if datetime.now(timezone.utc) > as_utc(stored["expires_at"]):
        await get_db().email_otps.delete_one({"email": email})
        raise HTTPException(status_code=400, detail="OTP has expired")

    if stored["otp"] != otp:
        raise HTTPException(status_code=400, detail="Invalid OTP")

    await get_db().email_otps.delete_one({"email": email})
    return True
