from datetime import datetime, timedelta, timezone
from typing import Optional

import logging
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
import jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.models.user import User
from app.schemas.user import TokenData
from app.utils.exceptions import CREDENTIALS_EXCEPTION, USER_NOT_FOUND_EXCEPTION, ADMIN_FORBIDDEN_EXCEPTION
from database import get_db
from config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, ADMIN_TOKEN_EXPIRE_MINUTES, BCRYPT_ROUNDS

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")
logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password):
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt

def create_admin_token(email: str):
    return create_access_token(
        {"role": ADMIN_ROLE, "email": email},
        expires_delta=timedelta(minutes=ADMIN_TOKEN_EXPIRE_MINUTES),
    )

def decode_access_token(token: str) -> TokenData:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        raise CREDENTIALS_EXCEPTION
    return TokenData(username=payload.get("sub"), role=payload.get("role"), email=payload.get("email"))

async def get_current_user(token: str = Depends(oauth2_scheme), db: AsyncSession = Depends(get_db)):
    token_data = decode_access_token(token)
    if token_data.username is None:
        raise CREDENTIALS_EXCEPTION
    user = await db.scalar(select(User).filter(User.username == token_data.username))
    if user is None:
        raise USER_NOT_FOUND_EXCEPTION
    return user

async def get_current_admin(token: str = Depends(oauth2_scheme)) -> TokenData:
    """Bearer gate for the moderation routes: the token must carry the admin role claim."""
    token_data = decode_access_token(token)
    if token_data.role != ADMIN_ROLE:
        logger.warning("Rejected non-admin token on admin route")
        raise ADMIN_FORBIDDEN_EXCEPTION
    return token_data
