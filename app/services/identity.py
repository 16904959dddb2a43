"""Signup, login, password reset and profile management."""
import logging
import secrets
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import and_, desc, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.social import UserFollow
from app.models.user import User
from app.utils.exceptions import AuthError, ConflictError, ExpiredOrInvalidError, NotFoundError, ValidationError
from app.utils.image_security import ImageSecurityUtils
from app.utils.security import get_password_hash, verify_password
from config import RESET_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "bio", "dob", "gender", "category", "country", "social_links", "profile_pic")
BIO_MAX_LENGTH = 500


class IdentityService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, username: str) -> User:
        user = await self.db.scalar(select(User).filter(User.username == username))
        if not user:
            raise NotFoundError("User not found")
        return user

    async def _find_by_login(self, email_or_username: str) -> Optional[User]:
        return await self.db.scalar(
            select(User).filter(
                or_(User.email == email_or_username, User.username == email_or_username)
            )
        )

    async def signup(
        self,
        full_name: str,
        username: str,
        email: str,
        password: str,
        confirm_password: str,
        dob: Optional[date] = None,
        gender: Optional[str] = None,
        bio: Optional[str] = None,
        profile_pic: Optional[str] = None,
        category: Optional[str] = None,
        country: Optional[str] = None,
        terms_accepted: bool = False,
    ) -> User:
        if password != confirm_password:
            raise ValidationError("Passwords do not match")
        if not password:
            raise ValidationError("Password is required")
        if not full_name or not username or not email:
            raise ValidationError("Full name, username and email are required")
        if terms_accepted is not True:
            raise ValidationError("Terms and conditions must be accepted")
        if bio and len(bio) > BIO_MAX_LENGTH:
            raise ValidationError(f"Bio must not exceed {BIO_MAX_LENGTH} characters")
        if profile_pic:
            profile_pic = ImageSecurityUtils.validate_image_source(profile_pic)

        existing_user = await self.db.scalar(
            select(User.id).filter(or_(User.email == email, User.username == username))
        )
        if existing_user:
            raise ConflictError("User already exists")

        user = User(
            full_name=full_name,
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            dob=dob,
            gender=gender,
            bio=bio,
            profile_pic=profile_pic,
            category=category,
            country=country,
            terms_accepted=True,
            is_active=True,
            follower_count=0,
            following_count=0,
            post_count=0,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("User already exists")

        logger.info(f"User registered: {user.username} (id={user.id})")
        return user

    async def login(self, email_or_username: str, password: str) -> dict:
        """Check credentials and return the public identity ``{username, email}``."""
        user = await self._find_by_login(email_or_username)
        if not user:
            logger.info("Login failed: unknown account")
            raise NotFoundError("User not found")
        if not verify_password(password, user.password_hash):
            logger.info(f"Login failed: wrong password for {user.username}")
            raise AuthError("Incorrect password")
        return {"username": user.username, "email": user.email}

    async def request_password_reset(self, email_or_username: str) -> Optional[str]:
        """Open a reset window for the matching account.

        Returns the new token, or ``None`` when nothing matched. Callers must
        answer identically in both cases.
        """
        user = await self._find_by_login(email_or_username)
        if not user:
            return None

        token = secrets.token_hex(32)
        user.reset_password_token = token
        user.reset_password_expires = datetime.now(timezone.utc) + timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES)
        await self.db.commit()
        logger.info(f"Password reset requested for user id={user.id}")
        return token

    async def reset_password(self, token: str, new_password: str, confirm_password: str):
        if not new_password or not confirm_password:
            raise ValidationError("Password is required")
        if new_password != confirm_password:
            raise ValidationError("Passwords do not match")
        if not token:
            raise ExpiredOrInvalidError()

        user = await self.db.scalar(
            select(User).filter(
                and_(
                    User.reset_password_token == token,
                    User.reset_password_expires > datetime.now(timezone.utc),
                )
            )
        )
        if not user:
            raise ExpiredOrInvalidError()

        user.password_hash = get_password_hash(new_password)
        user.reset_password_token = None
        user.reset_password_expires = None
        await self.db.commit()
        logger.info(f"Password reset completed for user id={user.id}")

    async def update_profile(self, username: str, /, **fields) -> User:
        user = await self.get_user(username)
        update_data = {key: value for key, value in fields.items() if key in PROFILE_FIELDS}

        if update_data.get("bio") and len(update_data["bio"]) > BIO_MAX_LENGTH:
            raise ValidationError(f"Bio must not exceed {BIO_MAX_LENGTH} characters")
        if update_data.get("profile_pic"):
            update_data["profile_pic"] = ImageSecurityUtils.validate_image_source(update_data["profile_pic"])
        if "full_name" in update_data and not update_data["full_name"]:
            raise ValidationError("Full name cannot be empty")

        for field, value in update_data.items():
            setattr(user, field, value)

        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def followers(self, user: User) -> List[User]:
        result = await self.db.execute(
            select(User)
            .join(UserFollow, UserFollow.follower_id == User.id)
            .filter(UserFollow.followed_id == user.id)
            .order_by(desc(UserFollow.created_at), desc(UserFollow.id))
        )
        return list(result.scalars().all())

    async def following(self, user: User) -> List[User]:
        result = await self.db.execute(
            select(User)
            .join(UserFollow, UserFollow.followed_id == User.id)
            .filter(UserFollow.follower_id == user.id)
            .order_by(desc(UserFollow.created_at), desc(UserFollow.id))
        )
        return list(result.scalars().all())

    async def search_users(self, q: Optional[str] = None, limit: int = 10) -> List[User]:
        query = select(User).filter(User.is_active.is_(True))
        if q and q.strip():
            term = q.strip()
            query = query.filter(
                or_(User.username.icontains(term, autoescape=True), User.full_name.icontains(term, autoescape=True))
            )
        result = await self.db.execute(query.order_by(desc(User.follower_count), User.id).limit(limit))
        return list(result.scalars().all())
