"""Follow edges between users and the feed built on top of them."""
import logging
from typing import List

from sqlalchemy import and_, delete, desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.post import Post
from app.models.social import UserFollow
from app.models.user import User
from app.services.catalog import post_load_options
from app.utils.exceptions import ConflictError, NotFoundError, ValidationError
from config import FEED_PAGE_SIZE

logger = logging.getLogger(__name__)


class SocialGraphService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_follower(self, username: str) -> User:
        if not username:
            raise ValidationError("Follower username is required")
        follower = await self.db.scalar(select(User).filter(User.username == username))
        if not follower:
            raise NotFoundError("Follower not found")
        return follower

    async def _get_edge(self, follower_id: int, followed_id: int):
        return await self.db.scalar(
            select(UserFollow).filter(
                and_(
                    UserFollow.follower_id == follower_id,
                    UserFollow.followed_id == followed_id
                )
            )
        )

    async def _shift_counters(self, follower_id: int, followed_id: int, delta: int):
        await self.db.execute(
            update(User)
            .where(User.id == follower_id)
            .values(following_count=User.following_count + delta)
        )
        await self.db.execute(
            update(User)
            .where(User.id == followed_id)
            .values(follower_count=User.follower_count + delta)
        )

    async def toggle_follow(self, follower_username: str, target_user_id: int) -> bool:
        """Follow ``target_user_id`` or, when already following, unfollow.

        The edge and both users' counters change in one transaction. Returns
        the new state.
        """
        follower = await self._get_follower(follower_username)
        target = await self.db.get(User, target_user_id)
        if not target:
            raise NotFoundError("Target user not found")
        if target.id == follower.id:
            raise ValidationError("You cannot follow yourself")

        existing_follow = await self._get_edge(follower.id, target.id)
        try:
            if existing_follow:
                result = await self.db.execute(
                    delete(UserFollow).where(
                        and_(
                            UserFollow.follower_id == follower.id,
                            UserFollow.followed_id == target.id
                        )
                    )
                )
                if result.rowcount != 1:
                    # another request removed the edge after we read it
                    await self.db.rollback()
                    raise ConflictError("Follow state changed concurrently, please retry")
                await self._shift_counters(follower.id, target.id, -1)
                is_following = False
            else:
                self.db.add(UserFollow(follower_id=follower.id, followed_id=target.id))
                await self.db.flush()
                await self._shift_counters(follower.id, target.id, 1)
                is_following = True
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Follow state changed concurrently, please retry")

        logger.info(
            f"{follower.username} {'followed' if is_following else 'unfollowed'} {target.username}"
        )
        return is_following

    async def follow_status(self, follower_username: str, target_user_id: int) -> bool:
        follower = await self._get_follower(follower_username)
        return await self._get_edge(follower.id, target_user_id) is not None

    async def feed(self, username: str, limit: int = FEED_PAGE_SIZE) -> List[Post]:
        user = await self.db.scalar(select(User).filter(User.username == username))
        if not user:
            raise NotFoundError("User not found")

        followed_ids = select(UserFollow.followed_id).filter(UserFollow.follower_id == user.id)
        result = await self.db.execute(
            select(Post)
            .options(*post_load_options())
            .filter(
                and_(
                    Post.author_id.in_(followed_ids),
                    Post.is_published.is_(True)
                )
            )
            .order_by(desc(Post.created_at), desc(Post.id))
            .limit(limit)
        )
        return list(result.scalars().all())
