"""Administrative reads and cascading deletes."""
import logging
import secrets
from typing import List

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.post import Comment, Post
from app.models.social import Bookmark, PostLike, UserFollow
from app.models.user import User
from app.services.catalog import CatalogService, load_post, purge_posts
from app.utils.exceptions import AuthError, NotFoundError
from app.utils.security import create_admin_token
from config import ADMIN_EMAIL, ADMIN_PASSWORD

logger = logging.getLogger(__name__)


def authenticate_admin(email: str, password: str) -> str:
    """Check the configured admin credentials and issue a role token."""
    email_ok = secrets.compare_digest(email.encode(), ADMIN_EMAIL.encode())
    password_ok = secrets.compare_digest(password.encode(), ADMIN_PASSWORD.encode())
    if not (email_ok and password_ok):
        logger.warning("Admin login failed")
        raise AuthError("Invalid admin credentials")
    logger.info(f"Admin login: {email}")
    return create_admin_token(email)


class ModerationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_users(self) -> List[User]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
        return list(result.scalars().all())

    async def delete_user(self, user_id: int):
        """Remove a user and everything that points at them.

        Runs as one transaction: counters of surviving users and posts are
        adjusted first, then the user's edges, likes, bookmarks and comments
        are removed, then their posts (with everything attached), then the user.
        """
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        post_ids = list((await self.db.scalars(select(Post.id).filter(Post.author_id == user.id))).all())

        try:
            followed_ids = select(UserFollow.followed_id).filter(UserFollow.follower_id == user.id)
            follower_ids = select(UserFollow.follower_id).filter(UserFollow.followed_id == user.id)
            await self.db.execute(
                update(User)
                .where(User.id.in_(followed_ids))
                .values(follower_count=User.follower_count - 1)
                .execution_options(synchronize_session="fetch")
            )
            await self.db.execute(
                update(User)
                .where(User.id.in_(follower_ids))
                .values(following_count=User.following_count - 1)
                .execution_options(synchronize_session="fetch")
            )

            bookmarked_ids = select(Bookmark.post_id).filter(Bookmark.user_id == user.id)
            await self.db.execute(
                update(Post)
                .where(Post.id.in_(bookmarked_ids))
                .values(bookmarks_count=Post.bookmarks_count - 1)
                .execution_options(synchronize_session="fetch")
            )

            await self.db.execute(
                delete(UserFollow).where(
                    or_(UserFollow.follower_id == user.id, UserFollow.followed_id == user.id)
                )
            )
            await self.db.execute(delete(Bookmark).where(Bookmark.user_id == user.id))
            await self.db.execute(delete(PostLike).where(PostLike.user_id == user.id))
            await self.db.execute(delete(Comment).where(Comment.author_id == user.id))

            await purge_posts(self.db, post_ids)
            await self.db.execute(delete(User).where(User.id == user.id))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"User {user_id} deleted with {len(post_ids)} posts")

    async def list_posts(self, skip: int = 0, limit: int = 100) -> List[Post]:
        posts, _ = await CatalogService(self.db).list_posts(skip=skip, limit=limit, include_unpublished=True)
        return posts

    async def delete_post(self, post_id: int):
        post_exists = await self.db.scalar(select(Post.id).filter(Post.id == post_id))
        if not post_exists:
            raise NotFoundError("Post not found")
        try:
            await purge_posts(self.db, [post_id])
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"Post {post_id} deleted by admin")

    async def set_published(self, post_id: int, is_published: bool) -> Post:
        post = await self.db.scalar(select(Post).filter(Post.id == post_id))
        if not post:
            raise NotFoundError("Post not found")
        post.is_published = is_published
        await self.db.commit()
        logger.info(f"Post {post_id} {'published' if is_published else 'unpublished'} by admin")
        return await load_post(self.db, post_id)

    async def summary(self) -> dict:
        return {
            "users": await self.db.scalar(select(func.count()).select_from(User)),
            "posts": await self.db.scalar(select(func.count()).select_from(Post)),
            "published_posts": await self.db.scalar(
                select(func.count()).select_from(Post).filter(Post.is_published.is_(True))
            ),
            "comments": await self.db.scalar(select(func.count()).select_from(Comment)),
            "likes": await self.db.scalar(select(func.count()).select_from(PostLike)),
        }
