"""Likes, comments, bookmarks and view/share counters."""
import logging
from typing import List

from sqlalchemy import and_, delete, desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.post import Comment, Post
from app.models.social import Bookmark, PostLike
from app.models.user import User
from app.services.catalog import load_post, post_load_options, post_lookup
from app.utils.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class EngagementService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_post(self, post_id: int) -> Post:
        post = await self.db.scalar(select(Post).filter(Post.id == post_id))
        if not post:
            raise NotFoundError("Post not found")
        return post

    async def _get_user(self, username: str, missing: str = "User not found") -> User:
        user = await self.db.scalar(select(User).filter(User.username == username))
        if not user:
            raise NotFoundError(missing)
        return user

    async def toggle_like(self, post_id: int, username: str) -> Post:
        """Add the user to the post's likes, or remove them if already there."""
        post = await self._get_post(post_id)
        user = await self._get_user(username)

        existing_like = await self.db.scalar(
            select(PostLike).filter(
                and_(PostLike.user_id == user.id, PostLike.post_id == post.id)
            )
        )
        try:
            if existing_like:
                await self.db.delete(existing_like)
            else:
                self.db.add(PostLike(user_id=user.id, post_id=post.id))
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Like state changed concurrently, please retry")

        return await load_post(self.db, post.id)

    async def add_comment(self, post_id: int, content: str, author_username: str) -> Post:
        if not content or not content.strip() or not author_username:
            raise ValidationError("Content and author are required")

        author = await self._get_user(author_username, missing="Author not found")
        post = await self._get_post(post_id)

        comment = Comment(content=content.strip(), author_id=author.id, post_id=post.id)
        self.db.add(comment)
        await self.db.commit()
        logger.info(f"Comment {comment.id} added to post {post.id} by {author.username}")

        return await load_post(self.db, post.id)

    async def list_comments(self, post_id: int) -> List[Comment]:
        await self._get_post(post_id)
        result = await self.db.execute(
            select(Comment)
            .options(selectinload(Comment.author))
            .filter(Comment.post_id == post_id)
            .order_by(desc(Comment.created_at), desc(Comment.id))
        )
        return list(result.scalars().all())

    async def _get_bookmark(self, user_id: int, post_id: int):
        return await self.db.scalar(
            select(Bookmark).filter(
                and_(Bookmark.user_id == user_id, Bookmark.post_id == post_id)
            )
        )

    async def toggle_bookmark(self, post_id: int, username: str) -> bool:
        """Flip the bookmark; the join row and ``bookmarks_count`` move together."""
        user = await self._get_user(username)
        post = await self._get_post(post_id)

        existing_bookmark = await self._get_bookmark(user.id, post.id)
        try:
            if existing_bookmark:
                result = await self.db.execute(
                    delete(Bookmark).where(
                        and_(Bookmark.user_id == user.id, Bookmark.post_id == post.id)
                    )
                )
                if result.rowcount != 1:
                    # another request removed the bookmark after we read it
                    await self.db.rollback()
                    raise ConflictError("Bookmark state changed concurrently, please retry")
                delta = -1
            else:
                self.db.add(Bookmark(user_id=user.id, post_id=post.id))
                await self.db.flush()
                delta = 1
            await self.db.execute(
                update(Post)
                .where(Post.id == post.id)
                .values(bookmarks_count=Post.bookmarks_count + delta)
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Bookmark state changed concurrently, please retry")

        return delta > 0

    async def reading_list(self, username: str) -> List[Post]:
        """Bookmarked posts that are still published, most recently bookmarked first."""
        user = await self._get_user(username)
        result = await self.db.execute(
            select(Post)
            .join(Bookmark, and_(Bookmark.post_id == Post.id, Bookmark.user_id == user.id))
            .options(*post_load_options())
            .filter(Post.is_published.is_(True))
            .order_by(desc(Bookmark.created_at), desc(Bookmark.id))
        )
        return list(result.scalars().all())

    async def _increment(self, key, column) -> int:
        post_id = await self.db.scalar(select(Post.id).filter(post_lookup(key)))
        if post_id is None:
            raise NotFoundError("Post not found")
        await self.db.execute(
            update(Post).where(Post.id == post_id).values({column: column + 1})
        )
        await self.db.commit()
        return await self.db.scalar(select(column).filter(Post.id == post_id))

    async def increment_view(self, key) -> int:
        return await self._increment(key, Post.view_count)

    async def increment_share(self, key) -> int:
        return await self._increment(key, Post.share_count)
