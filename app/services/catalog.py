"""Post authoring, listing, search and recommendations."""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, delete, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.post import Category, Comment, Post, PostTag
from app.models.social import Bookmark, PostLike
from app.models.user import User
from app.utils.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from app.utils.image_security import ImageSecurityUtils
from app.utils.text import normalize_tags, reading_time, slugify
from config import RECOMMENDATION_LIMIT

logger = logging.getLogger(__name__)

VALID_CATEGORIES = [category.value for category in Category]
SORT_OPTIONS = ("latest", "trending", "popular")


def post_load_options():
    """Eager loads needed to render a post with its author, tags, likes and comments."""
    return (
        selectinload(Post.author),
        selectinload(Post.tag_links),
        selectinload(Post.likes).selectinload(PostLike.user),
        selectinload(Post.comments).selectinload(Comment.author),
    )


def post_lookup(key):
    """Match a post by numeric id or by slug."""
    key = str(key).strip()
    if key.isdigit():
        return Post.id == int(key)
    return Post.slug == key


def parse_category(value) -> Category:
    if isinstance(value, Category):
        return value
    try:
        return Category(str(value).strip().lower())
    except ValueError:
        raise ValidationError("Invalid category. Must be one of: " + ", ".join(VALID_CATEGORIES))


def like_count_column():
    return (
        select(func.count(PostLike.id))
        .where(PostLike.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )


async def load_post(db: AsyncSession, key, published_only: bool = False) -> Post:
    query = (
        select(Post)
        .options(*post_load_options())
        .filter(post_lookup(key))
        .execution_options(populate_existing=True)
    )
    if published_only:
        query = query.filter(Post.is_published.is_(True))
    post = await db.scalar(query)
    if not post:
        raise NotFoundError("Post not found")
    return post


async def purge_posts(db: AsyncSession, post_ids: List[int]):
    """Delete posts together with every row that references them.

    Tags, comments, likes and bookmarks on the posts go first, then the posts,
    and each author's ``post_count`` is lowered by the number of posts removed.
    The caller owns the transaction.
    """
    if not post_ids:
        return

    author_counts = await db.execute(
        select(Post.author_id, func.count(Post.id))
        .filter(Post.id.in_(post_ids))
        .group_by(Post.author_id)
    )
    for author_id, removed in author_counts.all():
        await db.execute(
            update(User)
            .where(User.id == author_id)
            .values(post_count=User.post_count - removed)
        )

    await db.execute(delete(PostTag).where(PostTag.post_id.in_(post_ids)))
    await db.execute(delete(Comment).where(Comment.post_id.in_(post_ids)))
    await db.execute(delete(PostLike).where(PostLike.post_id.in_(post_ids)))
    await db.execute(delete(Bookmark).where(Bookmark.post_id.in_(post_ids)))
    await db.execute(delete(Post).where(Post.id.in_(post_ids)))


class CatalogService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_author(self, username: str) -> User:
        author = await self.db.scalar(select(User).filter(User.username == username))
        if not author:
            raise NotFoundError("Author not found")
        return author

    async def _unique_slug(self, title: str) -> str:
        while True:
            slug = slugify(title)
            existing = await self.db.scalar(select(Post.id).filter(Post.slug == slug))
            if not existing:
                return slug

    async def _replace_tags(self, post_id: int, tags):
        await self.db.execute(delete(PostTag).where(PostTag.post_id == post_id))
        for position, name in enumerate(normalize_tags(tags)):
            self.db.add(PostTag(post_id=post_id, position=position, name=name))

    async def create_post(
        self,
        title: str,
        content: str,
        category,
        author_username: str,
        image: Optional[str] = None,
        tags: Optional[List[str]] = None,
        is_published: bool = True,
    ) -> Post:
        if not title or not title.strip() or not content or not content.strip() or not category or not author_username:
            raise ValidationError("Title, content, category, and author are required")
        category = parse_category(category)
        author = await self._get_author(author_username)
        if image:
            image = ImageSecurityUtils.validate_image_source(image)

        post = Post(
            title=title.strip(),
            slug=await self._unique_slug(title),
            content=content,
            category=category,
            image=image or None,
            author_id=author.id,
            is_published=is_published,
            view_count=0,
            share_count=0,
            bookmarks_count=0,
            reading_time=reading_time(content),
        )
        self.db.add(post)
        try:
            await self.db.flush()
            await self._replace_tags(post.id, tags)
            await self.db.execute(
                update(User).where(User.id == author.id).values(post_count=User.post_count + 1)
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("A post with this slug already exists")

        logger.info(f"Post {post.id} created by {author.username} in {category.value}")
        return await load_post(self.db, post.id)

    async def get_post(self, key, published_only: bool = False) -> Post:
        return await load_post(self.db, key, published_only=published_only)

    async def _get_owned_post(self, post_id: int, acting_username: str, action: str) -> Post:
        post = await self.db.scalar(select(Post).filter(Post.id == post_id))
        if not post:
            raise NotFoundError("Post not found")
        actor = await self.db.scalar(select(User).filter(User.username == acting_username))
        if not actor or post.author_id != actor.id:
            raise PermissionDeniedError(f"You can only {action} your own posts")
        return post

    async def update_post(self, post_id: int, acting_username: str, **fields) -> Post:
        """Apply the given fields to an owned post.

        Every field is validated before the post is touched, so a rejected
        update leaves the loaded object unchanged.
        """
        post = await self._get_owned_post(post_id, acting_username, "update")

        changes = {}
        if fields.get("title") is not None:
            title = fields["title"].strip()
            if not title:
                raise ValidationError("Title cannot be empty")
            changes["title"] = title
        if fields.get("content") is not None:
            if not fields["content"].strip():
                raise ValidationError("Content cannot be empty")
            changes["content"] = fields["content"]
            changes["reading_time"] = reading_time(fields["content"])
        if fields.get("category") is not None:
            changes["category"] = parse_category(fields["category"])
        if "image" in fields:
            image = fields["image"]
            changes["image"] = ImageSecurityUtils.validate_image_source(image) if image else None
        if fields.get("is_published") is not None:
            changes["is_published"] = fields["is_published"]

        if "title" in changes and changes["title"] != post.title:
            changes["slug"] = await self._unique_slug(changes["title"])
        for field, value in changes.items():
            setattr(post, field, value)

        try:
            if fields.get("tags") is not None:
                await self._replace_tags(post.id, fields["tags"])
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("A post with this slug already exists")

        return await load_post(self.db, post.id)

    async def delete_post(self, post_id: int, acting_username: str):
        post = await self._get_owned_post(post_id, acting_username, "delete")
        await purge_posts(self.db, [post.id])
        await self.db.commit()
        logger.info(f"Post {post_id} deleted by its author {acting_username}")

    def _filtered_query(self, q=None, tag=None, category=None, include_unpublished=False):
        query = select(Post)
        if not include_unpublished:
            query = query.filter(Post.is_published.is_(True))
        if category:
            query = query.filter(Post.category == parse_category(category))
        if tag and tag.strip():
            query = query.filter(Post.tag_links.any(func.lower(PostTag.name) == tag.strip().lower()))
        if q and q.strip():
            term = q.strip()
            query = query.filter(
                or_(
                    Post.title.icontains(term, autoescape=True),
                    Post.content.icontains(term, autoescape=True),
                    Post.tag_links.any(PostTag.name.icontains(term, autoescape=True)),
                )
            )
        return query

    async def list_posts(
        self,
        q: Optional[str] = None,
        tag: Optional[str] = None,
        category: Optional[str] = None,
        sort: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
        include_unpublished: bool = False,
    ) -> Tuple[List[Post], int]:
        sort = sort or "latest"
        if sort not in SORT_OPTIONS:
            raise ValidationError("Invalid sort parameter. Must be one of: " + ", ".join(SORT_OPTIONS))

        query = self._filtered_query(q, tag, category, include_unpublished)
        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))

        if sort == "trending":
            ordering = (desc(Post.view_count), desc(like_count_column()), desc(Post.created_at), desc(Post.id))
        elif sort == "popular":
            ordering = (desc(Post.share_count), desc(like_count_column()), desc(Post.created_at), desc(Post.id))
        else:
            ordering = (desc(Post.created_at), desc(Post.id))

        result = await self.db.execute(
            query.options(*post_load_options()).order_by(*ordering).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def recommendations(self, post_id: int, limit: int = RECOMMENDATION_LIMIT) -> List[Post]:
        source = await self.db.scalar(select(Post).filter(Post.id == post_id))
        if not source:
            raise NotFoundError("Post not found")

        result = await self.db.execute(
            select(Post)
            .options(*post_load_options())
            .filter(
                and_(
                    Post.category == source.category,
                    Post.id != source.id,
                    Post.is_published.is_(True),
                )
            )
            .order_by(desc(Post.created_at), desc(Post.id))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def user_posts(self, username: str, limit: Optional[int] = None) -> List[Post]:
        author = await self.db.scalar(select(User).filter(User.username == username))
        if not author:
            raise NotFoundError("User not found")

        query = (
            select(Post)
            .options(*post_load_options())
            .filter(and_(Post.author_id == author.id, Post.is_published.is_(True)))
            .order_by(desc(Post.created_at), desc(Post.id))
        )
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
