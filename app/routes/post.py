from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from starlette import status

from app.flood_protection import FloodProtection
from app.models.post import Comment, Post
from app.models.user import User
from app.schemas.admin import MessageResponse
from app.schemas.post import (
    PostCreate, PostUpdate, PostResponse, PostSummary, PostListResponse,
    CommentCreate, CommentResponse
)
from app.schemas.social import ViewCountResponse, ShareCountResponse
from app.services.catalog import CatalogService
from app.services.engagement import EngagementService
from app.utils.exceptions import BlogError
from dependencies import get_current_user, get_db, logger
from config import POST_RATE_LIMIT, POST_RATE_WINDOW, COMMENT_RATE_LIMIT, COMMENT_RATE_WINDOW

router = APIRouter()
post_flood_protection = FloodProtection(Post, Post.author_id, max_items=POST_RATE_LIMIT, time_window=POST_RATE_WINDOW, label="post")
comment_flood_protection = FloodProtection(Comment, Comment.author_id, max_items=COMMENT_RATE_LIMIT, time_window=COMMENT_RATE_WINDOW, label="comment")

@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post: PostCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a new post with flood protection and image validation."""
    try:
        await post_flood_protection.check_rate_limit(current_user.id, db)

        db_post = await CatalogService(db).create_post(
            title=post.title,
            content=post.content,
            category=post.category,
            author_username=current_user.username,
            image=post.image,
            tags=post.tags,
            is_published=post.is_published,
        )
        return PostResponse.model_validate(db_post)

    except BlogError:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating post: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create post"
        )

@router.get("/", response_model=PostListResponse)
async def list_posts(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    q: Optional[str] = Query(None, max_length=200),
    tag: Optional[str] = Query(None, max_length=50),
    category: Optional[str] = None,
    sort: Optional[str] = Query(None, pattern="^(latest|trending|popular)$"),
    db: AsyncSession = Depends(get_db)
):
    """List published posts with search, tag/category filters, sorting and pagination."""
    try:
        posts, total = await CatalogService(db).list_posts(
            q=q, tag=tag, category=category, sort=sort, skip=skip, limit=limit
        )
        return PostListResponse(
            posts=[PostSummary.model_validate(p) for p in posts],
            total=total,
            page=skip // limit + 1,
            per_page=limit
        )
    except BlogError:
        raise
    except Exception as e:
        logger.error(f"Error listing posts: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch posts"
        )

@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    db: AsyncSession = Depends(get_db)
):
    """Get a single published post by id or slug, with likes and comments expanded."""
    post = await CatalogService(db).get_post(post_id, published_only=True)
    return PostResponse.model_validate(post)

@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    post_update: PostUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Edit a post; only its author may do so."""
    try:
        post = await CatalogService(db).update_post(
            post_id, current_user.username, **post_update.dict(exclude_unset=True)
        )
        return PostResponse.model_validate(post)
    except BlogError:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating post {post_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update post"
        )

@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        await CatalogService(db).delete_post(post_id, current_user.username)
        return MessageResponse(message="Post deleted successfully")
    except BlogError:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting post {post_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete post"
        )

@router.post("/{post_id}/like", response_model=PostResponse)
async def toggle_like(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Like the post, or remove the like when already liked."""
    try:
        post = await EngagementService(db).toggle_like(post_id, current_user.username)
        return PostResponse.model_validate(post)
    except BlogError:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error in like route: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update like"
        )

@router.post("/{post_id}/comment", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    post_id: int,
    comment: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        await comment_flood_protection.check_rate_limit(current_user.id, db)
        post = await EngagementService(db).add_comment(post_id, comment.content, current_user.username)
        return PostResponse.model_validate(post)
    except BlogError:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error adding comment to post {post_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add comment"
        )

@router.get("/{post_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    post_id: int,
    db: AsyncSession = Depends(get_db)
):
    comments = await EngagementService(db).list_comments(post_id)
    return [CommentResponse.model_validate(c) for c in comments]

@router.post("/{post_key}/view", response_model=ViewCountResponse)
async def increment_view(
    post_key: str,
    db: AsyncSession = Depends(get_db)
):
    view_count = await EngagementService(db).increment_view(post_key)
    return ViewCountResponse(view_count=view_count)

@router.post("/{post_key}/share", response_model=ShareCountResponse)
async def increment_share(
    post_key: str,
    db: AsyncSession = Depends(get_db)
):
    share_count = await EngagementService(db).increment_share(post_key)
    return ShareCountResponse(share_count=share_count)

@router.get("/{post_id}/recommendations", response_model=List[PostSummary])
async def get_recommendations(
    post_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Up to five newer published posts from the same category."""
    posts = await CatalogService(db).recommendations(post_id)
    return [PostSummary.model_validate(p) for p in posts]
