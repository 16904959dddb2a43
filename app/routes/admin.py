from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.schemas.admin import AdminLogin, AdminToken, PublishUpdate, SummaryResponse, MessageResponse
from app.schemas.post import PostSummary
from app.schemas.user import UserInDB, TokenData
from app.services.moderation import ModerationService, authenticate_admin
from app.utils.exceptions import BlogError
from dependencies import get_current_admin, get_db, logger

router = APIRouter()
manage = APIRouter(prefix="/manage")


@router.post("/login", response_model=AdminToken)
async def admin_login(credentials: AdminLogin):
    token = authenticate_admin(credentials.email, credentials.password)
    return AdminToken(message="Admin login successful", token=token)


@manage.get("/summary", response_model=SummaryResponse)
async def get_summary(
    admin: TokenData = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return SummaryResponse(**await ModerationService(db).summary())


@manage.get("/users", response_model=List[UserInDB])
async def list_users(
    admin: TokenData = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """All accounts, without password hashes or reset tokens."""
    users = await ModerationService(db).list_users()
    return [UserInDB.model_validate(u) for u in users]


@manage.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    admin: TokenData = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Delete a user together with their posts, comments, likes, bookmarks and follow edges."""
    try:
        await ModerationService(db).delete_user(user_id)
        logger.info(f"Admin {admin.email} deleted user {user_id}")
        return MessageResponse(message="User deleted")
    except BlogError:
        raise
    except Exception as e:
        logger.error(f"Failed to delete user {user_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete user"
        )


@manage.get("/posts", response_model=List[PostSummary])
async def list_posts(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    admin: TokenData = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """All posts, published or not, newest first."""
    posts = await ModerationService(db).list_posts(skip=skip, limit=limit)
    return [PostSummary.model_validate(p) for p in posts]


@manage.delete("/posts/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: int,
    admin: TokenData = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    try:
        await ModerationService(db).delete_post(post_id)
        return MessageResponse(message="Post deleted")
    except BlogError:
        raise
    except Exception as e:
        logger.error(f"Failed to delete post {post_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete post"
        )


@manage.patch("/posts/{post_id}/publish", response_model=PostSummary)
async def set_published(
    post_id: int,
    update: PublishUpdate,
    admin: TokenData = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    try:
        post = await ModerationService(db).set_published(post_id, update.is_published)
        return PostSummary.model_validate(post)
    except BlogError:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to update publish flag of post {post_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update post"
        )


router.include_router(manage)
