from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from starlette import status

from app.models.user import User
from app.schemas.user import UserUpdate, UserInDB, UserBrief, UserPublic
from app.schemas.post import PostSummary
from app.schemas.social import FollowResponse, FollowStatusResponse, BookmarkResponse, UserProfile
from app.services.catalog import CatalogService
from app.services.engagement import EngagementService
from app.services.identity import IdentityService
from app.services.social_graph import SocialGraphService
from app.utils.exceptions import BlogError
from dependencies import get_db, get_current_user, logger

router = APIRouter()

PROFILE_POST_LIMIT = 10

@router.get("/me", response_model=UserInDB)
async def read_users_me(current_user: User = Depends(get_current_user)):
    """Get current user profile."""
    return UserInDB.model_validate(current_user)

@router.put("/me", response_model=UserInDB)
async def update_user_me(
    user_update: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update the editable profile fields of the current user."""
    try:
        user = await IdentityService(db).update_profile(
            current_user.username, **user_update.dict(exclude_unset=True)
        )
        return UserInDB.model_validate(user)
    except BlogError:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error in update_user_me: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update user profile"
        )

@router.get("/profile/{username}", response_model=UserProfile)
async def get_user_profile(
    username: str,
    db: AsyncSession = Depends(get_db)
):
    """Public profile with follower/following lists and the latest posts."""
    try:
        identity = IdentityService(db)
        user = await identity.get_user(username)
        followers = await identity.followers(user)
        following = await identity.following(user)
        posts = await CatalogService(db).user_posts(username, limit=PROFILE_POST_LIMIT)

        return UserProfile(
            user=UserPublic.model_validate(user),
            followers=[UserBrief.model_validate(u) for u in followers],
            following=[UserBrief.model_validate(u) for u in following],
            posts=[PostSummary.model_validate(p) for p in posts],
        )
    except BlogError:
        raise
    except Exception as e:
        logger.error(f"Error in get_user_profile: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch user profile")

@router.get("/search", response_model=List[UserBrief])
async def search_users(
    q: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db)
):
    """Find users by username or full name (follow suggestions)."""
    users = await IdentityService(db).search_users(q)
    return [UserBrief.model_validate(u) for u in users]

@router.post("/follow/{user_id}", response_model=FollowResponse)
async def toggle_follow(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Follow the user, or unfollow when already following."""
    try:
        is_following = await SocialGraphService(db).toggle_follow(current_user.username, user_id)
        return FollowResponse(
            message="Followed successfully" if is_following else "Unfollowed successfully",
            is_following=is_following
        )
    except BlogError:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error toggling follow: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to follow user"
        )

@router.get("/follow-status/{user_id}", response_model=FollowStatusResponse)
async def follow_status(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    is_following = await SocialGraphService(db).follow_status(current_user.username, user_id)
    return FollowStatusResponse(is_following=is_following)

@router.get("/feed", response_model=List[PostSummary])
async def get_feed(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Newest published posts from the users the current user follows."""
    try:
        posts = await SocialGraphService(db).feed(current_user.username)
        return [PostSummary.model_validate(p) for p in posts]
    except BlogError:
        raise
    except Exception as e:
        logger.error(f"Error in get_feed: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch feed")

@router.get("/bookmarks", response_model=List[PostSummary])
async def get_bookmarked_posts(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Reading list of the current user, most recently bookmarked first."""
    try:
        posts = await EngagementService(db).reading_list(current_user.username)
        return [PostSummary.model_validate(p) for p in posts]
    except BlogError:
        raise
    except Exception as e:
        logger.error(f"Error in get_bookmarked_posts: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="Failed to fetch bookmarked posts"
        )

@router.post("/bookmark/{post_id}", response_model=BookmarkResponse)
async def toggle_bookmark(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        bookmarked = await EngagementService(db).toggle_bookmark(post_id, current_user.username)
        return BookmarkResponse(bookmarked=bookmarked)
    except BlogError:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error toggling bookmark: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update bookmark"
        )

@router.get("/{username}/posts", response_model=List[PostSummary])
async def get_user_posts(
    username: str,
    db: AsyncSession = Depends(get_db)
):
    logger.info(f"Fetching posts for user: {username}")
    posts = await CatalogService(db).user_posts(username)
    return [PostSummary.model_validate(p) for p in posts]
