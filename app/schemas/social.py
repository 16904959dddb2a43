from pydantic import BaseModel
from typing import List

from app.schemas.post import PostSummary
from app.schemas.user import UserBrief, UserPublic

class FollowResponse(BaseModel):
    message: str
    is_following: bool

class FollowStatusResponse(BaseModel):
    is_following: bool

class BookmarkResponse(BaseModel):
    bookmarked: bool

class ViewCountResponse(BaseModel):
    view_count: int

class ShareCountResponse(BaseModel):
    share_count: int

class UserProfile(BaseModel):
    user: UserPublic
    followers: List[UserBrief]
    following: List[UserBrief]
    posts: List[PostSummary]
