from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from app.models.post import Category
from app.schemas.user import UserBrief

class PostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    category: str
    image: Optional[str] = None
    tags: Optional[List[str]] = Field(None, max_length=20)
    is_published: bool = True

class PostUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    image: Optional[str] = None
    tags: Optional[List[str]] = Field(None, max_length=20)
    is_published: Optional[bool] = None

class CommentCreate(BaseModel):
    content: str = Field(..., max_length=5000)

class CommentResponse(BaseModel):
    id: int
    content: str
    post_id: int
    created_at: datetime
    author: UserBrief

    class Config:
        from_attributes = True

class PostSummary(BaseModel):
    id: int
    title: str
    slug: str
    content: str
    category: Category
    tags: List[str]
    image: Optional[str] = None
    author: UserBrief
    is_published: bool
    view_count: int
    share_count: int
    bookmarks_count: int
    reading_time: int
    like_count: int
    comment_count: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class PostResponse(PostSummary):
    liked_by: List[UserBrief]
    comments: List[CommentResponse]

class PostListResponse(BaseModel):
    posts: List[PostSummary]
    total: int
    page: int
    per_page: int
