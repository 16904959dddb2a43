from pydantic import BaseModel, Field

class AdminLogin(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class AdminToken(BaseModel):
    message: str
    token: str

class PublishUpdate(BaseModel):
    is_published: bool

class SummaryResponse(BaseModel):
    users: int
    posts: int
    published_posts: int
    comments: int
    likes: int

class MessageResponse(BaseModel):
    message: str
