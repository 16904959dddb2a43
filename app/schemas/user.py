from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional, Dict
from datetime import date, datetime

class UserBrief(BaseModel):
    id: int
    username: str
    full_name: str
    profile_pic: Optional[str] = None

    class Config:
        from_attributes = True

class UserCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=100)
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    confirm_password: str
    dob: date
    gender: Optional[str] = Field(None, max_length=20)
    bio: Optional[str] = Field(None, max_length=500)
    profile_pic: Optional[str] = None
    category: Optional[str] = Field(None, max_length=30)
    country: Optional[str] = Field(None, max_length=60)
    terms_accepted: bool

    @validator('full_name')
    def validate_full_name(cls, v):
        if not v.strip():
            raise ValueError('Full name cannot be empty or just whitespace')
        return v.strip()

class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    dob: Optional[date] = None
    gender: Optional[str] = Field(None, max_length=20)
    category: Optional[str] = Field(None, max_length=30)
    country: Optional[str] = Field(None, max_length=60)
    social_links: Optional[Dict[str, str]] = None
    profile_pic: Optional[str] = None

    @validator('full_name')
    def validate_full_name(cls, v):
        if v is not None:
            if not v.strip():
                raise ValueError('Full name cannot be empty or just whitespace')
            return v.strip()
        return v

class UserPublic(BaseModel):
    id: int
    username: str
    full_name: str
    bio: Optional[str] = None
    dob: Optional[date] = None
    gender: Optional[str] = None
    category: Optional[str] = None
    country: Optional[str] = None
    social_links: Optional[Dict[str, str]] = None
    profile_pic: Optional[str] = None
    follower_count: int
    following_count: int
    post_count: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserInDB(UserPublic):
    email: EmailStr
    is_active: bool
    terms_accepted: bool

class SignupResponse(BaseModel):
    message: str
    user: UserInDB

class UserLogin(BaseModel):
    email_or_username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class LoginResponse(BaseModel):
    message: str
    username: str
    email: str
    access_token: str
    token_type: str = "bearer"

class ForgotPasswordRequest(BaseModel):
    email_or_username: str = Field(..., min_length=1)

class ForgotPasswordResponse(BaseModel):
    message: str
    reset_link: Optional[str] = None

class ResetPasswordRequest(BaseModel):
    new_password: str
    confirm_password: str

class TokenData(BaseModel):
    username: Optional[str] = None
    role: Optional[str] = None
    email: Optional[str] = None
