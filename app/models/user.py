from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Date, JSON
from sqlalchemy.orm import relationship
from database import Base, utcnow

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=False)
    bio = Column(Text, nullable=True)
    dob = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    category = Column(String(30), nullable=True)
    country = Column(String(60), nullable=True)
    social_links = Column(JSON, nullable=True)
    profile_pic = Column(Text, nullable=True)
    terms_accepted = Column(Boolean, nullable=False)
    is_active = Column(Boolean, default=True)

    follower_count = Column(Integer, nullable=False, default=0)
    following_count = Column(Integer, nullable=False, default=0)
    post_count = Column(Integer, nullable=False, default=0)

    reset_password_token = Column(String(128), unique=True, nullable=True, index=True)
    reset_password_expires = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow, nullable=True)

    posts = relationship("Post", back_populates="author", passive_deletes=True)
    comments = relationship("Comment", back_populates="author", passive_deletes=True)
    likes = relationship("PostLike", back_populates="user", passive_deletes=True)
    bookmarks = relationship("Bookmark", back_populates="user", passive_deletes=True)
    followers = relationship("UserFollow", foreign_keys="UserFollow.followed_id", back_populates="followed", passive_deletes=True)
    following = relationship("UserFollow", foreign_keys="UserFollow.follower_id", back_populates="follower", passive_deletes=True)
