from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum, Boolean, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from database import Base, utcnow
import enum

class Category(enum.Enum):
    TECHNOLOGY = "technology"
    LIFESTYLE = "lifestyle"
    TRAVEL = "travel"
    FOOD = "food"
    HEALTH = "health"
    BUSINESS = "business"
    ENTERTAINMENT = "entertainment"
    EDUCATION = "education"


class Post(Base):
    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_category_created", "category", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False, index=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    content = Column(Text, nullable=False)
    category = Column(Enum(Category), nullable=False)
    image = Column(Text, nullable=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_published = Column(Boolean, nullable=False, default=True)
    view_count = Column(Integer, nullable=False, default=0)
    share_count = Column(Integer, nullable=False, default=0)
    bookmarks_count = Column(Integer, nullable=False, default=0)
    reading_time = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    author = relationship("User", back_populates="posts")
    tag_links = relationship("PostTag", back_populates="post", order_by="PostTag.position", passive_deletes=True)
    likes = relationship("PostLike", back_populates="post", order_by="PostLike.id", passive_deletes=True)
    comments = relationship("Comment", back_populates="post", order_by="Comment.id", passive_deletes=True)
    bookmarks = relationship("Bookmark", back_populates="post", passive_deletes=True)

    @property
    def tags(self):
        return [link.name for link in self.tag_links]

    @property
    def liked_by(self):
        return [like.user for like in self.likes]

    @property
    def like_count(self):
        return len(self.likes)

    @property
    def comment_count(self):
        return len(self.comments)


class PostTag(Base):
    __tablename__ = "post_tags"
    __table_args__ = (
        UniqueConstraint("post_id", "name", name="unique_post_tag"),
        Index("ix_post_tags_name", "name"),
    )

    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    name = Column(String(50), nullable=False)

    post = relationship("Post", back_populates="tag_links")


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    author = relationship("User", back_populates="comments")
    post = relationship("Post", back_populates="comments")
