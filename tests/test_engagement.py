import pytest
from sqlalchemy import func, select

from app.models.post import Comment, Post
from app.models.social import Bookmark, PostLike
from app.services.engagement import EngagementService
from app.services.moderation import ModerationService
from app.utils.exceptions import ConflictError, NotFoundError, ValidationError


@pytest.mark.asyncio
async def test_toggle_like_twice_returns_to_unliked(db, make_user, make_post):
    alice = await make_user("alice")
    await make_user("bob")
    post = await make_post(alice)
    engagement = EngagementService(db)

    liked = await engagement.toggle_like(post.id, "bob")
    assert liked.like_count == 1
    assert [u.username for u in liked.liked_by] == ["bob"]

    unliked = await engagement.toggle_like(post.id, "bob")
    assert unliked.like_count == 0
    assert unliked.liked_by == []


@pytest.mark.asyncio
async def test_like_count_bounded_by_distinct_likers(db, make_user, make_post):
    alice = await make_user("alice")
    await make_user("bob")
    await make_user("carol")
    post = await make_post(alice)
    engagement = EngagementService(db)

    for _ in range(3):
        await engagement.toggle_like(post.id, "bob")
    result = await engagement.toggle_like(post.id, "carol")

    assert result.like_count == 2
    assert await db.scalar(select(func.count()).select_from(PostLike)) == 2


@pytest.mark.asyncio
async def test_toggle_like_missing_post_or_user(db, make_user, make_post):
    alice = await make_user("alice")
    post = await make_post(alice)
    engagement = EngagementService(db)

    with pytest.raises(NotFoundError):
        await engagement.toggle_like(post.id + 1, "alice")
    with pytest.raises(NotFoundError):
        await engagement.toggle_like(post.id, "ghost")


@pytest.mark.asyncio
async def test_comments_append_in_insertion_order(db, make_user, make_post):
    alice = await make_user("alice")
    await make_user("bob")
    post = await make_post(alice)
    engagement = EngagementService(db)

    after_first = await engagement.add_comment(post.id, "nice post", "bob")
    assert after_first.comment_count == 1
    first_id = after_first.comments[0].id
    assert after_first.comments[0].author.username == "bob"
    assert after_first.comments[0].post_id == post.id

    after_second = await engagement.add_comment(post.id, "thanks!", "alice")
    assert after_second.comment_count == 2
    assert after_second.comments[0].id == first_id
    assert [c.content for c in after_second.comments] == ["nice post", "thanks!"]


@pytest.mark.asyncio
async def test_add_comment_validation(db, make_user, make_post):
    alice = await make_user("alice")
    post = await make_post(alice)
    engagement = EngagementService(db)

    with pytest.raises(ValidationError):
        await engagement.add_comment(post.id, "   ", "alice")
    with pytest.raises(ValidationError):
        await engagement.add_comment(post.id, "hello", "")
    with pytest.raises(NotFoundError, match="Author not found"):
        await engagement.add_comment(post.id, "hello", "ghost")
    with pytest.raises(NotFoundError, match="Post not found"):
        await engagement.add_comment(post.id + 1, "hello", "alice")

    assert await db.scalar(select(func.count()).select_from(Comment)) == 0


@pytest.mark.asyncio
async def test_list_comments_newest_first(db, make_user, make_post):
    alice = await make_user("alice")
    post = await make_post(alice)
    engagement = EngagementService(db)
    await engagement.add_comment(post.id, "one", "alice")
    await engagement.add_comment(post.id, "two", "alice")

    comments = await engagement.list_comments(post.id)

    assert [c.content for c in comments] == ["two", "one"]


@pytest.mark.asyncio
async def test_bookmark_toggle_keeps_counter_paired(db, make_user, make_post):
    alice = await make_user("alice")
    await make_user("bob")
    post = await make_post(alice)
    engagement = EngagementService(db)

    assert await engagement.toggle_bookmark(post.id, "bob") is True
    await db.refresh(post)
    assert post.bookmarks_count == 1
    assert [p.id for p in await engagement.reading_list("bob")] == [post.id]

    assert await engagement.toggle_bookmark(post.id, "bob") is False
    await db.refresh(post)
    assert post.bookmarks_count == 0
    assert await engagement.reading_list("bob") == []
    assert await db.scalar(select(func.count()).select_from(Bookmark)) == 0


@pytest.mark.asyncio
async def test_view_and_share_accept_id_or_slug(db, make_user, make_post):
    alice = await make_user("alice")
    post = await make_post(alice, title="Counting Things")
    engagement = EngagementService(db)

    assert await engagement.increment_view(post.id) == 1
    assert await engagement.increment_view(post.slug) == 2
    assert await engagement.increment_view(str(post.id)) == 3
    assert await engagement.increment_share(post.slug) == 1

    with pytest.raises(NotFoundError):
        await engagement.increment_view("no-such-slug")


@pytest.mark.asyncio
async def test_unbookmark_of_row_removed_by_another_session_conflicts(db, session_factory, make_user, make_post, monkeypatch):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await make_post(alice)
    await EngagementService(db).toggle_bookmark(post.id, "bob")

    async with session_factory() as first, session_factory() as second:
        late_engagement = EngagementService(second)
        stale_bookmark = await late_engagement._get_bookmark(bob.id, post.id)
        assert stale_bookmark is not None

        assert await EngagementService(first).toggle_bookmark(post.id, "bob") is False

        async def read_stale_bookmark(user_id, post_id):
            return stale_bookmark

        monkeypatch.setattr(late_engagement, "_get_bookmark", read_stale_bookmark)
        with pytest.raises(ConflictError):
            await late_engagement.toggle_bookmark(post.id, "bob")

    assert await db.scalar(select(Post.bookmarks_count).filter(Post.id == post.id)) == 0
    assert await db.scalar(select(func.count()).select_from(Bookmark)) == 0


@pytest.mark.asyncio
async def test_reading_list_hides_unpublished_posts(db, make_user, make_post):
    alice = await make_user("alice")
    await make_user("bob")
    kept = await make_post(alice, title="Kept")
    withdrawn = await make_post(alice, title="Withdrawn")
    engagement = EngagementService(db)
    await engagement.toggle_bookmark(kept.id, "bob")
    await engagement.toggle_bookmark(withdrawn.id, "bob")

    await ModerationService(db).set_published(withdrawn.id, False)

    assert [p.id for p in await engagement.reading_list("bob")] == [kept.id]
