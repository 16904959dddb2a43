import pytest
from sqlalchemy import func, select

from app.models.social import UserFollow
from app.models.user import User
from app.services.identity import IdentityService
from app.services.social_graph import SocialGraphService
from app.utils.exceptions import ConflictError, NotFoundError, ValidationError


async def edge_count(db):
    return await db.scalar(select(func.count()).select_from(UserFollow))


@pytest.mark.asyncio
async def test_follow_is_mirrored_and_counted(db, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    graph = SocialGraphService(db)
    identity = IdentityService(db)

    assert await graph.toggle_follow("alice", bob.id) is True

    await db.refresh(alice)
    await db.refresh(bob)
    assert [u.username for u in await identity.following(alice)] == ["bob"]
    assert [u.username for u in await identity.followers(bob)] == ["alice"]
    assert alice.following_count == 1
    assert bob.follower_count == 1
    assert bob.follower_count == len(await identity.followers(bob))


@pytest.mark.asyncio
async def test_follow_twice_restores_initial_state(db, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    graph = SocialGraphService(db)

    assert await graph.toggle_follow("alice", bob.id) is True
    assert await graph.toggle_follow("alice", bob.id) is False

    await db.refresh(alice)
    await db.refresh(bob)
    assert await edge_count(db) == 0
    assert alice.following_count == 0
    assert bob.follower_count == 0
    assert await graph.follow_status("alice", bob.id) is False


@pytest.mark.asyncio
async def test_repeated_toggles_never_duplicate_edges(db, make_user):
    await make_user("alice")
    bob = await make_user("bob")
    graph = SocialGraphService(db)

    for _ in range(5):
        await graph.toggle_follow("alice", bob.id)

    await db.refresh(bob)
    assert await edge_count(db) == 1
    assert bob.follower_count == 1


@pytest.mark.asyncio
async def test_follow_status_is_read_only(db, make_user):
    await make_user("alice")
    bob = await make_user("bob")
    graph = SocialGraphService(db)

    assert await graph.follow_status("alice", bob.id) is False
    await graph.toggle_follow("alice", bob.id)
    assert await graph.follow_status("alice", bob.id) is True
    assert await graph.follow_status("bob", bob.id) is False
    assert await edge_count(db) == 1


@pytest.mark.asyncio
async def test_follow_missing_users(db, make_user):
    alice = await make_user("alice")
    graph = SocialGraphService(db)

    with pytest.raises(NotFoundError, match="Target user not found"):
        await graph.toggle_follow("alice", alice.id + 100)
    with pytest.raises(NotFoundError, match="Follower not found"):
        await graph.toggle_follow("ghost", alice.id)


@pytest.mark.asyncio
async def test_self_follow_is_rejected(db, make_user):
    alice = await make_user("alice")

    with pytest.raises(ValidationError):
        await SocialGraphService(db).toggle_follow("alice", alice.id)

    await db.refresh(alice)
    assert alice.follower_count == 0
    assert await edge_count(db) == 0


@pytest.mark.asyncio
async def test_feed_lists_followed_published_posts_newest_first(db, make_user, make_post):
    await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    first = await make_post(bob, title="First")
    second = await make_post(bob, title="Second")
    await make_post(bob, title="Draft", is_published=False)
    await make_post(carol, title="Not followed")

    graph = SocialGraphService(db)
    assert await graph.feed("alice") == []

    await graph.toggle_follow("alice", bob.id)
    feed = await graph.feed("alice")

    assert [p.id for p in feed] == [second.id, first.id]


@pytest.mark.asyncio
async def test_feed_is_bounded(db, make_user, make_post):
    await make_user("alice")
    bob = await make_user("bob")
    for i in range(4):
        await make_post(bob, title=f"Post {i}")

    graph = SocialGraphService(db)
    await graph.toggle_follow("alice", bob.id)

    assert len(await graph.feed("alice", limit=3)) == 3


@pytest.mark.asyncio
async def test_unfollow_of_edge_removed_by_another_session_conflicts(db, session_factory, make_user, monkeypatch):
    alice = await make_user("alice")
    bob = await make_user("bob")
    await SocialGraphService(db).toggle_follow("alice", bob.id)

    async with session_factory() as first, session_factory() as second:
        late_graph = SocialGraphService(second)
        stale_edge = await late_graph._get_edge(alice.id, bob.id)
        assert stale_edge is not None

        assert await SocialGraphService(first).toggle_follow("alice", bob.id) is False

        async def read_stale_edge(follower_id, followed_id):
            return stale_edge

        monkeypatch.setattr(late_graph, "_get_edge", read_stale_edge)
        with pytest.raises(ConflictError):
            await late_graph.toggle_follow("alice", bob.id)

    counters = (await db.execute(
        select(User.username, User.follower_count, User.following_count).order_by(User.username)
    )).all()
    assert counters == [("alice", 0, 0), ("bob", 0, 0)]
    assert await edge_count(db) == 0
