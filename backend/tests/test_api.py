"""
Hbook Backend — API Endpoint Tests
===================================

What:  End-to-end requests through the FastAPI app (middleware, session
       cookie, exception handlers) against a SQLite database.

What we test:
    ✅ 401 without a cookie, 401 + cookie cleared for an unknown session
    ✅ camelCase page bodies (nextCursor, previousCursor)
    ✅ like / bookmark / follow toggles answer 204 and are reflected by GETs
    ✅ 404 for missing posts and users
    ✅ notifications: inbox, unread count, mark-as-read
    ✅ health check and request-id header
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from hbook.models import NotificationType


@pytest_asyncio.fixture
async def alice(seed):
    return await seed.user("alice", display_name="Alice Liddell")


@pytest_asyncio.fixture
async def bob(seed):
    return await seed.user("bob")


@pytest_asyncio.fixture
async def as_bob(api_client, seed, bob, cookie_name):
    """api_client logged in as bob."""
    session = await seed.session_for(bob, expires_in=timedelta(days=30))
    api_client.cookies.set(cookie_name, session.id)
    return api_client


class TestAuthentication:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/posts/for-you"),
            ("GET", "/api/posts/bookmarked"),
            ("GET", "/api/search?q=hello"),
            ("GET", "/api/posts/p1/comments"),
            ("GET", "/api/notifications"),
            ("POST", "/api/posts/p1/likes"),
            ("DELETE", "/api/users/u1/followers"),
        ],
    )
    async def test_no_cookie_is_unauthorized(self, api_client, method, path):
        response = await api_client.request(method, path)

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "unauthorized"
        assert body["message"] == "Unauthorized"

    @pytest.mark.asyncio
    async def test_unknown_session_clears_cookie(self, api_client, cookie_name):
        api_client.cookies.set(cookie_name, "forged")

        response = await api_client.get("/api/posts/for-you")

        assert response.status_code == 401
        set_cookie = response.headers.get("set-cookie", "")
        assert set_cookie.startswith(f"{cookie_name}=")
        assert "Max-Age=0" in set_cookie

    @pytest.mark.asyncio
    async def test_session_near_expiry_is_reissued(self, api_client, seed, bob, cookie_name):
        session = await seed.session_for(bob, expires_in=timedelta(days=2))
        api_client.cookies.set(cookie_name, session.id)

        response = await api_client.get("/api/notifications/unread-count")

        assert response.status_code == 200
        set_cookie = response.headers.get("set-cookie", "")
        assert set_cookie.startswith(f"{cookie_name}={session.id}")
        assert "HttpOnly" in set_cookie

    @pytest.mark.asyncio
    async def test_session_near_expiry_can_write(self, api_client, seed, alice, bob, cookie_name):
        await seed.post("p1", alice, minutes=1)
        session = await seed.session_for(bob, expires_in=timedelta(days=2))
        api_client.cookies.set(cookie_name, session.id)

        response = await api_client.post("/api/posts/p1/likes")
        likes = await api_client.get("/api/posts/p1/likes")

        assert response.status_code == 204
        assert response.headers.get("set-cookie", "").startswith(f"{cookie_name}={session.id}")
        assert likes.json() == {"likes": 1, "isLikedByUser": True}


class TestFeeds:

    @pytest.mark.asyncio
    async def test_for_you_pages(self, as_bob, seed, alice):
        for n in range(1, 12):
            await seed.post(f"p{n}", alice, minutes=n)

        first = await as_bob.get("/api/posts/for-you")
        second = await as_bob.get("/api/posts/for-you", params={"cursor": "p1"})

        assert first.status_code == 200
        body = first.json()
        assert [post["id"] for post in body["posts"]] == [f"p{n}" for n in range(11, 1, -1)]
        assert body["nextCursor"] == "p1"
        assert body["posts"][0]["user"]["displayName"] == "Alice Liddell"
        assert body["posts"][0]["isLikedByUser"] is False
        assert [post["id"] for post in second.json()["posts"]] == ["p1"]
        assert second.json()["nextCursor"] is None

    @pytest.mark.asyncio
    async def test_stale_cursor_is_empty_page(self, as_bob, seed, alice):
        await seed.post("p1", alice, minutes=1)

        response = await as_bob.get("/api/posts/for-you", params={"cursor": "gone"})

        assert response.status_code == 200
        assert response.json() == {"posts": [], "nextCursor": None}

    @pytest.mark.asyncio
    async def test_blank_cursor_is_400(self, as_bob):
        response = await as_bob.get("/api/posts/for-you", params={"cursor": ""})

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert response.json()["details"] == {"field": "cursor"}

    @pytest.mark.asyncio
    async def test_user_posts(self, as_bob, seed, alice, bob):
        await seed.post("a1", alice, minutes=1)
        await seed.post("b1", bob, minutes=2)

        response = await as_bob.get(f"/api/users/{alice.id}/posts")

        assert [post["id"] for post in response.json()["posts"]] == ["a1"]

    @pytest.mark.asyncio
    async def test_search(self, as_bob, seed, alice):
        await seed.post("p1", alice, minutes=1, content="cats and dogs")
        await seed.post("p2", alice, minutes=2, content="only cats")

        match = await as_bob.get("/api/search", params={"q": "dogs cats"})
        empty = await as_bob.get("/api/search", params={"q": "   "})

        assert [post["id"] for post in match.json()["posts"]] == ["p1"]
        assert empty.status_code == 200
        assert empty.json() == {"posts": [], "nextCursor": None}

    @pytest.mark.asyncio
    async def test_comments_use_previous_cursor(self, as_bob, seed, alice, bob):
        post = await seed.post("p1", alice, minutes=0)
        for n in range(6):
            await seed.comment(f"c{n}", bob if n % 2 else alice, post, minutes=n)

        first = await as_bob.get("/api/posts/p1/comments")
        second = await as_bob.get(
            "/api/posts/p1/comments", params={"cursor": first.json()["previousCursor"]}
        )

        body = first.json()
        assert set(body) == {"comments", "previousCursor"}
        assert [c["id"] for c in body["comments"]] == ["c0", "c1", "c2", "c3", "c4"]
        assert body["previousCursor"] == "c5"
        assert body["comments"][0]["postId"] == "p1"
        assert [c["id"] for c in second.json()["comments"]] == ["c5"]
        assert second.json()["previousCursor"] is None


class TestToggles:

    @pytest.mark.asyncio
    async def test_like_cycle(self, as_bob, seed, alice):
        await seed.post("p1", alice, minutes=1)

        assert (await as_bob.post("/api/posts/p1/likes")).status_code == 204
        assert (await as_bob.post("/api/posts/p1/likes")).status_code == 204
        liked = await as_bob.get("/api/posts/p1/likes")
        assert (await as_bob.delete("/api/posts/p1/likes")).status_code == 204
        unliked = await as_bob.get("/api/posts/p1/likes")

        assert liked.json() == {"likes": 1, "isLikedByUser": True}
        assert unliked.json() == {"likes": 0, "isLikedByUser": False}

    @pytest.mark.asyncio
    async def test_like_missing_post_is_404(self, as_bob):
        for method in ("GET", "POST", "DELETE"):
            response = await as_bob.request(method, "/api/posts/missing/likes")
            assert response.status_code == 404
            assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_bookmark_cycle(self, as_bob, seed, alice):
        await seed.post("p1", alice, minutes=1)

        assert (await as_bob.post("/api/posts/p1/bookmark")).status_code == 204
        saved = await as_bob.get("/api/posts/p1/bookmark")
        feed = await as_bob.get("/api/posts/bookmarked")
        assert (await as_bob.delete("/api/posts/p1/bookmark")).status_code == 204
        removed = await as_bob.get("/api/posts/p1/bookmark")

        assert saved.json() == {"isBookmarkedByUser": True}
        assert [post["id"] for post in feed.json()["posts"]] == ["p1"]
        assert feed.json()["posts"][0]["isBookmarkedByUser"] is True
        assert removed.json() == {"isBookmarkedByUser": False}

    @pytest.mark.asyncio
    async def test_follow_cycle(self, as_bob, alice):
        path = f"/api/users/{alice.id}/followers"

        assert (await as_bob.post(path)).status_code == 204
        following = await as_bob.get(path)
        profile = await as_bob.get("/api/users/username/ALICE")
        assert (await as_bob.delete(path)).status_code == 204
        after = await as_bob.get(path)

        assert following.json() == {"followers": 1, "isFollowedByUser": True}
        assert profile.status_code == 200
        assert profile.json()["username"] == "alice"
        assert profile.json()["followers"] == 1
        assert profile.json()["isFollowedByUser"] is True
        assert after.json() == {"followers": 0, "isFollowedByUser": False}

    @pytest.mark.asyncio
    async def test_missing_user_is_404(self, as_bob):
        assert (await as_bob.get("/api/users/u-ghost/followers")).status_code == 404
        assert (await as_bob.post("/api/users/u-ghost/followers")).status_code == 404
        assert (await as_bob.get("/api/users/username/ghost")).status_code == 404


class TestNotifications:

    @pytest.mark.asyncio
    async def test_inbox_and_unread_count(self, as_bob, seed, alice, bob):
        post = await seed.post("p1", bob, minutes=0, content="bob's post")
        await seed.notification("n1", bob, alice, NotificationType.FOLLOW, minutes=1)
        await seed.notification("n2", bob, alice, NotificationType.LIKE, minutes=2, post=post)
        await seed.notification("n3", alice, bob, NotificationType.FOLLOW, minutes=3)

        inbox = await as_bob.get("/api/notifications")
        count = await as_bob.get("/api/notifications/unread-count")

        body = inbox.json()
        assert [n["id"] for n in body["notifications"]] == ["n2", "n1"]
        assert body["nextCursor"] is None
        assert body["notifications"][0]["post"] == {"content": "bob's post"}
        assert body["notifications"][0]["issuer"]["displayName"] == "Alice Liddell"
        assert body["notifications"][1]["post"] is None
        assert count.json() == {"unreadCount": 2}
        assert count.headers["cache-control"] == "no-store"

    @pytest.mark.asyncio
    async def test_mark_as_read(self, as_bob, seed, alice, bob):
        await seed.notification("n1", bob, alice, NotificationType.FOLLOW, minutes=1)
        await seed.notification("n2", bob, alice, NotificationType.FOLLOW, minutes=2, read=True)

        response = await as_bob.patch("/api/notifications/mark-as-read")
        count = await as_bob.get("/api/notifications/unread-count")

        assert response.status_code == 204
        assert count.json() == {"unreadCount": 0}

    @pytest.mark.asyncio
    async def test_like_from_api_reaches_author_inbox(self, api_client, seed, alice, bob, cookie_name):
        await seed.post("p1", alice, minutes=1)
        bob_session = await seed.session_for(bob, expires_in=timedelta(days=30))
        alice_session = await seed.session_for(alice, expires_in=timedelta(days=30))

        api_client.cookies.set(cookie_name, bob_session.id)
        await api_client.post("/api/posts/p1/likes")

        api_client.cookies.set(cookie_name, alice_session.id)
        inbox = await api_client.get("/api/notifications")

        notifications = inbox.json()["notifications"]
        assert len(notifications) == 1
        assert notifications[0]["type"] == "LIKE"
        assert notifications[0]["issuerId"] == bob.id


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_without_cookie(self, api_client):
        response = await api_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, api_client):
        response = await api_client.get("/health", headers={"X-Request-ID": "trace-42"})
        assert response.headers["x-request-id"] == "trace-42"
