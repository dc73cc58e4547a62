"""Tests for user, rating, thread and notification endpoints."""

from fastapi.testclient import TestClient


class TestProfile:
    """Test the caller's profile and public profiles."""

    def test_read_and_update_me(self, client: TestClient, missionary, headers_for):
        headers = headers_for(missionary)
        me = client.get("/users/me", headers=headers)
        assert me.status_code == 200
        assert me.json()["username"] == missionary.username

        updated = client.patch(
            "/users/me",
            json={"display_name": "Miss", "feed_privacy_default": "ask"},
            headers=headers,
        )
        assert updated.status_code == 200
        assert updated.json()["display_name"] == "Miss"

    def test_public_profile_and_stats(self, client: TestClient, missionary):
        profile = client.get(f"/users/{missionary.id_user}")
        assert profile.status_code == 200
        assert "hashed_password" not in profile.json()

        stats = client.get(f"/users/{missionary.id_user}/stats").json()
        assert stats["general"]["name"] == "Bronze 1"
        assert stats["pro"]["level"] == 1

    def test_unknown_user(self, client: TestClient):
        response = client.get("/users/9999")
        assert response.status_code == 404

    def test_cannot_take_unheld_role(self, client: TestClient, missionary, headers_for):
        response = client.post(
            "/users/me/active-role",
            json={"active_role": "admin"},
            headers=headers_for(missionary),
        )
        assert response.status_code == 403


class TestSocialEdges:
    """Test follows and favorites."""

    def test_follow_grants_xp_once(
        self, client: TestClient, missionary, other_missionary, headers_for
    ):
        headers = headers_for(missionary)
        url = f"/users/{other_missionary.id_user}/follow"

        first = client.post(url, headers=headers)
        assert first.status_code == 201
        assert first.json()["xp_granted"] == 5

        duplicate = client.post(url, headers=headers)
        assert duplicate.status_code == 400

        history = client.get("/users/me/xp/history", headers=headers).json()
        assert [e["kind"] for e in history] == ["follow"]

        removed = client.delete(url, headers=headers)
        assert removed.status_code == 200
        assert removed.json()["active"] is False
        assert client.get("/users/me/xp", headers=headers).json()["xp"] == 5

    def test_follow_self(self, client: TestClient, missionary, headers_for):
        response = client.post(
            f"/users/{missionary.id_user}/follow", headers=headers_for(missionary)
        )
        assert response.status_code == 400
        assert response.json()["field"] == "id_user"

    def test_favorite_requires_advertiser(
        self, client: TestClient, missionary, other_missionary, advertiser, headers_for
    ):
        headers = headers_for(missionary)
        refused = client.post(
            f"/users/{other_missionary.id_user}/favorite", headers=headers
        )
        assert refused.status_code == 400

        accepted = client.post(f"/users/{advertiser.id_user}/favorite", headers=headers)
        assert accepted.status_code == 201

    def test_follow_rate_limit(
        self, client: TestClient, missionary, other_missionary, headers_for
    ):
        headers = headers_for(missionary)
        url = f"/users/{other_missionary.id_user}/follow"
        statuses = [client.post(url, headers=headers).status_code for _ in range(11)]
        assert statuses[-1] == 429
        assert 429 not in statuses[:10]


class TestRatings:
    """Test rating the advertiser of a completed mission."""

    def test_rate_after_acceptance(
        self, client: TestClient, accepted_submission, missionary, advertiser, headers_for
    ):
        payload = {
            "id_mission": accepted_submission.id_mission,
            "id_submission": accepted_submission.id_submission,
            "score": 4,
        }
        response = client.post("/ratings/", json=payload, headers=headers_for(missionary))
        assert response.status_code == 200
        assert response.json()["score"] == 4

        summary = client.get(f"/ratings/advertisers/{advertiser.id_user}").json()
        assert summary == {"id_user": advertiser.id_user, "rating_avg": 4.0, "rating_count": 1}

        ratings = client.get(f"/missions/{accepted_submission.id_mission}/ratings").json()
        assert len(ratings) == 1

    def test_score_out_of_range(
        self, client: TestClient, accepted_submission, missionary, headers_for
    ):
        response = client.post(
            "/ratings/",
            json={
                "id_mission": accepted_submission.id_mission,
                "id_submission": accepted_submission.id_submission,
                "score": 6,
            },
            headers=headers_for(missionary),
        )
        assert response.status_code == 400
        assert response.json()["field"] == "score"


class TestThreadsAndNotifications:
    """Test messaging and the notification inbox."""

    def test_direct_message_is_masked(
        self, client: TestClient, missionary, other_missionary, headers_for
    ):
        sent = client.post(
            f"/users/{other_missionary.id_user}/message",
            json={"content": "Call 06 12 34 56 78"},
            headers=headers_for(missionary),
        )
        assert sent.status_code == 201
        assert sent.json()["content"] == "Call [phone hidden]"

        threads = client.get("/threads/", headers=headers_for(other_missionary)).json()
        assert len(threads) == 1
        assert threads[0]["binding"] == "direct"

        own_view = client.get(
            f"/threads/{threads[0]['id_thread']}", headers=headers_for(missionary)
        )
        assert own_view.status_code == 200

    def test_outsider_cannot_read_thread(
        self, client: TestClient, missionary, other_missionary, advertiser, headers_for
    ):
        message = client.post(
            f"/users/{other_missionary.id_user}/message",
            json={"content": "Hello"},
            headers=headers_for(missionary),
        ).json()
        response = client.get(
            f"/threads/{message['id_thread']}/messages", headers=headers_for(advertiser)
        )
        assert response.status_code == 403

    def test_reward_type_cannot_be_posted(
        self, client: TestClient, missionary, other_missionary, headers_for
    ):
        response = client.post(
            f"/users/{other_missionary.id_user}/message",
            json={"content": "Gift", "type": "reward"},
            headers=headers_for(missionary),
        )
        assert response.status_code == 400
        assert response.json()["field"] == "type"

    def test_notification_inbox(
        self, client: TestClient, accepted_submission, missionary, headers_for
    ):
        headers = headers_for(missionary)
        assert client.get("/notifications/unread-count", headers=headers).json() == {
            "unread": 1
        }
        inbox = client.get("/notifications/", headers=headers).json()
        assert inbox[0]["notification_type"] == "submission_accepted"

        read = client.post(
            f"/notifications/{inbox[0]['id_notification']}/read", headers=headers
        )
        assert read.status_code == 200
        assert read.json()["is_read"] is True
        assert client.get(
            "/notifications/?unread_only=true", headers=headers
        ).json() == []
