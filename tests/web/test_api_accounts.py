"""API tests for health, accounts, profiles and follows."""

from telxtab.db import follows_repository, profiles_repository


class TestHealth:
    def test_health(self, client):
        """GET /health reports ok."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestAuthEndpoints:
    """Tests for /api/auth."""

    def test_signup_returns_token(self, client):
        """Signup creates the account and logs in."""
        response = client.post(
            "/api/auth/signup",
            json={"email": "new@example.com", "password": "secret123", "username": "newbie"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["profile"]["username"] == "newbie"
        assert data["profile"]["rank"]["name"] == "Starter"

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.json()["email"] == "new@example.com"

    def test_signup_duplicate_email(self, client, user):
        """Taken emails are a conflict."""
        response = client.post(
            "/api/auth/signup",
            json={"email": "alice@example.com", "password": "secret123", "username": "alice2"},
        )
        assert response.status_code == 409

    def test_signup_short_password(self, client):
        """Too-short passwords are a bad request."""
        response = client.post(
            "/api/auth/signup",
            json={"email": "x@example.com", "password": "123", "username": "x"},
        )
        assert response.status_code == 400

    def test_login(self, client, user):
        """Correct credentials return a token."""
        response = client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "secret123"}
        )
        assert response.status_code == 200
        assert response.json()["profile"]["id"] == user.id

    def test_login_wrong_password(self, client, user):
        """Wrong credentials are 401."""
        response = client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "wrong"}
        )
        assert response.status_code == 401

    def test_banned_user_cannot_login(self, client, user):
        """Banned accounts get 403 at login."""
        profiles_repository.set_flag(user.id, "is_banned", True)
        response = client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "secret123"}
        )
        assert response.status_code == 403

    def test_banned_user_token_rejected(self, client, user, user_headers):
        """Existing sessions of banned users stop working."""
        profiles_repository.set_flag(user.id, "is_banned", True)
        assert client.get("/api/auth/me", headers=user_headers).status_code == 403

    def test_missing_and_invalid_token(self, client):
        """No token or a bad token is 401."""
        assert client.get("/api/auth/me").status_code == 401
        bad = {"Authorization": "Bearer tx-nope"}
        assert client.get("/api/auth/me", headers=bad).status_code == 401

    def test_logout_revokes_token(self, client, user_headers):
        """The token no longer works after logout."""
        assert client.post("/api/auth/logout", headers=user_headers).status_code == 204
        assert client.get("/api/auth/me", headers=user_headers).status_code == 401

    def test_forgot_password_always_accepted(self, client):
        """Unknown emails look the same as known ones."""
        response = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
        assert response.status_code == 202

    def test_reset_password_bad_token(self, client):
        """Invalid reset tokens are 400."""
        response = client.post(
            "/api/auth/reset-password", json={"token": "tx-bad", "new_password": "newsecret"}
        )
        assert response.status_code == 400


class TestProfileEndpoints:
    """Tests for /api/profiles."""

    def test_update_profile(self, client, user_headers):
        """Editable fields can be changed."""
        response = client.patch(
            "/api/profiles/me",
            headers=user_headers,
            json={"bio": "Learning Spanish", "learning_languages": ["Spanish"]},
        )
        assert response.status_code == 200
        assert response.json()["bio"] == "Learning Spanish"
        assert response.json()["learning_languages"] == ["Spanish"]

    def test_update_username_conflict(self, client, user_headers, other_user):
        """Usernames stay unique."""
        response = client.patch("/api/profiles/me", headers=user_headers, json={"username": "bob"})
        assert response.status_code == 409

    def test_avatar_upload(self, client, user_headers, user):
        """Avatars are stored and served from the avatars bucket."""
        response = client.post(
            "/api/profiles/me/avatar",
            headers=user_headers,
            files={"file": ("me.png", b"\x89PNG", "image/png")},
        )
        assert response.status_code == 200
        avatar_url = response.json()["avatar_url"]
        assert avatar_url.startswith(f"/storage/avatars/{user.id}/")

        served = client.get(avatar_url)
        assert served.status_code == 200
        assert served.content == b"\x89PNG"

    def test_study_time(self, client, user_headers):
        """Study time accumulates and is formatted."""
        response = client.post("/api/profiles/me/study-time", headers=user_headers, json={"seconds": 3725})
        assert response.json()["formatted"] == "01:02:05"

        negative = client.post("/api/profiles/me/study-time", headers=user_headers, json={"seconds": -5})
        assert negative.status_code == 400

    def test_check_in(self, client, user_headers):
        """The first check-in starts a streak."""
        response = client.post("/api/profiles/me/check-in", headers=user_headers)
        assert response.json()["current_streak"] == 1

    def test_stats(self, client, user_headers, user, other_user):
        """Stats include follow counts and sent messages."""
        follows_repository.follow(other_user.id, user.id)
        data = client.get("/api/profiles/me/stats", headers=user_headers).json()
        assert data["followers"] == 1
        assert data["following"] == 0
        assert data["messages_sent"] == 0

    def test_dashboard(self, client, user_headers):
        """The dashboard bundles profile, streak and leaderboard."""
        data = client.get("/api/profiles/me/dashboard", headers=user_headers).json()
        assert data["profile"]["username"] == "alice"
        assert data["streak"]["current_streak"] == 1
        assert data["leaderboard"][0]["position"] == 1

    def test_view_other_profile(self, client, user_headers, other_user):
        """Public profiles hide private fields."""
        data = client.get(f"/api/profiles/{other_user.id}", headers=user_headers).json()
        assert data["profile"]["username"] == "bob"
        assert "email" not in data["profile"]
        assert data["is_following"] is False

    def test_unknown_profile(self, client, user_headers):
        assert client.get("/api/profiles/missing", headers=user_headers).status_code == 404

    def test_suggestions(self, client, user_headers, other_user, mock_llm_client):
        """Suggestions come from the matchmaker over unfollowed users."""
        mock_llm_client.simple_json.return_value = [
            {"id": other_user.id, "match_score": 88, "match_reason": "Same goals"}
        ]
        response = client.get("/api/profiles/me/suggestions", headers=user_headers)

        assert response.status_code == 200
        assert response.json()[0]["id"] == other_user.id
        assert response.json()[0]["match_score"] == 88

    def test_suggestions_bad_reply(self, client, user_headers, other_user, mock_llm_client):
        """Unusable model replies are a 502."""
        mock_llm_client.simple_json.return_value = {"nope": True}
        response = client.get("/api/profiles/me/suggestions", headers=user_headers)
        assert response.status_code == 502


class TestFollowEndpoints:
    """Tests for /api/follows."""

    def test_follow_and_unfollow(self, client, user_headers, other_user):
        """Follow returns the target's stats; unfollow removes it."""
        response = client.post(f"/api/follows/{other_user.id}", headers=user_headers)
        assert response.status_code == 201
        assert response.json() == {"followers": 1, "following": 0}

        following = client.get("/api/follows/following", headers=user_headers).json()
        assert [p["id"] for p in following] == [other_user.id]

        assert client.delete(f"/api/follows/{other_user.id}", headers=user_headers).status_code == 204
        assert client.delete(f"/api/follows/{other_user.id}", headers=user_headers).status_code == 404

    def test_follow_twice(self, client, user_headers, other_user):
        """Following twice is a conflict."""
        client.post(f"/api/follows/{other_user.id}", headers=user_headers)
        assert client.post(f"/api/follows/{other_user.id}", headers=user_headers).status_code == 409

    def test_follow_self(self, client, user_headers, user):
        """Users can't follow themselves."""
        assert client.post(f"/api/follows/{user.id}", headers=user_headers).status_code == 400

    def test_follow_unknown(self, client, user_headers):
        assert client.post("/api/follows/missing", headers=user_headers).status_code == 404
