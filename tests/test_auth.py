"""Tests for signup, login, refresh, logout, profile and password reset flows."""

import smtplib
from datetime import datetime, timedelta
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from taskflow.models.user import User
from taskflow.services.auth import AuthService, hash_reset_token
from taskflow.services.jwt import get_jwt_service
from conftest import TEST_PASSWORD, make_user

SIGNUP_PAYLOAD = {
    "firstName": "Grace",
    "lastName": "Hopper",
    "email": "Grace@Example.com",
    "password": "password123",
    "username": "GHopper",
}


def _login(client: TestClient, email: str = "test@example.com", remember_me: bool = False):
    return client.post(
        "/api/v1/user/login",
        json={"email": email, "password": TEST_PASSWORD, "rememberMe": remember_me},
    )


def _set_cookie_headers(response) -> dict[str, str]:
    headers = {}
    for header in response.headers.get_list("set-cookie"):
        name = header.split("=", 1)[0]
        headers[name] = header.lower()
    return headers


def _stored_user(db: Session, email: str = "test@example.com") -> User:
    user = db.query(User).filter(User.email == email).first()
    db.refresh(user)
    return user


class TestSignup:
    """Tests for account creation."""

    def test_signup_success(self, client: TestClient, db_session: Session):
        """Signup creates the user and does not start a session."""
        response = client.post("/api/v1/user/signup", json=SIGNUP_PAYLOAD)
        assert response.status_code == 201
        assert response.json()["message"] == "User created successfully"
        assert "accessToken" not in response.cookies
        assert "refreshToken" not in response.cookies

        user = db_session.query(User).filter(User.email == "grace@example.com").first()
        assert user is not None
        assert user.username == "ghopper"
        assert user.password_hash != SIGNUP_PAYLOAD["password"]
        assert user.refresh_token is None

    def test_signup_duplicate_email(self, client: TestClient, test_user: dict):
        response = client.post(
            "/api/v1/user/signup",
            json={**SIGNUP_PAYLOAD, "email": "test@example.com", "username": "someoneelse"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "User already exists"

    def test_signup_duplicate_username(self, client: TestClient, test_user: dict):
        """Username uniqueness is enforced by the store and reported, not crashed on."""
        response = client.post(
            "/api/v1/user/signup",
            json={**SIGNUP_PAYLOAD, "email": "other@example.com", "username": "tester"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "CONFLICT"

    def test_signup_invalid_payload(self, client: TestClient, db_session: Session):
        """Malformed input is rejected before anything is persisted."""
        response = client.post(
            "/api/v1/user/signup",
            json={**SIGNUP_PAYLOAD, "email": "not-an-email", "password": "short"},
        )
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        paths = {tuple(issue["path"]) for issue in data["errors"]}
        assert ("email",) in paths
        assert ("password",) in paths
        assert db_session.query(User).count() == 0


class TestLogin:
    """Tests for login and session cookie issuance."""

    def test_login_success(self, client: TestClient, test_user: dict, db_session: Session):
        """Login sets both cookies and stores the issued refresh token."""
        response = _login(client)
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Signed in successfully"
        assert data["user"]["email"] == "test@example.com"
        assert data["user"]["firstName"] == "Test"
        assert "passwordHash" not in data["user"]
        assert "refreshToken" not in data["user"]

        assert len(response.headers.get_list("set-cookie")) == 2
        assert "accessToken" in response.cookies
        assert "refreshToken" in response.cookies
        user = _stored_user(db_session)
        assert user.refresh_token == response.cookies["refreshToken"]

    def test_login_cookie_attributes(self, client: TestClient, test_user: dict):
        cookies = _set_cookie_headers(_login(client))
        access, refresh = cookies["accessToken"], cookies["refreshToken"]

        assert "httponly" in access and "samesite=strict" in access
        assert "max-age=900" in access
        assert "path=/;" in access or access.endswith("path=/")

        assert "httponly" in refresh and "samesite=strict" in refresh
        assert "path=/api/v1/user/refresh" in refresh
        assert f"max-age={7 * 24 * 60 * 60}" in refresh

    def test_login_remember_me_extends_refresh_cookie(self, client: TestClient, test_user: dict):
        cookies = _set_cookie_headers(_login(client, remember_me=True))
        assert f"max-age={30 * 24 * 60 * 60}" in cookies["refreshToken"]

    def test_login_wrong_password(self, client: TestClient, test_user: dict):
        response = client.post("/api/v1/user/login", json={"email": "test@example.com", "password": "wrongpassword"})
        assert response.status_code == 401
        assert "Invalid" in response.json()["message"]
        assert "accessToken" not in response.cookies

    def test_login_unknown_email(self, client: TestClient):
        response = client.post("/api/v1/user/login", json={"email": "nobody@example.com", "password": "password123"})
        assert response.status_code == 404

    def test_login_case_insensitive(self, client: TestClient, test_user: dict):
        assert _login(client, email="TEST@EXAMPLE.COM").status_code == 200

    def test_login_invalid_format(self, client: TestClient):
        response = client.post("/api/v1/user/login", json={"email": "test@example.com"})
        assert response.status_code == 400


class TestRefresh:
    """Tests for exchanging refresh tokens for access tokens."""

    def test_refresh_without_cookie(self, client: TestClient):
        response = client.post("/api/v1/user/refresh")
        assert response.status_code == 401

    def test_refresh_issues_new_access_token(self, client: TestClient, test_user: dict, db_session: Session):
        _login(client)
        stored_before = _stored_user(db_session).refresh_token

        response = client.post("/api/v1/user/refresh")
        assert response.status_code == 200
        assert response.json()["message"] == "Token refreshed"
        assert "accessToken" in response.cookies
        assert "refreshToken" not in response.cookies

        # The refresh token itself is not rotated
        assert _stored_user(db_session).refresh_token == stored_before

    def test_refresh_twice_with_same_token(self, client: TestClient, test_user: dict):
        """Back-to-back refreshes with one token both succeed with usable access tokens."""
        _login(client)
        jwt_service = get_jwt_service()

        first = client.post("/api/v1/user/refresh")
        second = client.post("/api/v1/user/refresh")
        assert first.status_code == 200
        assert second.status_code == 200
        for response in (first, second):
            payload = jwt_service.verify_access_token(response.cookies["accessToken"])
            assert payload.user_id == test_user["user_id"]

    def test_second_login_invalidates_first_session(self, client: TestClient, test_user: dict):
        """A superseded refresh token fails with 403, not 401."""
        first_token = _login(client).cookies["refreshToken"]
        second_token = _login(client).cookies["refreshToken"]
        assert first_token != second_token

        client.cookies.clear()
        client.cookies.set("refreshToken", first_token)
        response = client.post("/api/v1/user/refresh")
        assert response.status_code == 403

        client.cookies.clear()
        client.cookies.set("refreshToken", second_token)
        assert client.post("/api/v1/user/refresh").status_code == 200

    def test_refresh_with_tampered_token(self, client: TestClient):
        client.cookies.set("refreshToken", "not.a.token")
        response = client.post("/api/v1/user/refresh")
        assert response.status_code == 403

    def test_refresh_with_expired_token(self, client: TestClient, test_user: dict, db_session: Session):
        token, _ = get_jwt_service().issue_refresh_token(
            test_user["user_id"], now=datetime.utcnow() - timedelta(days=8)
        )
        user = _stored_user(db_session)
        user.refresh_token = token
        db_session.commit()

        client.cookies.set("refreshToken", token)
        assert client.post("/api/v1/user/refresh").status_code == 403

    def test_access_token_is_not_a_refresh_token(self, client: TestClient, test_user: dict):
        access_token = _login(client).cookies["accessToken"]
        client.cookies.clear()
        client.cookies.set("refreshToken", access_token)
        assert client.post("/api/v1/user/refresh").status_code == 403


class TestLogout:
    """Tests for ending a session."""

    def test_logout_clears_session(self, client: TestClient, test_user: dict, db_session: Session):
        refresh_token = _login(client).cookies["refreshToken"]

        response = client.post("/api/v1/user/logout")
        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"
        assert _stored_user(db_session).refresh_token is None

        cookies = _set_cookie_headers(response)
        assert "max-age=0" in cookies["accessToken"]
        assert "max-age=0" in cookies["refreshToken"]

        # In-flight refreshes for the old session now fail
        client.cookies.clear()
        client.cookies.set("refreshToken", refresh_token)
        assert client.post("/api/v1/user/refresh").status_code == 403

    def test_logout_requires_auth(self, client: TestClient):
        assert client.post("/api/v1/user/logout").status_code == 401

    def test_service_logout_without_session(self, db_session: Session, test_user: dict):
        """Logging out a user with no active session, or no user at all, is harmless."""
        service = AuthService()
        service.logout(db_session, test_user["user_id"])
        service.logout(db_session, 9999)
        assert _stored_user(db_session).refresh_token is None


class TestProfile:
    """Tests for reading and updating the profile."""

    def test_get_profile(self, auth_client: TestClient):
        response = auth_client.get("/api/v1/user/profile")
        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "tester"
        assert set(data) == {"id", "firstName", "lastName", "username", "email", "createdAt", "updatedAt"}

    def test_profile_requires_auth(self, client: TestClient):
        response = client.get("/api/v1/user/profile")
        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHENTICATED"

    def test_update_names(self, auth_client: TestClient):
        response = auth_client.put("/api/v1/user/profile", json={"firstName": "Ada", "username": "AdaL"})
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["firstName"] == "Ada"
        assert user["lastName"] == "User"
        assert user["username"] == "adal"

    def test_update_username_conflict(self, auth_client: TestClient, db_session: Session):
        make_user(db_session, email="other@example.com", username="taken")
        response = auth_client.put("/api/v1/user/profile", json={"username": "taken"})
        assert response.status_code == 400

    def test_password_change_requires_current_password(self, auth_client: TestClient):
        response = auth_client.put("/api/v1/user/profile", json={"newPassword": "brandnewpass"})
        assert response.status_code == 400

    def test_password_change_wrong_current_password(self, auth_client: TestClient):
        response = auth_client.put(
            "/api/v1/user/profile",
            json={"currentPassword": "wrongpassword", "newPassword": "brandnewpass"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Current password incorrect"

    def test_password_change_success(self, auth_client: TestClient):
        response = auth_client.put(
            "/api/v1/user/profile",
            json={"currentPassword": TEST_PASSWORD, "newPassword": "brandnewpass"},
        )
        assert response.status_code == 200

        login = auth_client.post("/api/v1/user/login", json={"email": "test@example.com", "password": "brandnewpass"})
        assert login.status_code == 200

    def test_blank_new_password_is_ignored(self, auth_client: TestClient):
        response = auth_client.put("/api/v1/user/profile", json={"newPassword": "", "lastName": "Lovelace"})
        assert response.status_code == 200
        assert _login(auth_client).status_code == 200


class TestForgotPassword:
    """Tests for requesting a reset link."""

    def test_same_response_for_unknown_email(self, client: TestClient, test_user: dict):
        """The response does not reveal whether an account exists."""
        existing = client.post("/api/v1/user/forgot-password", json={"email": "test@example.com"})
        missing = client.post("/api/v1/user/forgot-password", json={"email": "nobody@example.com"})
        assert existing.status_code == 200
        assert missing.status_code == 200
        assert existing.json() == missing.json()

    def test_stores_only_token_hash(self, client: TestClient, test_user: dict, db_session: Session):
        with patch("taskflow.services.mail.logger") as mock_logger:
            client.post("/api/v1/user/forgot-password", json={"email": "test@example.com"})
            url = mock_logger.info.call_args_list[0].args[1]

        token = url.rsplit("/", 1)[1]
        user = _stored_user(db_session)
        assert user.reset_password_token == hash_reset_token(token)
        assert user.reset_password_token != token
        assert user.reset_password_expires_at > datetime.utcnow() + timedelta(minutes=14)

    def test_mail_failure_still_returns_200(self, client: TestClient, test_user: dict):
        with patch(
            "taskflow.services.mail.MailService.send_password_reset",
            side_effect=smtplib.SMTPException("down"),
        ):
            response = client.post("/api/v1/user/forgot-password", json={"email": "test@example.com"})
        assert response.status_code == 200

    def test_invalid_email_format(self, client: TestClient):
        response = client.post("/api/v1/user/forgot-password", json={"email": "nope"})
        assert response.status_code == 400


class TestResetPassword:
    """Tests for completing a password reset."""

    def _reset(self, client: TestClient, token: str, password: str = "newpassword456", confirm: str | None = None):
        return client.post(
            f"/api/v1/user/reset-password/{token}",
            json={"password": password, "confirmPassword": confirm or password},
        )

    def test_reset_with_valid_token(self, client: TestClient, test_user: dict, db_session: Session):
        token = AuthService().request_password_reset(db_session, "test@example.com")

        response = self._reset(client, token)
        assert response.status_code == 200
        assert response.json()["message"] == "Password reset successful!"

        user = _stored_user(db_session)
        assert user.reset_password_token is None
        assert user.reset_password_expires_at is None

        login = client.post("/api/v1/user/login", json={"email": "test@example.com", "password": "newpassword456"})
        assert login.status_code == 200

    def test_reset_token_is_single_use(self, client: TestClient, test_user: dict, db_session: Session):
        token = AuthService().request_password_reset(db_session, "test@example.com")
        assert self._reset(client, token).status_code == 200
        assert self._reset(client, token, password="anotherpassword").status_code == 400

    def test_reset_with_expired_token(self, client: TestClient, test_user: dict, db_session: Session):
        token = AuthService().request_password_reset(db_session, "test@example.com")
        user = _stored_user(db_session)
        user.reset_password_expires_at = datetime.utcnow() - timedelta(minutes=1)
        db_session.commit()

        response = self._reset(client, token)
        assert response.status_code == 400
        assert "expired" in response.json()["message"].lower()
        assert _stored_user(db_session).reset_password_token is None

    def test_reset_with_invalid_token(self, client: TestClient):
        response = self._reset(client, "totally-bogus-token")
        assert response.status_code == 400
        assert "Invalid" in response.json()["message"]

    def test_reset_password_mismatch(self, client: TestClient, test_user: dict, db_session: Session):
        token = AuthService().request_password_reset(db_session, "test@example.com")
        response = self._reset(client, token, password="newpassword456", confirm="different456")
        assert response.status_code == 400
        # Validation happens before the token is consumed
        assert _stored_user(db_session).reset_password_token is not None


class TestHealthCheck:
    def test_health_check(self, client: TestClient):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["app"] == "taskflow"

    def test_unknown_route(self, client: TestClient):
        response = client.get("/api/v1/nowhere")
        assert response.status_code == 404
        assert response.json()["message"] == "Not Found - /api/v1/nowhere"
