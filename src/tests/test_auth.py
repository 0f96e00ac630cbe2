"""Authentication flows: register, login, refresh, logout, logout-all, soft delete."""

from __future__ import annotations

import time
from unittest import mock

import jwt
from django.conf import settings
from django.db import DatabaseError
from rest_framework.test import APIClient

from access_control.roles import Role
from authentication.services import BlocklistUnavailable, TokenService
from tests.utils import NewsroomTestCase


class AuthFlowTests(NewsroomTestCase):
    """End-to-end tests covering auth endpoints and soft delete behavior."""

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.user = cls.member

    def setUp(self):
        """Fresh DRF APIClient per test."""
        self.api_client: APIClient = APIClient()

    def _login_response(self, password=None):
        return self.api_client.post(
            "/auth/login/",
            {"email": self.user.email, "password": password or self.password},
            format="json",
        )

    def _login(self) -> dict:
        """Log in as the default user and return the token payload."""
        return self._login_response().json()["data"]

    def _authenticate(self) -> dict:
        """Log in and attach the access token to the default client."""
        tokens = self._login()
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
        return tokens

    def _refresh(self, token):
        return self.api_client.post("/auth/refresh/", {"refresh": token}, format="json")

    def _login_two_devices(self):
        """Two independent logins for the same user."""
        return self._login(), self._login()

    def _create_two_device_clients(self):
        """Helper to create two APIClients authenticated as the same user."""
        login_a, login_b = self._login_two_devices()
        client_a = APIClient()
        client_b = APIClient()
        client_a.credentials(HTTP_AUTHORIZATION=f"Bearer {login_a['access']}")
        client_b.credentials(HTTP_AUTHORIZATION=f"Bearer {login_b['access']}")
        return client_a, client_b

    def test_register_success(self):
        """Successful registration returns profile and envelope."""
        payload = {
            "email": "new@example.com",
            "password": "NewPass123!",
            "repeat_password": "NewPass123!",
            "name": "New Reporter",
        }
        response = self.api_client.post("/auth/register/", payload, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(body["errors"], [])
        self.assertEqual(body["data"]["email"], payload["email"])

    def test_register_password_mismatch(self):
        """Mismatched passwords yield 400 with errors populated."""
        payload = {
            "email": "new2@example.com",
            "password": "Password123",
            "repeat_password": "Mismatch123",
        }
        response = self.api_client.post("/auth/register/", payload, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 400)
        self.assertIsNone(body["data"])
        self.assertTrue(body["errors"])

    def test_login_success_returns_tokens(self):
        """Valid credentials return access and refresh tokens."""
        response = self._login_response()
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertIn("access", body["data"])
        self.assertIn("refresh", body["data"])
        self.assertEqual(body["errors"], [])

    def test_login_invalid_credentials_401(self):
        """Bad password returns 401 with null data."""
        response = self._login_response(password="wrongpass")
        body = response.json()

        self.assertEqual(response.status_code, 401)
        self.assertIsNone(body["data"])
        self.assertTrue(body["errors"])

    def test_login_inactive_user_401(self):
        """Inactive user cannot log in and receives 401."""
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])

        response = self._login_response()
        body = response.json()

        self.assertEqual(response.status_code, 401)
        self.assertIsNone(body["data"])
        self.assertTrue(body["errors"])

    def test_refresh_with_valid_refresh_token(self):
        """Refresh endpoint issues new access/refresh tokens."""
        login = self._login()
        old_access = login["access"]
        refresh_token = login["refresh"]

        response = self._refresh(refresh_token)
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertIn("access", body["data"])
        self.assertIn("refresh", body["data"])
        self.assertNotEqual(body["data"]["access"], old_access)

    def test_refresh_with_access_token_rejected(self):
        """Providing an access token to refresh endpoint returns 401."""
        tokens = self._login()

        response = self._refresh(tokens["access"])
        body = response.json()

        self.assertEqual(response.status_code, 401)
        self.assertIsNone(body["data"])
        self.assertTrue(body["errors"])

    def test_logout_blocklists_token(self):
        """Logout blocklists current access token causing subsequent 401."""
        self._authenticate()

        logout_response = self.api_client.post("/auth/logout/")
        self.assertEqual(logout_response.status_code, 204)

        # Reusing the same token should now fail because it was blocklisted.
        me_response = self.api_client.get("/auth/me/")
        self.assertEqual(me_response.status_code, 401)

    def test_soft_delete_blocks_token_and_future_login(self):
        """Soft delete blocklists active token and prevents future logins."""
        self._authenticate()

        delete_response = self.api_client.delete("/auth/me/")
        self.assertEqual(delete_response.status_code, 204)

        # Existing token is blocklisted.
        me_response = self.api_client.get("/auth/me/")
        self.assertEqual(me_response.status_code, 401)

        # User is inactive and cannot log in again.
        relogin = self._login_response()
        self.assertEqual(relogin.status_code, 401)

    def test_logout_all_revokes_access_and_refresh_tokens_across_devices(self):
        """logout-all invalidates all existing tokens (access and refresh)."""
        login_a, login_b = self._login_two_devices()
        client_a = APIClient()
        client_a.credentials(HTTP_AUTHORIZATION=f"Bearer {login_a['access']}")
        client_b = APIClient()
        client_b.credentials(HTTP_AUTHORIZATION=f"Bearer {login_b['access']}")

        self.assertEqual(client_a.post("/auth/logout-all/").status_code, 204)

        # The version bump revokes the other device without touching its jti.
        self.assertEqual(client_b.get("/auth/me/").status_code, 401)
        for tokens in (login_a, login_b):
            self.assertEqual(self._refresh(tokens["refresh"]).status_code, 401)
        self.user.refresh_from_db()
        self.assertEqual(self.user.token_version, 2)

    def test_refresh_after_soft_delete_returns_401(self):
        """Refresh tokens issued before soft delete must not work afterwards."""
        refresh = self._authenticate()["refresh"]

        delete_response = self.api_client.delete("/auth/me/")
        self.assertEqual(delete_response.status_code, 204)

        # Attempt to use the old refresh token after soft delete.
        refresh_response = self._refresh(refresh)
        body = refresh_response.json()

        self.assertEqual(refresh_response.status_code, 401)
        self.assertIsNone(body["data"])
        self.assertTrue(body["errors"])

    def test_logout_redis_down_returns_503(self):
        """If Redis is unavailable during logout, the API should fail-closed."""
        self._authenticate()

        # Simulate Redis failure when block_token is invoked.
        with mock.patch.object(
                TokenService,
                "block_token",
                side_effect=BlocklistUnavailable("Redis unavailable while blocklisting"),
        ):
            response = self.api_client.post("/auth/logout/")

        body = response.json()
        self.assertEqual(response.status_code, 503)
        self.assertIsNone(body["data"])
        self.assertTrue(body["errors"])

    def test_expired_refresh_token_returns_401(self):
        """Expired refresh tokens should be rejected with 401 Unauthorized."""
        # Ensure user is active and has a role for token payload.
        user = self.user
        now = int(time.time())
        payload = {
            "sub": str(user.id),
            "jti": "expired-jti",
            "exp": now - 60,  # expired 1 minute ago
            "iat": now - 120,
            "role": str(user.role),
            "type": "refresh",
            "ver": user.token_version,
        }
        expired_refresh = jwt.encode(payload, settings.SECRET_KEY, algorithm=TokenService.ALGORITHM)

        response = self._refresh(expired_refresh)
        body = response.json()

        self.assertEqual(response.status_code, 401)
        self.assertIsNone(body["data"])
        self.assertTrue(body["errors"])

    def test_concurrent_logout_from_multiple_devices(self):
        """Multiple access tokens for the same user can be logged out independently."""
        # Login from two "devices".
        client_a, client_b = self._create_two_device_clients()

        # Both devices log out with their respective tokens.
        resp_a = client_a.post("/auth/logout/")
        resp_b = client_b.post("/auth/logout/")
        self.assertEqual(resp_a.status_code, 204)
        self.assertEqual(resp_b.status_code, 204)

        # Both tokens are now unusable.
        self.assertEqual(client_a.get("/auth/me/").status_code, 401)
        self.assertEqual(client_b.get("/auth/me/").status_code, 401)

        # A fresh login should still work.
        new_login = self._login_response()
        self.assertEqual(new_login.status_code, 200)

    def test_concurrent_soft_delete_is_idempotent_and_safe(self):
        """Repeated DELETE /auth/me/ calls do not corrupt state."""
        # Simulate two "devices" each with their own access token.
        client_a, client_b = self._create_two_device_clients()

        # First device performs soft delete and should get 204.
        delete_a = client_a.delete("/auth/me/")
        self.assertEqual(delete_a.status_code, 204)

        # Second device attempts soft delete after the user is already inactive.
        # Middleware will reject the token because the user is inactive, yielding 401.
        delete_b = client_b.delete("/auth/me/")
        self.assertEqual(delete_b.status_code, 401)

        # The user must be inactive in the database.
        self.user.refresh_from_db()
        self.assertFalse(self.user.is_active)

        # Both tokens should now be unusable for authenticated endpoints.
        self.assertEqual(client_a.get("/auth/me/").status_code, 401)
        self.assertEqual(client_b.get("/auth/me/").status_code, 401)

    def test_patch_me_cannot_change_email(self):
        """PATCH /auth/me/ must not allow changing email."""
        self._authenticate()

        response = self.api_client.patch(
            "/auth/me/",
            {"email": "new@example.com"},
            format="json",
        )
        body = response.json()

        self.assertEqual(response.status_code, 400)
        self.assertIsNone(body["data"])
        self.assertTrue(body["errors"])

    def test_refresh_when_database_unavailable_returns_503_with_envelope(self):
        """Database errors during refresh should surface as 503 with JSON envelope."""
        # Obtain a valid refresh token first.
        login = self._login()
        refresh_token = login["refresh"]

        # Simulate a database outage when looking up the user during refresh.
        with mock.patch(
                "authentication.views._get_active_user",
                side_effect=DatabaseError("DB down"),
        ):
            response = self._refresh(refresh_token)

        body = response.json()
        self.assertEqual(response.status_code, 503)
        self.assertIsNone(body["data"])
        self.assertTrue(body["errors"])

    def test_register_cannot_self_assign_privileged_role(self):
        """Requesting journalist/moderator/admin at sign-up yields a reader."""
        for requested in (Role.JOURNALIST, Role.MODERATOR, Role.ADMIN):
            payload = {
                "email": f"{requested}@example.com",
                "password": "NewPass123!",
                "repeat_password": "NewPass123!",
                "name": "Hopeful",
                "role": requested.value,
            }
            response = self.api_client.post("/auth/register/", payload, format="json")

            self.assertEqual(response.status_code, 201)
            self.assertEqual(response.json()["data"]["role"], Role.READER)

    def test_register_honours_registered_user_role(self):
        payload = {
            "email": "commenter@example.com",
            "password": "NewPass123!",
            "repeat_password": "NewPass123!",
            "name": "Commenter",
            "role": "registered_user",
        }
        response = self.api_client.post("/auth/register/", payload, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["data"]["role"], Role.REGISTERED_USER)

    def test_access_token_carries_role_and_version(self):
        tokens = self._login()

        payload = TokenService.decode_token(tokens["access"], expected_type="access")
        self.assertEqual(payload["role"], "registered_user")
        self.assertEqual(payload["ver"], self.user.token_version)
        self.assertEqual(tokens["user"]["email"], self.user.email)

    def test_patch_me_updates_profile_fields(self):
        self._authenticate()

        response = self.api_client.patch(
            "/auth/me/",
            {"bio": "Local politics nerd.", "specialization": "politics"},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["bio"], "Local politics nerd.")
        self.assertEqual(response.json()["data"]["specialization"], "politics")

    def test_patch_me_cannot_change_role(self):
        self._authenticate()

        response = self.api_client.patch("/auth/me/", {"role": "admin"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, Role.REGISTERED_USER)

    def test_authenticated_client_reaches_me(self):
        tokens = self._authenticate()

        response = self.api_client.get("/auth/me/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["email"], self.user.email)
        self.assertEqual(TokenService.decode_token(tokens["access"], "access")["sub"], str(self.user.pk))

    def test_signing_key_meets_hs256_minimum(self):
        # RFC 7518 asks for a key at least as long as the HS256 digest.
        self.assertGreaterEqual(len(settings.SECRET_KEY.encode()), 32)
