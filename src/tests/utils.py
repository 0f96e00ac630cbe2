"""Shared helpers for tests (user creation, authenticated clients, fake Redis)."""

from __future__ import annotations

from typing import Dict
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from access_control.roles import Role
from authentication.managers import UserManager
from authentication.services import TokenService
from news.models import News, NewsStatus

User = get_user_model()


class FakeRedis:
    """Minimal Redis stub supporting the commands used by TokenService."""

    def __init__(self):
        self._store: Dict[str, str] = {}

    def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        """Mimic Redis SETEX; TTL is ignored in tests, value stored in-memory."""
        self._store[key] = value

    def get(self, key: str):
        """Return stored value for key or None, matching Redis GET semantics."""
        return self._store.get(key)


def create_user(email: str, password: str, role: Role, **extra):
    """Create a user with a bcrypt-hashed password for tests."""
    extra.setdefault("name", email.split("@")[0].title())
    return User.objects.create(
        email=email,
        password_hash=UserManager.hash_password(password),
        role=role,
        **extra,
    )


def create_news(author, status=NewsStatus.APPROVED, **fields):
    """Insert an article directly, bypassing the lifecycle engine."""
    fields.setdefault("title", f"Story {News.objects.count() + 1}")
    fields.setdefault("content", "Body text.")
    return News.objects.create(author=author, status=status, **fields)


def auth_client(user) -> APIClient:
    """Return an APIClient authenticated with a fresh access token."""
    token, _ = TokenService.generate_tokens(user)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client


class NewsroomTestCase(TestCase):
    """TestCase with Redis patched out and one active user per role."""

    password = "StrongPass123"

    @classmethod
    def setUpClass(cls):
        """Patch Redis clients to use the in-memory fake for all tests."""
        super().setUpClass()
        cls.fake_redis = FakeRedis()
        cls.patchers = [
            mock.patch("core.redis_client.get_redis_client", return_value=cls.fake_redis),
            mock.patch("authentication.services.get_redis_client", return_value=cls.fake_redis),
        ]
        for patcher in cls.patchers:
            patcher.start()

    @classmethod
    def tearDownClass(cls):
        """Stop Redis patches after the suite finishes."""
        for patcher in cls.patchers:
            patcher.stop()
        super().tearDownClass()

    @classmethod
    def setUpTestData(cls):
        cls.reader = create_user("reader@test.com", cls.password, Role.READER)
        cls.member = create_user("member@test.com", cls.password, Role.REGISTERED_USER)
        cls.other_member = create_user("other@test.com", cls.password, Role.REGISTERED_USER)
        cls.journalist = create_user("journalist@test.com", cls.password, Role.JOURNALIST)
        cls.moderator = create_user("moderator@test.com", cls.password, Role.MODERATOR)
        cls.admin = create_user("admin@test.com", cls.password, Role.ADMIN)
