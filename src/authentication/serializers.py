"""Serializers for authentication flows and user administration."""

from typing import cast

from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed

from access_control.roles import Role, SELF_ASSIGNABLE_ROLES
from .managers import UserManager

User = get_user_model()


class RegisterSerializer(serializers.Serializer):
    """Validate and create a user; only reader/registered_user are self-assignable."""

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    repeat_password = serializers.CharField(write_only=True, min_length=8)
    name = serializers.CharField(max_length=150)
    role = serializers.CharField(required=False, allow_blank=True)

    @staticmethod
    def validate_email(value):
        """Ensure email is unique before creation."""
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email already in use")
        return value.lower()

    @staticmethod
    def validate_role(value):
        """Privileged roles are silently downgraded to reader."""
        return value if value in SELF_ASSIGNABLE_ROLES else Role.READER

    def validate(self, attrs):
        """Ensure provided passwords match before creation."""
        if attrs.get("password") != attrs.get("repeat_password"):
            raise serializers.ValidationError("Passwords do not match")
        return attrs

    def create(self, validated_data):
        validated_data.pop("repeat_password")
        validated_data.setdefault("role", Role.READER)
        manager = cast(UserManager, User.objects)
        return manager.create_user(**validated_data)


class LoginSerializer(serializers.Serializer):
    """Authenticate a user via email/password using bcrypt verification."""

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        """Authenticate credentials and attach the user to validated_data."""
        email = attrs.get("email", "").lower()
        password = attrs.get("password")
        try:
            user = User.objects.get(email=email)
        except User.DoesNotExist:
            raise AuthenticationFailed("Invalid credentials")

        if not UserManager.verify_password(user, password):
            raise AuthenticationFailed("Invalid credentials")

        if not user.is_active:
            raise AuthenticationFailed("User is inactive")

        attrs["user"] = user
        return attrs


class UserSummarySerializer(serializers.ModelSerializer):
    """Shallow ``{id, name, email, role}`` view embedded in news and comments."""

    class Meta:
        model = User
        fields = ["id", "name", "email", "role"]
        read_only_fields = fields


class UserDetailSerializer(serializers.ModelSerializer):
    """Read-only user profile payload for responses."""

    class Meta:
        """Expose identity, role, and profile fields."""
        model = User
        fields = [
            "id",
            "email",
            "name",
            "role",
            "bio",
            "avatar",
            "specialization",
            "is_active",
            "date_joined",
        ]
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Patchable fields for /auth/me updates."""

    class Meta:
        """Allow partial updates of the name and profile fields."""
        model = User
        fields = ["name", "bio", "avatar", "specialization"]
        extra_kwargs = {
            "name": {"required": False, "allow_blank": False},
            "bio": {"required": False, "allow_blank": True},
            "avatar": {"required": False, "allow_blank": True},
            "specialization": {"required": False, "allow_blank": True},
        }

    def validate(self, attrs):
        """Reject attempts to change email or role via this endpoint."""
        initial = getattr(self, "initial_data", {})
        if "email" in initial:
            raise serializers.ValidationError("Email cannot be updated via this endpoint")
        if "role" in initial:
            raise serializers.ValidationError("Role can only be changed by an admin")
        return super().validate(attrs)


class RoleAssignmentSerializer(serializers.Serializer):
    """Payload for the admin role-assignment endpoint."""

    role = serializers.CharField()
