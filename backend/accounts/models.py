"""
Accounts app models.

Defines the closed ``Role`` enumeration and a custom User model that
extends Django's ``AbstractUser``.  A persisted ``User`` is the durable
form of a principal: the access policy only ever looks at its primary
key and its role.
"""

from django.contrib.auth.models import AbstractUser
from django.contrib.auth.models import UserManager as DjangoUserManager
from django.db import models


class Role(models.TextChoices):
    """
    The four principal roles.

    Exhaustive by construction: there is no way to store or compare
    against a role that is not one of these members.
    """

    ADMIN = "admin", "Admin"
    INVESTIGATOR = "investigator", "Investigator"
    ANALYST = "analyst", "Analyst"
    LEGAL = "legal", "Legal"


class UserManager(DjangoUserManager):
    """Superusers created from the CLI are admins of the application too."""

    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault("role", Role.ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    """
    Custom user model for the evidence management system.

    Login is supported via ``username`` or ``email`` together with the
    password.  Each user holds exactly **one** role at a time; only an
    admin may create users or change a role.
    """

    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )
    full_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Full Name",
    )
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.ANALYST,
        db_index=True,
        verbose_name="Role",
    )
    badge_number = models.CharField(
        max_length=50,
        blank=True,
        default="",
        verbose_name="Badge Number",
    )
    department = models.CharField(
        max_length=100,
        blank=True,
        default="",
        verbose_name="Department",
    )

    objects = UserManager()

    # Fields required when creating a superuser via CLI
    REQUIRED_FIELDS = ["email"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        ordering = ["username"]

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    def get_full_name(self) -> str:
        return self.full_name or super().get_full_name()
