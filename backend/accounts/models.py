"""
Accounts app models.

Defines the custom ``User`` (one role per account) and the ``Worker``
roster entry that the complaint lifecycle assigns complaints to.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models

from core.models import TimeStampedModel


class UserRole(models.TextChoices):
    """Roles resolved for every authenticated caller."""

    ADMIN = "admin", "Administrator"
    WORKER = "worker", "Field Worker"
    CITIZEN = "citizen", "Citizen"


class User(AbstractUser):
    """
    Custom user model.

    Login is supported via username *or* email together with the
    password.  Each user holds exactly one role; superusers are treated
    as admins regardless of ``role``.
    """

    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )
    role = models.CharField(
        max_length=10,
        choices=UserRole.choices,
        default=UserRole.CITIZEN,
        verbose_name="Role",
        db_index=True,
    )

    REQUIRED_FIELDS = ["email"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return self.get_full_name() or self.username

    @property
    def is_admin(self) -> bool:
        return self.is_superuser or self.role == UserRole.ADMIN


class Worker(TimeStampedModel):
    """
    Field worker on the municipal roster.

    Owned by roster management; the complaint lifecycle only reads the
    worker's identity, display name, email and active flag.
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name="worker_profile",
        verbose_name="User Account",
    )
    display_name = models.CharField(
        max_length=255,
        verbose_name="Display Name",
    )
    email = models.EmailField(
        blank=True,
        default="",
        verbose_name="Contact Email",
    )
    phone = models.CharField(
        max_length=20,
        blank=True,
        default="",
        verbose_name="Phone",
    )
    area = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Area / Ward",
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name="Active",
        db_index=True,
    )

    class Meta:
        verbose_name = "Worker"
        verbose_name_plural = "Workers"
        ordering = ["display_name"]

    def __str__(self):
        return self.display_name

    @property
    def contact_email(self) -> str:
        """Roster email, falling back to the account email."""
        return self.email or self.user.email
