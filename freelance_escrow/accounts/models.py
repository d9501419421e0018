from django.db import models
from django.contrib.auth.models import AbstractUser, BaseUserManager
from country_list import countries_for_language
from auditlog.registry import auditlog
from auditlog.models import AuditlogHistoryField


class CustomUserManager(BaseUserManager):
    """
    Manager for CustomUser. Handles user and superuser creation using email as the unique identifier.
    """
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("Email is required.")
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('user_type', CustomUser.ADMIN)

        return self.create_user(email, password, **extra_fields)


class CustomUser(AbstractUser):
    """
    Platform account. Email is the login; `user_type` is the marketplace role
    used by the payment flow (clients pay, freelancers get paid, admins
    adjudicate disputes).
    """
    CLIENT = 'client'
    FREELANCER = 'freelancer'
    ADMIN = 'admin'

    USER_TYPE_CHOICES = (
        (FREELANCER, 'Freelancer'),
        (CLIENT, 'Client'),
        (ADMIN, 'Admin'),
    )

    user_type = models.CharField(max_length=20, choices=USER_TYPE_CHOICES)
    phone_number = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=50, choices=countries_for_language('en'), blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    email = models.EmailField(unique=True, blank=False)
    deleted_at = models.DateTimeField(null=True, blank=True)
    username = None

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    objects = CustomUserManager()

    history = AuditlogHistoryField()

    def __str__(self):
        return self.email

    @property
    def role(self):
        """Staff and superusers always act as admins, whatever their user_type."""
        if self.is_staff or self.is_superuser:
            return self.ADMIN
        return self.user_type

    @property
    def is_admin(self):
        return self.role == self.ADMIN


auditlog.register(CustomUser, exclude_fields=['password', 'last_login'])
