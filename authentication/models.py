"""
Authentication models for the race incident backend.

Contains:
- UserRole / UserStatus constants
- Custom User model identified by email, with marshal fields and the
  one-time-code columns used by the OTP login

Which role may do what to a ticket is decided in tickets.roles; this
module only defines the role names.
"""

import secrets
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.utils import timezone

from core.models import BaseModel


class UserRole:
    """
    User role constants.

    Creators file tickets from the track, processors act on the tickets of
    their department, Scrutineers and Judgement hand decisions back and
    forth, ADMIN oversees everything.
    """
    # Field marshals (creators)
    MEDICAL_MARSHAL = 'MEDICAL_MARSHAL'
    MEDICAL_VENDOR = 'MEDICAL_VENDOR'
    MEDICAL_EVACUATION = 'MEDICAL_EVACUATION'
    SPORT_MARSHAL = 'SPORT_MARSHAL'
    SAFETY_MARSHAL = 'SAFETY_MARSHAL'

    # Medical department
    MEDICAL_OP_TEAM = 'MEDICAL_OP_TEAM'
    DEPUTY_MEDICAL_OFFICER = 'DEPUTY_MEDICAL_OFFICER'
    CHIEF_MEDICAL_OFFICER = 'CHIEF_MEDICAL_OFFICER'

    # Safety department
    SAFETY_OP_TEAM = 'SAFETY_OP_TEAM'
    DEPUTY_SAFETY_OFFICER = 'DEPUTY_SAFETY_OFFICER'
    SAFETY_OFFICER_CHIEF = 'SAFETY_OFFICER_CHIEF'

    # Race control (sport) department
    CONTROL_OP_TEAM = 'CONTROL_OP_TEAM'
    DEPUTY_CONTROL_OP_OFFICER = 'DEPUTY_CONTROL_OP_OFFICER'
    CHIEF_OF_CONTROL = 'CHIEF_OF_CONTROL'

    # Decision makers
    SCRUTINEERS = 'SCRUTINEERS'
    JUDGEMENT = 'JUDGEMENT'

    ADMIN = 'ADMIN'

    CHOICES = [
        (MEDICAL_MARSHAL, 'Medical Marshal'),
        (MEDICAL_VENDOR, 'Medical Vendor'),
        (MEDICAL_EVACUATION, 'Medical Evacuation'),
        (SPORT_MARSHAL, 'Sport Marshal'),
        (SAFETY_MARSHAL, 'Safety Marshal'),
        (MEDICAL_OP_TEAM, 'Medical Operation Team'),
        (DEPUTY_MEDICAL_OFFICER, 'Deputy Medical Officer'),
        (CHIEF_MEDICAL_OFFICER, 'Chief Medical Officer'),
        (SAFETY_OP_TEAM, 'Safety Operation Team'),
        (DEPUTY_SAFETY_OFFICER, 'Deputy Safety Officer'),
        (SAFETY_OFFICER_CHIEF, 'Chief Safety Officer'),
        (CONTROL_OP_TEAM, 'Control Operation Team'),
        (DEPUTY_CONTROL_OP_OFFICER, 'Deputy Control Operation Officer'),
        (CHIEF_OF_CONTROL, 'Chief of Control'),
        (SCRUTINEERS, 'Scrutineers'),
        (JUDGEMENT, 'Judgement'),
        (ADMIN, 'Administrator'),
    ]

    ALL = [value for value, _ in CHOICES]


class UserStatus:
    """User account status constants."""
    ACTIVE = 'ACTIVE'
    SUSPENDED = 'SUSPENDED'

    CHOICES = [
        (ACTIVE, 'Active'),
        (SUSPENDED, 'Suspended'),
    ]


class UserManager(BaseUserManager):
    """
    Custom user manager.

    Regular users log in with a one-time code and get an unusable password;
    superusers keep a password for the Django admin.
    """

    def get_queryset(self):
        return super().get_queryset().filter(is_deleted=False)

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('User must have an email address')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, email, password, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', UserRole.ADMIN)
        extra_fields.setdefault('status', UserStatus.ACTIVE)
        extra_fields.setdefault('name', 'Administrator')

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin, BaseModel):
    """
    Event official or marshal.

    The workflow only ever reads id, role, name and is_intake_enabled from
    the authenticated user.
    """

    email = models.EmailField(
        unique=True,
        help_text="Login identifier"
    )

    name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Display name printed on tickets and reports"
    )

    role = models.CharField(
        max_length=32,
        choices=UserRole.CHOICES,
        default=UserRole.SPORT_MARSHAL,
        db_index=True
    )

    status = models.CharField(
        max_length=16,
        choices=UserStatus.CHOICES,
        default=UserStatus.ACTIVE,
        db_index=True
    )

    is_intake_enabled = models.BooleanField(
        default=False,
        help_text="Senior officers with intake see every ticket of their department"
    )

    # Marshal specific
    marshal_id = models.CharField(
        max_length=50,
        unique=True,
        null=True,
        blank=True,
        help_text="Marshal licence / badge number used by the public intake forms"
    )

    mobile = models.CharField(max_length=30, blank=True)

    # One-time code login
    otp_code = models.CharField(max_length=12, blank=True)
    otp_expires_at = models.DateTimeField(null=True, blank=True)

    is_staff = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'incident_users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['name', 'email']
        default_manager_name = 'objects'
        indexes = [
            models.Index(fields=['role', 'status'], name='users_role_status_idx'),
        ]

    def __str__(self):
        return f"{self.display_name} ({self.role})"

    @property
    def display_name(self):
        return self.name or self.email

    @property
    def is_suspended(self):
        return self.status == UserStatus.SUSPENDED

    def issue_otp(self):
        """
        Store a fresh one-time code and return it.

        OTP_FIXED_CODE pins the code for development and demos; when it is
        empty a random 4 digit code is generated.
        """
        code = settings.OTP_FIXED_CODE or f"{secrets.randbelow(10000):04d}"
        self.otp_code = code
        self.otp_expires_at = timezone.now() + timedelta(minutes=settings.OTP_EXPIRY_MINUTES)
        self.save(update_fields=['otp_code', 'otp_expires_at', 'updated_at'])
        return code

    def otp_matches(self, code):
        return bool(self.otp_code) and secrets.compare_digest(self.otp_code, str(code))

    def otp_expired(self):
        return self.otp_expires_at is None or self.otp_expires_at < timezone.now()

    def clear_otp(self):
        self.otp_code = ''
        self.otp_expires_at = None
        self.save(update_fields=['otp_code', 'otp_expires_at', 'updated_at'])
