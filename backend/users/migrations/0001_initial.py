"""Initial migration for the users app."""

import django.contrib.auth.models
import django.contrib.auth.validators
import django.utils.timezone
from django.db import migrations, models

import users.models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                (
                    "last_login",
                    models.DateTimeField(blank=True, null=True, verbose_name="last login"),
                ),
                (
                    "is_superuser",
                    models.BooleanField(
                        default=False,
                        help_text=(
                            "Designates that this user has all permissions without "
                            "explicitly assigning them."
                        ),
                        verbose_name="superuser status",
                    ),
                ),
                (
                    "username",
                    models.CharField(
                        error_messages={"unique": "A user with that username already exists."},
                        help_text=(
                            "Required. 150 characters or fewer. Letters, digits and "
                            "@/./+/-/_ only."
                        ),
                        max_length=150,
                        unique=True,
                        validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                        verbose_name="username",
                    ),
                ),
                (
                    "first_name",
                    models.CharField(blank=True, max_length=150, verbose_name="first name"),
                ),
                (
                    "last_name",
                    models.CharField(blank=True, max_length=150, verbose_name="last name"),
                ),
                (
                    "email",
                    models.EmailField(blank=True, max_length=254, verbose_name="email address"),
                ),
                (
                    "is_staff",
                    models.BooleanField(
                        default=False,
                        help_text="Designates whether the user can log into this admin site.",
                        verbose_name="staff status",
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text=(
                            "Designates whether this user should be treated as active. "
                            "Unselect this instead of deleting accounts."
                        ),
                        verbose_name="active",
                    ),
                ),
                (
                    "date_joined",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        verbose_name="date joined",
                    ),
                ),
                (
                    "phone",
                    models.CharField(
                        blank=True,
                        help_text="Mobile number used for OTP login.",
                        max_length=32,
                        null=True,
                        unique=True,
                    ),
                ),
                ("name", models.CharField(blank=True, default="", max_length=120)),
                ("bio", models.TextField(blank=True, default="")),
                ("gender", models.CharField(blank=True, default="", max_length=32)),
                ("age", models.PositiveSmallIntegerField(blank=True, null=True)),
                (
                    "city",
                    models.CharField(blank=True, db_index=True, default="", max_length=120),
                ),
                ("images", models.JSONField(blank=True, default=list)),
                ("interests", models.JSONField(blank=True, default=list)),
                (
                    "preferred_gender",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Genders this user wants to be matched with.",
                    ),
                ),
                ("preferred_age_min", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("preferred_age_max", models.PositiveSmallIntegerField(blank=True, null=True)),
                (
                    "preset_locations",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="List of {id, name} meeting spots the user accepts.",
                    ),
                ),
                (
                    "availability",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Lowercase weekday name -> list of hours (0-23).",
                    ),
                ),
                (
                    "credits_balance",
                    models.PositiveIntegerField(default=users.models.default_credit_balance),
                ),
                ("credits_spent", models.PositiveIntegerField(default=0)),
                ("is_on_rent", models.BooleanField(default=False)),
                (
                    "active_bookings",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text=(
                            "Denormalized refs to the user's rentals, maintained best-effort."
                        ),
                    ),
                ),
                ("last_seen", models.DateTimeField(blank=True, db_index=True, null=True)),
                (
                    "groups",
                    models.ManyToManyField(
                        blank=True,
                        help_text=(
                            "The groups this user belongs to. A user will get all "
                            "permissions granted to each of their groups."
                        ),
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.group",
                        verbose_name="groups",
                    ),
                ),
                (
                    "user_permissions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Specific permissions for this user.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.permission",
                        verbose_name="user permissions",
                    ),
                ),
            ],
            options={
                "verbose_name": "user",
                "verbose_name_plural": "users",
                "abstract": False,
            },
            managers=[
                ("objects", django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.AddIndex(
            model_name="user",
            index=models.Index(fields=["city", "gender"], name="user_city_gender_idx"),
        ),
        migrations.AddConstraint(
            model_name="user",
            constraint=models.CheckConstraint(
                condition=models.Q(credits_balance__gte=0),
                name="user_credits_balance_non_negative",
            ),
        ),
    ]
