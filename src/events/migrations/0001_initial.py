import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies: list[tuple[str, str]] = []

    operations = [
        migrations.CreateModel(
            name="SymposiumSettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(default="Symposium", max_length=150)),
                ("day_one", models.DateField(blank=True, null=True)),
                ("day_two", models.DateField(blank=True, null=True)),
                (
                    "registration_closes_at",
                    models.DateTimeField(
                        blank=True, help_text="No new registrations are accepted after this moment.", null=True
                    ),
                ),
                (
                    "events_close_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Once this moment has passed every active event is switched to inactive.",
                        null=True,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Symposium Settings",
                "verbose_name_plural": "Symposium Settings",
            },
        ),
        migrations.CreateModel(
            name="Announcement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("title", models.CharField(max_length=200)),
                ("body", models.TextField()),
                ("is_pinned", models.BooleanField(default=False)),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
            ],
            options={
                "ordering": ["-is_pinned", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("name", models.CharField(max_length=150, unique=True)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "event_type",
                    models.CharField(
                        choices=[("workshop", "Workshop"), ("event", "Event")],
                        db_index=True,
                        default="event",
                        max_length=20,
                    ),
                ),
                ("day", models.PositiveSmallIntegerField(choices=[(1, "Day 1"), (2, "Day 2")], default=1)),
                ("total_seats", models.PositiveIntegerField(default=0)),
                ("available_seats", models.PositiveIntegerField(default=0)),
                ("partner_seats", models.PositiveIntegerField(default=0)),
                ("partner_available_seats", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
            ],
            options={
                "ordering": ["day", "event_type", "name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("available_seats__gte", 0), ("available_seats__lte", models.F("total_seats"))
                        ),
                        name="event_available_seats_within_total",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("partner_available_seats__gte", 0),
                            ("partner_available_seats__lte", models.F("partner_seats")),
                        ),
                        name="event_partner_available_seats_within_total",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Participant",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("full_name", models.CharField(max_length=150)),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("phone", models.CharField(max_length=20)),
                ("institution", models.CharField(max_length=200)),
                ("department", models.CharField(max_length=150)),
                (
                    "year_of_study",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(4),
                        ]
                    ),
                ),
                ("city", models.CharField(blank=True, default="", max_length=100)),
                ("state", models.CharField(blank=True, default="", max_length=100)),
                ("accommodation_required", models.BooleanField(default=False)),
                (
                    "cohort",
                    models.CharField(
                        choices=[("general", "General"), ("partner", "Partner institution")],
                        db_index=True,
                        default="general",
                        max_length=20,
                    ),
                ),
                ("roll_number", models.CharField(blank=True, max_length=32, null=True, unique=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("year_of_study__gte", 1), ("year_of_study__lte", 4)),
                        name="participant_year_of_study_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PartnerStudent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("roll_number", models.CharField(max_length=32, unique=True)),
                ("name", models.CharField(blank=True, default="", max_length=150)),
                ("is_registered", models.BooleanField(default=False)),
                ("registered_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["roll_number"],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("transaction_id", models.CharField(max_length=100, unique=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("upi", "UPI"),
                            ("bank_transfer", "Bank transfer"),
                            ("cash", "Cash"),
                            ("other", "Other"),
                        ],
                        default="upi",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("Pending", "Pending"), ("Success", "Success"), ("Failed", "Failed")],
                        db_index=True,
                        default="Success",
                        max_length=20,
                    ),
                ),
                ("verified_by_admin", models.BooleanField(db_index=True, default=False)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("verified_by", models.CharField(blank=True, default="", max_length=150)),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("self_reported", "Self reported"),
                            ("reconciled", "Reconciled from statement"),
                            ("manual", "Manual"),
                        ],
                        default="self_reported",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "participant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="events.participant",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Registration",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("code", models.CharField(blank=True, max_length=40, null=True, unique=True)),
                ("amount_paid", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("Pending", "Pending"), ("Success", "Success")],
                        db_index=True,
                        default="Pending",
                        max_length=20,
                    ),
                ),
                (
                    "attendance_status",
                    models.CharField(
                        choices=[("NOT_ATTENDED", "Not attended"), ("ATTENDED", "Attended")],
                        db_index=True,
                        default="NOT_ATTENDED",
                        max_length=20,
                    ),
                ),
                ("attended_at", models.DateTimeField(blank=True, null=True)),
                ("attendance_marked_by", models.CharField(blank=True, default="", max_length=150)),
                ("seat_held", models.BooleanField(default=False)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="registrations",
                        to="events.event",
                    ),
                ),
                (
                    "participant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="registrations",
                        to="events.participant",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.UniqueConstraint(fields=("participant", "event"), name="unique_participant_event"),
                ],
            },
        ),
    ]
