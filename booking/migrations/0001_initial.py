import booking.models
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Infrastructure",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                ("description", models.TextField(blank=True)),
                ("location", models.CharField(blank=True, max_length=100)),
                ("is_active", models.BooleanField(default=True)),
            ],
        ),
        migrations.CreateModel(
            name="FilterQuestion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("question_text", models.TextField()),
                (
                    "question_type",
                    models.CharField(
                        choices=[("text", "Text"), ("number", "Number"), ("dropdown", "Dropdown"), ("document", "Document")],
                        default="text",
                        max_length=10,
                    ),
                ),
                ("is_required", models.BooleanField(default=False)),
                ("options", models.JSONField(blank=True, default=list)),
                ("display_order", models.PositiveIntegerField(default=0)),
                (
                    "infrastructure",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="questions",
                        to="booking.infrastructure",
                    ),
                ),
            ],
            options={
                "ordering": ["infrastructure_id", "display_order", "id"],
            },
        ),
        migrations.CreateModel(
            name="TimeWindow",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                (
                    "kind",
                    models.CharField(
                        choices=[("timeslot", "Timeslot"), ("booking", "Booking")],
                        default="timeslot",
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("available", "Available"),
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                            ("completed", "Completed"),
                            ("expired", "Expired"),
                            ("canceled", "Canceled"),
                        ],
                        default="available",
                        max_length=10,
                    ),
                ),
                ("claimant_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("purpose", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "infrastructure",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="windows",
                        to="booking.infrastructure",
                    ),
                ),
            ],
            options={
                "ordering": ["-date", "start_time"],
                "indexes": [
                    models.Index(fields=["infrastructure", "date", "status"], name="booking_win_infra_date_idx"),
                    models.Index(fields=["claimant_email", "date"], name="booking_win_claimant_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BookingAnswer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("answer_text", models.TextField(blank=True)),
                ("document_path", models.CharField(blank=True, max_length=500, null=True)),
                (
                    "question",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="answers",
                        to="booking.filterquestion",
                    ),
                ),
                (
                    "window",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="answers",
                        to="booking.timewindow",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="ActionToken",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "token",
                    models.CharField(
                        default=booking.models._generate_token, editable=False, max_length=64, unique=True
                    ),
                ),
                (
                    "purpose",
                    models.CharField(
                        choices=[("manager_action", "Manager action"), ("guest_booking", "Guest booking")],
                        max_length=20,
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("expires_at", models.DateTimeField()),
                ("used", models.BooleanField(default=False)),
                ("used_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "window",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="action_tokens",
                        to="booking.timewindow",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="InfrastructureManager",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "infrastructure",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="manager_assignments",
                        to="booking.infrastructure",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="managed_infrastructures",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "unique_together": {("user", "infrastructure")},
            },
        ),
    ]
