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
            name="Case",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("case_number", models.CharField(max_length=50, unique=True, verbose_name="Case Number")),
                ("title", models.CharField(max_length=255, verbose_name="Title")),
                ("description", models.TextField(blank=True, default="", verbose_name="Description")),
                ("findings", models.TextField(blank=True, default="", verbose_name="Findings")),
                ("due_date", models.DateField(blank=True, null=True, verbose_name="Due Date")),
                ("status", models.CharField(choices=[("active", "Active"), ("completed", "Completed"), ("closed", "Closed"), ("archived", "Archived")], db_index=True, default="active", max_length=20, verbose_name="Status")),
                ("priority", models.CharField(choices=[("low", "Low"), ("medium", "Medium"), ("high", "High"), ("urgent", "Urgent")], default="medium", max_length=20, verbose_name="Priority")),
                ("version", models.PositiveIntegerField(default=1, verbose_name="Version")),
                ("created_by", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="created_cases", to=settings.AUTH_USER_MODEL, verbose_name="Created By")),
                ("lead_investigator", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="led_cases", to=settings.AUTH_USER_MODEL, verbose_name="Lead Investigator")),
                ("assigned_to", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="assigned_cases", to=settings.AUTH_USER_MODEL, verbose_name="Assigned To")),
            ],
            options={
                "verbose_name": "Case",
                "verbose_name_plural": "Cases",
                "ordering": ["-created_at"],
            },
        ),
    ]
