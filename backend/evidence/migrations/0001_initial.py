import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("cases", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Tag",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("name", models.CharField(max_length=100, unique=True, verbose_name="Name")),
                ("color", models.CharField(default="#3b82f6", max_length=20, verbose_name="Color")),
                ("created_by", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="created_tags", to=settings.AUTH_USER_MODEL, verbose_name="Created By")),
            ],
            options={
                "verbose_name": "Tag",
                "verbose_name_plural": "Tags",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Evidence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("title", models.CharField(max_length=255, verbose_name="Title")),
                ("description", models.TextField(blank=True, default="", verbose_name="Description")),
                ("file_name", models.CharField(blank=True, default="", max_length=255, verbose_name="File Name")),
                ("file_path", models.TextField(blank=True, default="", verbose_name="File Path")),
                ("file_size", models.PositiveBigIntegerField(blank=True, null=True, verbose_name="File Size (bytes)")),
                ("file_type", models.CharField(blank=True, default="", max_length=100, verbose_name="File Type")),
                ("hash_value", models.CharField(blank=True, default="", max_length=255, verbose_name="Hash Value")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("verified", "Verified"), ("archived", "Archived"), ("disposed", "Disposed")], db_index=True, default="pending", max_length=20, verbose_name="Status")),
                ("collected_date", models.DateTimeField(blank=True, null=True, verbose_name="Collected Date")),
                ("collected_by", models.CharField(blank=True, default="", max_length=255, verbose_name="Collected By")),
                ("location_found", models.CharField(blank=True, default="", max_length=255, verbose_name="Location Found")),
                ("version", models.PositiveIntegerField(default=1, verbose_name="Version")),
                ("case", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="evidence_items", to="cases.case", verbose_name="Case")),
                ("uploaded_by", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="uploaded_evidence", to=settings.AUTH_USER_MODEL, verbose_name="Uploaded By")),
                ("tags", models.ManyToManyField(blank=True, related_name="evidence_items", to="evidence.tag", verbose_name="Tags")),
            ],
            options={
                "verbose_name": "Evidence",
                "verbose_name_plural": "Evidence",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ChainOfCustodyEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("sequence", models.PositiveIntegerField(verbose_name="Sequence")),
                ("action", models.CharField(choices=[("created", "Created"), ("transferred", "Transferred"), ("accessed", "Accessed"), ("downloaded", "Downloaded"), ("modified", "Modified"), ("archived", "Archived")], max_length=20, verbose_name="Action")),
                ("location", models.CharField(max_length=255, verbose_name="Location")),
                ("notes", models.TextField(blank=True, default="", verbose_name="Notes")),
                ("timestamp", models.DateTimeField(verbose_name="Timestamp")),
                ("previous_hash", models.CharField(max_length=64, verbose_name="Previous Hash")),
                ("entry_hash", models.CharField(max_length=64, unique=True, verbose_name="Entry Hash")),
                ("evidence", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="custody_entries", to="evidence.evidence", verbose_name="Evidence")),
                ("from_principal", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="custody_released", to=settings.AUTH_USER_MODEL, verbose_name="From")),
                ("to_principal", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="custody_received", to=settings.AUTH_USER_MODEL, verbose_name="To")),
                ("recorded_by", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="custody_recorded", to=settings.AUTH_USER_MODEL, verbose_name="Recorded By")),
            ],
            options={
                "verbose_name": "Chain-of-Custody Entry",
                "verbose_name_plural": "Chain-of-Custody Entries",
                "ordering": ["-timestamp", "-sequence"],
                "constraints": [
                    models.UniqueConstraint(fields=("evidence", "sequence"), name="custody_unique_sequence_per_evidence"),
                    models.CheckConstraint(condition=models.Q(("from_principal__isnull", False), ("to_principal__isnull", False), _connector="OR"), name="custody_from_or_to_present"),
                ],
            },
        ),
    ]
