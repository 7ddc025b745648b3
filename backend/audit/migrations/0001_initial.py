import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(choices=[("CreateCase", "Create Case"), ("UpdateCase", "Update Case"), ("ArchiveCase", "Archive Case"), ("AddEvidence", "Add Evidence"), ("UpdateEvidence", "Update Evidence"), ("ChangeEvidenceStatus", "Change Evidence Status"), ("TagEvidence", "Tag Evidence"), ("UntagEvidence", "Untag Evidence"), ("AppendCustody", "Append Custody Entry"), ("AddComment", "Add Comment"), ("EditComment", "Edit Comment"), ("DeleteComment", "Delete Comment"), ("CreateTag", "Create Tag"), ("UpdateTag", "Update Tag"), ("DeleteTag", "Delete Tag"), ("CreateUser", "Create User"), ("ChangeRole", "Change Role")], db_index=True, max_length=32, verbose_name="Action")),
                ("resource_type", models.CharField(choices=[("case", "Case"), ("evidence", "Evidence"), ("comment", "Comment"), ("chain_of_custody", "Chain-of-Custody Entry"), ("audit_log", "Audit Log Entry"), ("tag", "Tag"), ("user", "User")], max_length=32, verbose_name="Resource Type")),
                ("resource_id", models.PositiveBigIntegerField(verbose_name="Resource ID")),
                ("details", models.JSONField(blank=True, default=dict, verbose_name="Details")),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True, verbose_name="IP Address")),
                ("user_agent", models.CharField(blank=True, default="", max_length=255, verbose_name="User Agent")),
                ("timestamp", models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name="Timestamp")),
                ("principal", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="audit_entries", to=settings.AUTH_USER_MODEL, verbose_name="Principal")),
            ],
            options={
                "verbose_name": "Audit Log Entry",
                "verbose_name_plural": "Audit Log Entries",
                "ordering": ["-timestamp", "-id"],
                "indexes": [
                    models.Index(fields=["resource_type", "resource_id"], name="audit_resource_idx"),
                    models.Index(fields=["principal", "-timestamp"], name="audit_principal_ts_idx"),
                ],
            },
        ),
    ]
