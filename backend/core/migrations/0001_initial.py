import django.core.serializers.json
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("complaints", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("actor", models.CharField(help_text="Email / username of the caller, or 'citizen' for anonymous submissions.", max_length=255, verbose_name="Actor")),
                ("action", models.CharField(choices=[("complaint_submitted", "Complaint Submitted"), ("complaint_assigned", "Complaint Assigned"), ("worker_report_submitted", "Worker Report Submitted"), ("update_urgency", "Urgency Updated"), ("update_status", "Status Updated"), ("update_fields", "Fields Updated"), ("verify_resolution", "Resolution Verified"), ("reject_resolution", "Resolution Rejected"), ("bulk_delete", "Bulk Delete"), ("bulk_set_urgency", "Bulk Urgency Change"), ("bulk_group", "Bulk Grouping"), ("queued_for_portal", "Queued for Portal")], db_index=True, max_length=40, verbose_name="Action")),
                ("payload", models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder, verbose_name="Payload")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="Created At")),
                ("complaint", models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name="audit_logs", to="complaints.complaint", verbose_name="Complaint")),
            ],
            options={
                "verbose_name": "Audit Log Entry",
                "verbose_name_plural": "Audit Log Entries",
                "ordering": ["created_at", "id"],
                "indexes": [models.Index(fields=["complaint", "created_at"], name="auditlog_complaint_created_idx")],
            },
        ),
    ]
