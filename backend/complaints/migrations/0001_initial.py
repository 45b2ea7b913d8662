import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Complaint",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("token", models.CharField(editable=False, max_length=20, unique=True, verbose_name="Tracking Token")),
                ("category", models.CharField(choices=[("roads", "Roads & Infrastructure"), ("water", "Water Supply"), ("power", "Power & Electricity"), ("urban", "Urban Planning"), ("welfare", "Social Welfare"), ("other", "Other")], db_index=True, max_length=20, verbose_name="Category")),
                ("subtype", models.CharField(blank=True, default="", max_length=100, verbose_name="Subtype")),
                ("description", models.TextField(max_length=1000, verbose_name="Description")),
                ("urgency", models.CharField(choices=[("high", "High"), ("medium", "Medium"), ("low", "Low")], db_index=True, default="medium", max_length=10, verbose_name="Urgency")),
                ("location_text", models.CharField(blank=True, default="", max_length=500, verbose_name="Location")),
                ("latitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True, verbose_name="Latitude")),
                ("longitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True, verbose_name="Longitude")),
                ("email", models.EmailField(blank=True, default="", max_length=254, verbose_name="Citizen Email")),
                ("source", models.CharField(default="web", max_length=20, verbose_name="Source")),
                ("attachments", models.JSONField(blank=True, default=list, verbose_name="Attachment Keys")),
                ("status", models.CharField(choices=[("submitted", "Submitted"), ("assigned", "Assigned"), ("in_progress", "In Progress"), ("admin_verification_pending", "Pending Verification"), ("resolved", "Resolved"), ("rejected", "Rejected"), ("queued_for_portal", "Queued for Portal")], db_index=True, default="submitted", max_length=30, verbose_name="Status")),
                ("verification_status", models.CharField(choices=[("none", "None"), ("pending", "Pending"), ("verified", "Verified"), ("rejected", "Rejected")], default="none", max_length=10, verbose_name="Verification Status")),
                ("assigned_at", models.DateTimeField(blank=True, null=True, verbose_name="Assigned At")),
                ("resolved_at", models.DateTimeField(blank=True, null=True, verbose_name="Resolved At")),
                ("resolution_notes", models.TextField(blank=True, default="", verbose_name="Resolution Notes")),
                ("verified_at", models.DateTimeField(blank=True, null=True, verbose_name="Verified At")),
                ("group_name", models.CharField(blank=True, db_index=True, default="", max_length=100, verbose_name="Group")),
                ("submitted_to_portal", models.JSONField(blank=True, help_text="{job_id, queued_at} once queued for the municipal portal.", null=True, verbose_name="Portal Hand-off")),
                ("assigned_to", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="assigned_complaints", to="accounts.worker", verbose_name="Assigned Worker")),
                ("resolved_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="resolved_complaints", to=settings.AUTH_USER_MODEL, verbose_name="Resolved By")),
                ("verified_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="verified_complaints", to=settings.AUTH_USER_MODEL, verbose_name="Verified By")),
            ],
            options={
                "verbose_name": "Complaint",
                "verbose_name_plural": "Complaints",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["status", "created_at"], name="complaint_status_created_idx")],
            },
        ),
        migrations.CreateModel(
            name="ComplaintAssignment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("note", models.TextField(blank=True, default="", verbose_name="Note")),
                ("status", models.CharField(choices=[("assigned", "Assigned")], default="assigned", max_length=10, verbose_name="Status")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Assigned At")),
                ("complaint", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="assignments", to="complaints.complaint", verbose_name="Complaint")),
                ("assigned_to", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="assignments", to="accounts.worker", verbose_name="Assigned To")),
                ("assigned_by", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="complaint_assignments_made", to=settings.AUTH_USER_MODEL, verbose_name="Assigned By")),
            ],
            options={
                "verbose_name": "Complaint Assignment",
                "verbose_name_plural": "Complaint Assignments",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="WorkerReport",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("comments", models.TextField(blank=True, default="", verbose_name="Comments")),
                ("photos", models.JSONField(blank=True, default=list, verbose_name="Photo Keys")),
                ("status", models.CharField(choices=[("submitted", "Submitted"), ("reviewed", "Reviewed"), ("rejected", "Rejected")], db_index=True, default="submitted", max_length=10, verbose_name="Status")),
                ("complaint", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reports", to="complaints.complaint", verbose_name="Complaint")),
                ("worker", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="reports", to="accounts.worker", verbose_name="Worker")),
            ],
            options={
                "verbose_name": "Worker Report",
                "verbose_name_plural": "Worker Reports",
                "ordering": ["-created_at"],
            },
        ),
    ]
