from django.contrib import admin

from .models import Complaint, ComplaintAssignment, WorkerReport


class ComplaintAssignmentInline(admin.TabularInline):
    model = ComplaintAssignment
    extra = 0
    can_delete = False
    readonly_fields = ("assigned_to", "assigned_by", "note", "status", "created_at")


class WorkerReportInline(admin.TabularInline):
    model = WorkerReport
    extra = 0
    can_delete = False
    readonly_fields = ("worker", "comments", "photos", "status", "created_at")


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = ("token", "category", "urgency", "status",
                    "verification_status", "assigned_to", "created_at")
    list_filter = ("status", "category", "urgency", "verification_status")
    search_fields = ("token", "description", "location_text", "email")
    readonly_fields = ("token", "created_at", "updated_at")
    inlines = [ComplaintAssignmentInline, WorkerReportInline]


@admin.register(WorkerReport)
class WorkerReportAdmin(admin.ModelAdmin):
    list_display = ("id", "complaint", "worker", "status", "created_at")
    list_filter = ("status",)
