from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User, Worker


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "first_name", "last_name",
                    "role", "is_active")
    search_fields = ("username", "email")
    list_filter = ("is_active", "is_staff", "role")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Role", {"fields": ("role",)}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Extra Info", {"fields": ("email", "first_name", "last_name", "role")}),
    )


@admin.register(Worker)
class WorkerAdmin(admin.ModelAdmin):
    list_display = ("display_name", "email", "phone", "area", "is_active")
    list_filter = ("is_active", "area")
    search_fields = ("display_name", "email", "user__username")
