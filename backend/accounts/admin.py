from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "full_name", "role",
                    "department", "is_active")
    search_fields = ("username", "email", "full_name", "badge_number")
    list_filter = ("is_active", "role", "department")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Investigation Profile", {"fields": ("full_name", "role",
                                              "badge_number", "department")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Investigation Profile", {"fields": ("email", "full_name", "role",
                                              "badge_number", "department")}),
    )
