from django.contrib import admin

from .models import Case


@admin.register(Case)
class CaseAdmin(admin.ModelAdmin):
    list_display = ("id", "case_number", "title", "status", "priority",
                    "created_by", "lead_investigator", "assigned_to", "created_at")
    list_filter = ("status", "priority")
    search_fields = ("case_number", "title", "description")
    readonly_fields = ("version", "created_at", "updated_at")

    def has_delete_permission(self, request, obj=None):
        return False
