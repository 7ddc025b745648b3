from django.contrib import admin

from .models import ChainOfCustodyEntry, Evidence, Tag


class ChainOfCustodyEntryInline(admin.TabularInline):
    model = ChainOfCustodyEntry
    fk_name = "evidence"
    extra = 0
    can_delete = False
    readonly_fields = ("sequence", "action", "from_principal", "to_principal",
                       "location", "timestamp", "recorded_by", "entry_hash")
    fields = readonly_fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Evidence)
class EvidenceAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "case", "status", "uploaded_by", "created_at")
    list_filter = ("status",)
    search_fields = ("title", "description", "file_name", "hash_value")
    readonly_fields = ("version", "created_at", "updated_at")
    inlines = [ChainOfCustodyEntryInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "color", "created_by")
    search_fields = ("name",)


@admin.register(ChainOfCustodyEntry)
class ChainOfCustodyEntryAdmin(admin.ModelAdmin):
    list_display = ("id", "evidence", "sequence", "action",
                    "from_principal", "to_principal", "timestamp")
    list_filter = ("action",)

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
