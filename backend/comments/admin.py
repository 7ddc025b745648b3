from django.contrib import admin

from .models import Comment


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ("id", "author", "case", "evidence", "created_at")
    search_fields = ("content", "author__username")
    raw_id_fields = ("case", "evidence", "author")
