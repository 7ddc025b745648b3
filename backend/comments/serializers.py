"""
Comments app serializers.

Request and response shapes only; parent resolution and access checks
live in ``services.py``.
"""

from rest_framework import serializers

from .models import Comment


class CommentSerializer(serializers.ModelSerializer):
    author_username = serializers.CharField(source="author.username", read_only=True)

    class Meta:
        model = Comment
        fields = [
            "id",
            "content",
            "case",
            "evidence",
            "author",
            "author_username",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CommentWriteSerializer(serializers.Serializer):
    content = serializers.CharField(trim_whitespace=True)
