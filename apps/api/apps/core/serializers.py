"""
Core serializers.
"""
from rest_framework import serializers


class UserProfileSerializer(serializers.Serializer):
    """Profile of the authenticated user."""
    id = serializers.UUIDField()
    email = serializers.EmailField()
    full_name = serializers.CharField()
    is_active = serializers.BooleanField()
    roles = serializers.ListField(child=serializers.CharField())
