# tasks/serializers.py

from rest_framework import serializers

from .models import TaskPriority, TaskStatus
from .rule_engine.scoring import parse_deadline


class TaskSerializer(serializers.Serializer):
    """
    Validates task payloads at the HTTP boundary.

    Only the user-editable fields are accepted; createdAt/updatedAt are
    stamped by the service. Used with partial=True for updates so absent
    fields keep their stored value.
    """
    id = serializers.CharField(required=False, max_length=64)
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    priority = serializers.ChoiceField(choices=TaskPriority.choices, required=False, allow_null=True)
    status = serializers.ChoiceField(choices=TaskStatus.choices, required=False)
    category = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=64)
    automated = serializers.BooleanField(required=False)
    deadline = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    assigned = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)

    def validate_id(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("id must not be blank.")
        return value

    def validate_deadline(self, value):
        if value is None or not value.strip():
            return None
        if parse_deadline(value) is None:
            raise serializers.ValidationError("deadline must be an ISO 8601 date or datetime.")
        return value.strip()
