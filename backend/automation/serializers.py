# automation/serializers.py

from rest_framework import serializers

from .models import RuleTrigger


class AutomationRuleSerializer(serializers.Serializer):
    """
    Input validation for rule payloads.

    `action` is free text on purpose: the engine treats actions it does not
    know as a no-op, so rules for future actions can be stored today.
    Counters (executions, successRate) are owned by the server and ignored
    if sent.
    """
    id = serializers.CharField(required=False, max_length=64)
    name = serializers.CharField(max_length=255)
    trigger = serializers.ChoiceField(choices=RuleTrigger.choices)
    action = serializers.CharField(max_length=64)
    condition = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=500)
    enabled = serializers.BooleanField(required=False)

    def validate_action(self, value):
        return value.strip().lower()

    def validate_condition(self, value):
        if value is None or not value.strip():
            return None
        return value.strip()
