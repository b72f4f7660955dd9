# automation/views.py

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import AutomationRuleSerializer
from .services import (
    DuplicateRuleError,
    RuleNotFoundError,
    RulePersistenceError,
    RuleService,
)

logger = logging.getLogger(__name__)

RULE_NOT_FOUND = {'error': 'Rule not found'}


class RuleListCreateView(APIView):
    """
    GET: List automation rules in evaluation order.
    POST: Create a rule (enabled unless stated otherwise, zero executions).
    """

    def get(self, request):
        return Response([r.to_dict() for r in RuleService().list_rules()])

    def post(self, request):
        serializer = AutomationRuleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            rule = RuleService().create_rule(serializer.validated_data)
        except DuplicateRuleError as e:
            return Response({'error': f"Rule {e} already exists"}, status=status.HTTP_409_CONFLICT)
        except RulePersistenceError:
            logger.exception("Rule creation failed")
            return Response(
                {'error': 'Failed to create automation rule'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response(
            {'rule': rule.to_dict(), 'message': 'Rule created successfully'},
            status=status.HTTP_201_CREATED,
        )

list_create_view = RuleListCreateView.as_view()


class RuleDetailView(APIView):
    """
    GET, PUT, PATCH, DELETE for a single rule.
    """

    def get(self, request, rule_id):
        try:
            rule = RuleService().get_rule(rule_id)
        except RuleNotFoundError:
            return Response(RULE_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(rule.to_dict())

    def put(self, request, rule_id):
        serializer = AutomationRuleSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        try:
            rule = RuleService().update_rule(rule_id, serializer.validated_data)
        except RuleNotFoundError:
            return Response(RULE_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except RulePersistenceError:
            logger.exception(f"Rule {rule_id} update failed")
            return Response(
                {'error': 'Failed to update automation rule'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({'rule': rule.to_dict(), 'message': 'Rule updated successfully'})

    patch = put

    def delete(self, request, rule_id):
        try:
            RuleService().delete_rule(rule_id)
        except RuleNotFoundError:
            return Response(RULE_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except RulePersistenceError:
            logger.exception(f"Rule {rule_id} deletion failed")
            return Response(
                {'error': 'Failed to delete automation rule'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({'message': 'Rule deleted successfully'})

retrieve_update_destroy_view = RuleDetailView.as_view()


class RuleToggleView(APIView):
    """POST: flip the rule's enabled flag."""

    def post(self, request, rule_id):
        try:
            rule = RuleService().toggle_rule(rule_id)
        except RuleNotFoundError:
            return Response(RULE_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except RulePersistenceError:
            logger.exception(f"Rule {rule_id} toggle failed")
            return Response(
                {'error': 'Failed to update automation rule'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        state = 'enabled' if rule.enabled else 'disabled'
        return Response({'rule': rule.to_dict(), 'message': f"Rule {state}"})

toggle_view = RuleToggleView.as_view()
