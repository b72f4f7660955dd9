# automation/tests.py
"""
Automation App Test Suite
=========================

Tests for the automation rule API endpoints.

Test Categories:
----------------
1. Rule Serializer Tests - Trigger/action/condition validation
2. Rule API Tests - HTTP endpoints (CRUD, toggle)
"""

from rest_framework import status
from rest_framework.test import APISimpleTestCase

from tasks.tests.utils import TempDataDirMixin, make_rule, rule_payload, seed_rules

from .serializers import AutomationRuleSerializer
from .store import RuleStore

RULES_URL = '/api/v1/automation-rules/'


# ===========================================================================
# SERIALIZER TESTS
# ===========================================================================

class AutomationRuleSerializerTest(APISimpleTestCase):
    """Tests for payload validation at the HTTP boundary."""

    def test_valid_payload(self):
        serializer = AutomationRuleSerializer(data=rule_payload())

        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data['trigger'], 'new-task')

    def test_unknown_trigger_is_rejected(self):
        serializer = AutomationRuleSerializer(data=rule_payload(trigger='on-full-moon'))

        self.assertFalse(serializer.is_valid())
        self.assertIn('trigger', serializer.errors)

    def test_unknown_action_is_accepted_and_lowercased(self):
        serializer = AutomationRuleSerializer(data=rule_payload(action='  Notify-Slack '))

        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data['action'], 'notify-slack')

    def test_blank_condition_becomes_none(self):
        serializer = AutomationRuleSerializer(data=rule_payload(condition='   '))

        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertIsNone(serializer.validated_data['condition'])

    def test_name_is_required(self):
        payload = rule_payload()
        del payload['name']

        serializer = AutomationRuleSerializer(data=payload)

        self.assertFalse(serializer.is_valid())
        self.assertIn('name', serializer.errors)


# ===========================================================================
# API TESTS
# ===========================================================================

class RuleAPITest(TempDataDirMixin, APISimpleTestCase):
    """Tests for the /api/v1/automation-rules/ endpoints."""

    def rule_url(self, rule_id):
        return f'{RULES_URL}{rule_id}/'

    def test_create_rule_defaults(self):
        """New rules start enabled with zero executions and a 100% success rate."""
        response = self.client.post(RULES_URL, rule_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Rule created successfully')
        rule = response.data['rule']
        self.assertTrue(rule['id'])
        self.assertTrue(rule['enabled'])
        self.assertEqual(rule['executions'], 0)
        self.assertEqual(rule['successRate'], 100)
        self.assertIsNotNone(rule['createdAt'])

    def test_client_counters_are_ignored(self):
        payload = rule_payload(executions=500, successRate=12, enabled=False)

        rule = self.client.post(RULES_URL, payload, format='json').data['rule']

        self.assertEqual(rule['executions'], 0)
        self.assertEqual(rule['successRate'], 100)
        self.assertFalse(rule['enabled'])

    def test_create_rejects_unknown_trigger(self):
        response = self.client.post(RULES_URL, rule_payload(trigger='whenever'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(RuleStore().load_rules(), [])

    def test_duplicate_id_conflicts(self):
        self.client.post(RULES_URL, rule_payload(id='r1'), format='json')

        response = self.client.post(RULES_URL, rule_payload(id='r1'), format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_corrupt_rules_file_is_not_overwritten(self):
        rules_file = self.data_dir / 'automation-rules.json'
        rules_file.write_text('[{"id": "r1", "name": "Kept"', encoding='utf-8')

        response = self.client.post(RULES_URL, rule_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(rules_file.read_text(encoding='utf-8'), '[{"id": "r1", "name": "Kept"')

    def test_stored_string_enabled_flag_reads_as_disabled(self):
        (self.data_dir / 'automation-rules.json').write_text(
            '[{"id": "r1", "name": "Off", "trigger": "new-task", "action": "assign", "enabled": "false"}]',
            encoding='utf-8',
        )

        response = self.client.get(self.rule_url('r1'))

        self.assertFalse(response.data['enabled'])

    def test_newest_rule_is_listed_first(self):
        self.client.post(RULES_URL, rule_payload(id='r1', name='First'), format='json')
        self.client.post(RULES_URL, rule_payload(id='r2', name='Second'), format='json')

        response = self.client.get(RULES_URL)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r['id'] for r in response.data], ['r2', 'r1'])

    def test_update_cannot_touch_counters(self):
        seed_rules([make_rule(name='Urgent', rule_id='r1', executions=45, success_rate=98)])

        response = self.client.put(
            self.rule_url('r1'),
            {'name': 'Renamed', 'executions': 0, 'successRate': 1, 'id': 'other'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        rule = response.data['rule']
        self.assertEqual(rule['id'], 'r1')
        self.assertEqual(rule['name'], 'Renamed')
        self.assertEqual(rule['executions'], 45)
        self.assertEqual(rule['successRate'], 98)
        self.assertIsNotNone(rule['updatedAt'])

    def test_toggle_flips_enabled(self):
        seed_rules([make_rule(name='Urgent', rule_id='r1', enabled=True)])

        first = self.client.post(f"{self.rule_url('r1')}toggle/")
        second = self.client.post(f"{self.rule_url('r1')}toggle/")

        self.assertEqual(first.data['message'], 'Rule disabled')
        self.assertFalse(first.data['rule']['enabled'])
        self.assertEqual(second.data['message'], 'Rule enabled')
        self.assertTrue(RuleStore().get_rule('r1').enabled)

    def test_delete_rule(self):
        seed_rules([make_rule(name='A', rule_id='a'), make_rule(name='B', rule_id='b')])

        response = self.client.delete(self.rule_url('a'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r.id for r in RuleStore().load_rules()], ['b'])

    def test_missing_rule_is_404(self):
        for method, url in [
            ('get', self.rule_url('nope')),
            ('put', self.rule_url('nope')),
            ('delete', self.rule_url('nope')),
            ('post', f"{self.rule_url('nope')}toggle/"),
        ]:
            with self.subTest(method=method):
                response = getattr(self.client, method)(url, {}, format='json')
                self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
                self.assertEqual(response.data, {'error': 'Rule not found'})

    def test_created_rule_drives_task_automation(self):
        self.client.post(RULES_URL, rule_payload(action='assign', condition='priority is high'), format='json')

        high = self.client.post('/api/v1/tasks/', {'title': 'Ship it', 'priority': 'high'}, format='json')
        low = self.client.post('/api/v1/tasks/', {'title': 'Tidy up', 'priority': 'low'}, format='json')

        self.assertEqual(high.data['task']['assigned'], 'Auto-assigned')
        self.assertNotIn('assigned', low.data['task'])
        self.assertEqual(RuleStore().load_rules()[0].executions, 1)
