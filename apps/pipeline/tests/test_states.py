"""
Pipeline Status Tests
=====================

Test Coverage:
1. Role and status parsing (read side keeps legacy values)
2. require_status refuses unknown values with InvalidState
3. Terminal statuses
4. Interest level → lead scoring

Run tests:
    python manage.py test apps.pipeline.tests.test_states
"""

from django.test import SimpleTestCase

from apps.core.exceptions import ConstraintViolation, InvalidState, ValidationError
from apps.pipeline.scoring import derive_lead_scoring
from apps.pipeline.states import (
    INITIAL_STATUS,
    LeadStatus,
    LegacyStatus,
    MembershipStatus,
    ReferralStatus,
    Role,
    is_terminal,
    parse_role,
    parse_status,
    require_status,
)


class RoleParsingTest(SimpleTestCase):

    def test_known_roles(self):
        self.assertIs(parse_role('lead'), Role.LEAD)
        self.assertIs(parse_role(Role.MEMBER), Role.MEMBER)

    def test_unknown_role(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_role('prospect')
        self.assertEqual(ctx.exception.field, 'role')


class StatusParsingTest(SimpleTestCase):

    def test_initial_statuses(self):
        self.assertEqual(INITIAL_STATUS[Role.LEAD], LeadStatus.NEW)
        self.assertEqual(INITIAL_STATUS[Role.REFERRAL], ReferralStatus.SUBMITTED)
        self.assertEqual(INITIAL_STATUS[Role.MEMBER], MembershipStatus.ACTIVE)

    def test_parse_known_status(self):
        self.assertIs(parse_status('referral', 'no_show'), ReferralStatus.NO_SHOW)

    def test_parse_legacy_status(self):
        status = parse_status('lead', 'qualified')
        self.assertIsInstance(status, LegacyStatus)
        self.assertTrue(status.is_legacy)
        self.assertEqual(str(status), 'qualified')

    def test_require_status(self):
        self.assertIs(require_status('member', 'frozen'), MembershipStatus.FROZEN)

    def test_require_status_rejects_other_roles_values(self):
        with self.assertRaises(InvalidState) as ctx:
            require_status('lead', 'converted')
        self.assertEqual(ctx.exception.field, 'lead_status')
        self.assertIn('won', ctx.exception.details['allowed'])

    def test_invalid_state_is_a_constraint_violation(self):
        with self.assertRaises(ConstraintViolation):
            require_status('member', 'deleted')

    def test_terminal_statuses(self):
        self.assertTrue(is_terminal('lead', 'won'))
        self.assertTrue(is_terminal('referral', 'lost'))
        self.assertTrue(is_terminal('member', 'expired'))
        self.assertFalse(is_terminal('member', 'paused'))
        self.assertFalse(is_terminal('lead', 'qualified'))


class LeadScoringTest(SimpleTestCase):

    def test_interest_levels(self):
        self.assertEqual(derive_lead_scoring('High'), (8, 'hot'))
        self.assertEqual(derive_lead_scoring(' medium '), (5, 'warm'))
        self.assertEqual(derive_lead_scoring('Low'), (3, 'cold'))

    def test_anything_else_is_cold(self):
        self.assertEqual(derive_lead_scoring(''), (3, 'cold'))
        self.assertEqual(derive_lead_scoring(None), (3, 'cold'))
        self.assertEqual(derive_lead_scoring('very keen'), (3, 'cold'))
