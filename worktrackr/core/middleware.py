"""
Trial gate: blocks the API once an organisation's free trial has ended
and no subscription is attached.
"""
import logging

from django.http import JsonResponse
from django.utils import timezone
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError

from .authentication import CookieJWTAuthentication
from .org_context import OrgContextError, get_org_context, ORG_HEADER

logger = logging.getLogger(__name__)

EXEMPT_PREFIXES = (
    '/api/auth',
    '/api/billing',
    '/api/version',
    '/api/admin',
)


class TrialCheckMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response
        self.authenticator = CookieJWTAuthentication()

    def __call__(self, request):
        blocked = self.check_trial(request)
        if blocked is not None:
            return blocked
        return self.get_response(request)

    def check_trial(self, request):
        path = request.path
        if not path.startswith('/api/') or path.startswith(EXEMPT_PREFIXES):
            return None

        try:
            result = self.authenticator.authenticate(request)
        except (AuthenticationFailed, InvalidToken, TokenError):
            # Let DRF answer with the authentication error
            return None
        if result is None:
            return None
        user = result[0]

        try:
            context = get_org_context(user, request.META.get(ORG_HEADER))
        except OrgContextError:
            return None

        organisation = context.organisation
        if organisation is None or organisation.stripe_subscription_id:
            return None
        if organisation.trial_end and organisation.trial_end < timezone.now():
            logger.info(f"Trial expired for org {organisation.id}, blocking {path}")
            return JsonResponse({
                'error': 'Trial expired',
                'message': 'Your free trial has ended. Please add payment details to continue.',
                'trialEnd': organisation.trial_end.isoformat(),
                'redirectTo': '/billing',
            }, status=402)
        return None
