"""
API exception handling
"""
import logging

import openai
import stripe
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .org_context import OrgContextError

logger = logging.getLogger(__name__)


class AIServiceUnavailable(Exception):
    """The AI provider is not configured or has no quota left"""


def is_quota_error(exc):
    return getattr(exc, 'code', None) == 'insufficient_quota'


def api_exception_handler(exc, context):
    """DRF handler first, then map service errors to JSON responses"""
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    view_name = view.__class__.__name__ if view else 'unknown'

    if isinstance(exc, OrgContextError):
        return Response({'error': str(exc)}, status=status.HTTP_403_FORBIDDEN)

    if isinstance(exc, AIServiceUnavailable):
        logger.warning(f"AI service unavailable in {view_name}: {exc}")
        return Response({'error': str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

    if isinstance(exc, openai.APIError):
        if is_quota_error(exc):
            logger.error(f"OpenAI quota exceeded in {view_name}")
            return Response(
                {'error': 'AI service quota exceeded. Please try again later.'},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )
        logger.exception(f"OpenAI error in {view_name}: {exc}")
        return Response({'error': 'AI service error'}, status=status.HTTP_502_BAD_GATEWAY)

    if isinstance(exc, stripe.StripeError):
        logger.exception(f"Stripe error in {view_name}: {exc}")
        return Response(
            {'error': getattr(exc, 'user_message', None) or 'Payment provider error'},
            status=status.HTTP_502_BAD_GATEWAY
        )

    logger.exception(f"Unhandled error in {view_name}: {exc}")
    return Response({'error': 'Internal server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
