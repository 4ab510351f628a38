"""
JWT authentication read from the auth cookie or a Bearer header
"""
from django.conf import settings
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.tokens import AccessToken


class CookieJWTAuthentication(JWTAuthentication):
    """Accepts `Authorization: Bearer <token>` first, then the auth_token cookie"""

    def authenticate(self, request):
        header = self.get_header(request)
        if header is not None:
            return super().authenticate(request)

        raw_token = request.COOKIES.get(settings.AUTH_COOKIE_NAME)
        if not raw_token:
            return None
        try:
            validated_token = self.get_validated_token(raw_token)
        except (InvalidToken, TokenError):
            # A stale cookie is treated as no session
            return None
        return self.get_user(validated_token), validated_token


def issue_token(user):
    """Create a signed access token carrying the user's email"""
    token = AccessToken.for_user(user)
    token['email'] = user.email
    return str(token)


def set_auth_cookie(response, user):
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        issue_token(user),
        max_age=settings.AUTH_COOKIE_MAX_AGE,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite='Lax',
        path='/',
    )
    return response


def clear_auth_cookie(response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME, path='/', samesite='Lax')
    return response
