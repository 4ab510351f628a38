from django.urls import path
from .views import (
    login, register, signup_start, signup_complete, session, logout, refresh,
    user_profile, change_password, user_mfa,
    version, audit_log_list
)
from .admin_users import (
    admin_user_list, admin_user_detail, admin_user_suspend, admin_user_unsuspend,
    admin_user_notes, admin_user_bulk, admin_user_soft_delete, admin_user_hard_delete,
    admin_user_portal
)

urlpatterns = [
    # Auth endpoints
    path('auth/login', login, name='auth-login'),
    path('auth/register', register, name='auth-register'),
    path('auth/signup/start', signup_start, name='auth-signup-start'),
    path('auth/signup/complete', signup_complete, name='auth-signup-complete'),
    path('auth/session', session, name='auth-session'),
    path('auth/logout', logout, name='auth-logout'),
    path('auth/refresh', refresh, name='auth-refresh'),

    # User endpoints
    path('user/profile', user_profile, name='user-profile'),
    path('user/change-password', change_password, name='user-change-password'),
    path('user/mfa', user_mfa, name='user-mfa'),

    # Master admin user management
    path('admin/users', admin_user_list, name='admin-user-list'),
    path('admin/users/bulk', admin_user_bulk, name='admin-user-bulk'),
    path('admin/users/<uuid:pk>', admin_user_detail, name='admin-user-detail'),
    path('admin/users/<uuid:pk>/suspend', admin_user_suspend, name='admin-user-suspend'),
    path('admin/users/<uuid:pk>/unsuspend', admin_user_unsuspend, name='admin-user-unsuspend'),
    path('admin/users/<uuid:pk>/notes', admin_user_notes, name='admin-user-notes'),
    path('admin/users/<uuid:pk>/soft-delete', admin_user_soft_delete, name='admin-user-soft-delete'),
    path('admin/users/<uuid:pk>/hard-delete', admin_user_hard_delete, name='admin-user-hard-delete'),
    path('admin/users/<uuid:pk>/portal', admin_user_portal, name='admin-user-portal'),

    # AuditLog endpoints
    path('audit-logs', audit_log_list, name='audit-log-list'),

    path('version', version, name='version'),
]
