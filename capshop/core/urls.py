from django.urls import path
from .views import (
    login, refresh, logout, user_me,
    automation_log_list, health,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', login, name='token_obtain_pair'),
    path('auth/refresh/', refresh, name='token_refresh'),
    path('auth/logout/', logout, name='logout'),
    path('auth/me/', user_me, name='user-me'),

    # Automation log endpoints
    path('automation-logs/', automation_log_list, name='automation-log-list'),

    path('health/', health, name='health'),
]
