from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'groups'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.GroupViewSet, basename='group')

urlpatterns = [
    # Group ViewSet routes
    # GET    /api/groups/               - List user's groups
    # GET    /api/groups/{id}/          - Group details with members
    # GET    /api/groups/{id}/members/  - List members
    # GET    /api/groups/{id}/shares/   - Current split

    path('join/<str:invite_code>/', views.join_by_invite, name='join'),

    # Include router URLs
    path('', include(router.urls)),
]
