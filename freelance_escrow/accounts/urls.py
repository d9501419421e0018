from rest_framework_simplejwt.views import TokenRefreshView
from django.urls import path

from . import views as my_views


urlpatterns = [
    path('account/token/', my_views.CustomTokenObtainPairView.as_view(), name='token-obtain-pair'),
    path('account/token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
]
