from rest_framework_simplejwt import views as jwt_views

from . import serializers as my_serializers


class CustomTokenObtainPairView(jwt_views.TokenObtainPairView):
    serializer_class = my_serializers.CustomTokenObtainPairSerializer
