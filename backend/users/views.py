from rest_framework import generics, permissions
from rest_framework.permissions import AllowAny

from .serializers import UserRegistrationSerializer, UserDetailsSerializer


class RegisterAPIView(generics.CreateAPIView):
    """POST: open registration with email + password."""
    serializer_class=UserRegistrationSerializer
    permission_classes=[AllowAny]
    authentication_classes=[]

register_api_view=RegisterAPIView.as_view()


class UserDetailView(generics.RetrieveUpdateAPIView):
    """GET the current user; PATCH updates the timezone."""
    serializer_class=UserDetailsSerializer
    permission_classes=[permissions.IsAuthenticated]

    def get_object(self):
        return self.request.user

user_detail_view=UserDetailView.as_view()
