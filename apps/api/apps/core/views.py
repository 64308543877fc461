"""
Core views - current user profile.
"""
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import UserProfileSerializer


class CurrentUserView(APIView):
    """
    Current authenticated user profile endpoint.

    GET /api/auth/me/ - Returns profile of the authenticated user.

    Frontend calls this after JWT login. roles is ["staff"] for accounts that
    confirm and complete appointments, ["patient"] otherwise.

    Response format:
    {
        "id": "uuid",
        "email": "user@example.com",
        "full_name": "Asha Rao",
        "is_active": true,
        "roles": ["patient"]
    }
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user
        profile_data = {
            'id': user.id,
            'email': user.email,
            'full_name': user.full_name,
            'is_active': user.is_active,
            'roles': ['staff'] if user.is_staff else ['patient'],
        }
        serializer = UserProfileSerializer(profile_data)
        return Response(serializer.data, status=status.HTTP_200_OK)
