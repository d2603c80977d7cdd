"""
Email login for Kinbay accounts.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend

User = get_user_model()


class EmailBackend(ModelBackend):
    """Accounts sign in with their email address; the username is never asked for."""

    def authenticate(self, request, username=None, password=None, **kwargs):
        # The token serializer passes the address as ``email``; Django's own
        # login forms pass it as ``username``
        email = kwargs.get('email', username)
        if email is None or password is None:
            return None

        email = email.strip()
        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            # Hash anyway so unknown addresses take as long as wrong passwords
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
