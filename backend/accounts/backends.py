"""
Custom authentication backend for username-or-email login.

Allows users to authenticate using either ``username`` or ``email``
together with their ``password``.

This backend is registered in ``settings.AUTHENTICATION_BACKENDS``
so that Django's ``authenticate()`` call dispatches to it.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

User = get_user_model()


class UsernameOrEmailBackend(ModelBackend):
    """
    Authenticate against username or email.

    When ``django.contrib.auth.authenticate(identifier=..., password=...)``
    is called, this backend resolves the user from the ``identifier``
    keyword argument.  A plain ``username=`` keyword (Django admin login)
    is accepted as well.
    """

    def authenticate(self, request, identifier=None, password=None, **kwargs):
        """
        Resolve the user by *identifier* and verify *password*.

        Returns
        -------
        User | None
            The authenticated user, or ``None`` on failure.
        """
        if identifier is None:
            identifier = kwargs.get(User.USERNAME_FIELD)
        if identifier is None or password is None:
            return None

        try:
            user = User.objects.get(
                Q(username=identifier) | Q(email__iexact=identifier)
            )
        except (User.DoesNotExist, User.MultipleObjectsReturned):
            # Run the default password hasher to mitigate timing attacks
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
