"""
Settings for the test suite.

Supplies a throwaway signing key so that ``backend.settings`` validates
with DEBUG off, then applies it unchanged.
"""

import os

os.environ.setdefault("DJANGO_SECRET_KEY", "test-suite-signing-key-not-for-deployment")

from .settings import *  # noqa: E402,F401,F403
