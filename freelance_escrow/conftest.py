"""
Root pytest configuration for the Django project.

App-specific fixtures live in each app's tests/conftest.py.
"""

import os
from decimal import Decimal

import django
import pytest

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "freelance_escrow.settings")


def pytest_configure():
    django.setup()

    from django.conf import settings

    # PBKDF2 is too slow for factories that set passwords
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]


@pytest.fixture(autouse=True)
def commission_rates(settings):
    """Pin fee rates and gateway credentials so tests never depend on the environment."""
    settings.CLIENT_COMMISSION_RATE = Decimal("0.05")
    settings.FREELANCER_COMMISSION_RATE = Decimal("0.02")
    settings.PAYMENT_GATEWAY_TIMEOUT = 5
    settings.FLOUCI_API_URL = "https://flouci.test/api"
    settings.FLOUCI_APP_TOKEN = "flouci-token"
    settings.FLOUCI_APP_SECRET = "flouci-secret"
    settings.D17_API_URL = "https://d17.test/v1"
    settings.D17_MERCHANT_ID = "merchant-1"
    settings.D17_API_KEY = "d17-key"
    settings.FRONTEND_URL = "http://frontend.test"
    settings.BACKEND_URL = "http://backend.test"
