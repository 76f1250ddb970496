import os
import sys
import pytest
import django

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'lead_router.settings')


def pytest_configure(config):
    """Configure Django settings for pytest."""
    from django.conf import settings

    # Only configure if not already configured
    if not settings.configured:
        settings.configure(
            DEBUG=True,
            DATABASES={
                'default': {
                    'ENGINE': 'django.db.backends.sqlite3',
                    'NAME': ':memory:',
                }
            },
            INSTALLED_APPS=[
                'django.contrib.admin',
                'django.contrib.contenttypes',
                'django.contrib.auth',
                'django.contrib.sessions',
                'django.contrib.messages',
                'rest_framework',
                'distribution',
            ],
            SECRET_KEY='test-secret-key',
            USE_TZ=True,
            TIME_ZONE='UTC',
            DEFAULT_AUTO_FIELD='django.db.models.BigAutoField',
            ROOT_URLCONF='distribution.urls',
            # Celery settings for tests
            CELERY_BROKER_URL='memory://',
            CELERY_RESULT_BACKEND='cache+memory://',
            CELERY_TASK_ALWAYS_EAGER=True,
            CELERY_TASK_EAGER_PROPAGATES=True,
            # Routing settings
            ADVERTISER_REQUEST_TIMEOUT=30.0,
            RESPONSE_MAX_LENGTH=1000,
            REJECTION_REASON_MAX_LENGTH=500,
            DEFAULT_DAILY_CAP=100,
            DEFAULT_RULE_WEIGHT=100,
            QUEUE_DEFAULT_BATCH_SIZE=50,
            QUEUE_MAX_BATCH_SIZE=100,
            QUEUE_MAX_ATTEMPTS=3,
            QUEUE_STALE_PROCESSING_MINUTES=15,
        )

        django.setup()
    else:
        # Override database settings for tests
        settings.DATABASES = {
            'default': {
                'ENGINE': 'django.db.backends.sqlite3',
                'NAME': ':memory:',
            }
        }


@pytest.fixture
def affiliate(db):
    from distribution.models import Affiliate
    return Affiliate.objects.create(name='Affiliate X')


@pytest.fixture
def make_advertiser(db):
    """Factory for advertisers, defaulting to the network-free mock adapter."""
    from distribution.models import Advertiser

    def _make(name='Advertiser', advertiser_type='mock', **kwargs):
        kwargs.setdefault('url', 'https://advertiser.example.com/leads')
        return Advertiser.objects.create(name=name, advertiser_type=advertiser_type, **kwargs)

    return _make


@pytest.fixture
def make_lead(db):
    """Factory for leads with unique emails."""
    from distribution.models import Lead
    counter = {'n': 0}

    def _make(**kwargs):
        counter['n'] += 1
        defaults = {
            'firstname': 'Rainer',
            'lastname': 'Simossek',
            'email': f"lead{counter['n']}@example.com",
            'mobile': '0160 8912308',
            'country_code': 'DE',
            'ip_address': '203.0.113.10',
        }
        defaults.update(kwargs)
        return Lead.objects.create(**defaults)

    return _make


@pytest.fixture
def all_week_schedule():
    """Weekly schedule active all day, every day."""
    return {
        day: {'is_active': True}
        for day in ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')
    }
