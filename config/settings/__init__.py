"""
Settings selector for the device catalog service.

DJANGO_ENV picks the module: "production", "test" or "development"
(the default). Set DJANGO_SETTINGS_MODULE to a concrete module such as
config.settings.test to bypass the selector.
"""

import os

DJANGO_ENV = os.getenv("DJANGO_ENV", "development").strip().lower()

if DJANGO_ENV == "production":
    from .production import *  # noqa: F401,F403
elif DJANGO_ENV == "test":
    from .test import *  # noqa: F401,F403
elif DJANGO_ENV == "development":
    from .development import *  # noqa: F401,F403
else:
    raise ImportError(
        f"Unknown DJANGO_ENV {DJANGO_ENV!r}; expected production, test or development"
    )
