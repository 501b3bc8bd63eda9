import os


def get_settings_module() -> str:
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "lms_portal.settings.production"

    if env in {"test", "testing"}:
        return "lms_portal.settings.testing"

    return "lms_portal.settings.development"
