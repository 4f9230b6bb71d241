from slowapi import Limiter
from slowapi.util import get_remote_address

from config import Settings, settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

_submit_rate_limit = settings.SUBMIT_RATE_LIMIT


def configure_limiter(app_settings: Settings) -> Limiter:
    """Aplica al limiter compartido los valores de la app que se está armando."""
    global _submit_rate_limit
    limiter.enabled = app_settings.RATE_LIMIT_ENABLED
    _submit_rate_limit = app_settings.SUBMIT_RATE_LIMIT
    return limiter


def submit_rate_limit() -> str:
    # slowapi lo evalúa en cada request
    return _submit_rate_limit
