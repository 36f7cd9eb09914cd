from slowapi import Limiter

from app.core import config
from app.features.users.dependencies import get_authorization_header

# Keyed by bearer token so each operator gets their own budget
limiter = Limiter(key_func=get_authorization_header, enabled=config.RATE_LIMIT_ENABLED)
