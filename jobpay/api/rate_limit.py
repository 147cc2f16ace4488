import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from jobpay.core.config import settings

logger = logging.getLogger(__name__)

# Sessions live in process memory, so limits are per process as well.
limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

RATE_LIMITS = {
    "promo_apply": settings.RATE_LIMIT_PROMO_APPLY,
    "pay": settings.RATE_LIMIT_PAY,
}
