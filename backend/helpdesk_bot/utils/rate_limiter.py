# /helpdesk_bot/utils/rate_limiter.py

from fastapi import Request
from slowapi import Limiter

from helpdesk_bot.config.settings import settings

# The limiter lives here so main.py and the route modules share one instance.
# Channel connectors usually sit behind a proxy; set TRUST_FORWARDED_FOR to
# rate limit on the original client instead of the proxy address.


def get_client_ip(request: Request) -> str:
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


limiter = Limiter(
    key_func=get_client_ip,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"]
)
