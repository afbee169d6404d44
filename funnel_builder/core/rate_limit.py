from slowapi import Limiter
from slowapi.util import get_remote_address

# Per-client limiter shared by every router; limits are declared per endpoint.
limiter = Limiter(key_func=get_remote_address)
