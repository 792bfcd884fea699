from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import os

# Initialize Limiter here to avoid circular imports
# Public site traffic is bursty (image-heavy pages); keep defaults loose
is_production = os.environ.get('FLASK_ENV') == 'production'
default_limits = ["5000 per day", "600 per hour"] if is_production else ["10000 per day", "1000 per hour"]
limiter = Limiter(
  key_func=get_remote_address,
  default_limits=default_limits,
  storage_uri=os.environ.get('RATELIMIT_STORAGE_URI', 'memory://'),
)

# Per-route limits for the write endpoints anyone can reach
AUTH_LIMIT = "10 per minute"
PUBLIC_WRITE_LIMIT = "30 per minute"
UPLOAD_LIMIT = "60 per minute"
