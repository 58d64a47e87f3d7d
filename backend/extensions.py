from flask_compress import Compress
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Bound to the app inside create_app()
limiter = Limiter(key_func=get_remote_address)
compress = Compress()
