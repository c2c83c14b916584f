"""
Centralized configuration for the R2 file manager backend.

Environment variables let operators point the service at a bucket and tune
listing/signing behaviour without changing code. Documented defaults are safe
for local development; production deployments should override them in
Docker/Compose.
"""
import os


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


# Object store
S3_BUCKET = os.getenv("S3_BUCKET")
S3_ENDPOINT = os.getenv("S3_ENDPOINT")
S3_ACCESS_KEY_ID = os.getenv("S3_ACCESS_KEY_ID")
S3_SECRET_ACCESS_KEY = os.getenv("S3_SECRET_ACCESS_KEY")
S3_REGION = os.getenv("S3_REGION", "auto")

# Optional custom domain used for displayed download URLs
S3_PUBLIC_DOMAIN = os.getenv("S3_PUBLIC_DOMAIN") or None

# CORS behaviour for the API itself
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

# Listing / pagination
DEFAULT_PAGE_SIZE = _env_int("STORAGE_DEFAULT_PAGE_SIZE", 50)
MAX_PAGE_SIZE = _env_int("STORAGE_MAX_PAGE_SIZE", 1000)
LIST_MAX_KEYS = _env_int("STORAGE_LIST_MAX_KEYS", 1000)
SIGNING_CONCURRENCY = _env_int("STORAGE_SIGNING_CONCURRENCY", 16)

# Mutations
DELETE_BATCH_SIZE = _env_int("STORAGE_DELETE_BATCH_SIZE", 1000)

# Signed URL lifetimes (seconds)
DOWNLOAD_URL_TTL = _env_int("STORAGE_DOWNLOAD_URL_TTL", 3600)
UPLOAD_URL_TTL = _env_int("STORAGE_UPLOAD_URL_TTL", 300)

# Cloudflare Access identity gate
CLOUDFLARE_TEAM_DOMAIN = os.getenv("CLOUDFLARE_TEAM_DOMAIN")
CLOUDFLARE_AUD_TAG = os.getenv("CLOUDFLARE_AUD_TAG")
ACCESS_LOCAL_BYPASS = os.getenv("ACCESS_LOCAL_BYPASS", "0") == "1"
LOOPBACK_ADDRESSES = ("127.0.0.1", "::1")
