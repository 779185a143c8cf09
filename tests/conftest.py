import os

# database.py refuses to import without a URL; the limiter reads its flag at import
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
