import hashlib
import uuid
from datetime import datetime, UTC

def make_id(prefix: str) -> str:
    """Generate a unique ID with a given prefix."""
    return f"{prefix}_{uuid.uuid4()}"

def time_now() -> str:
    """Return the current time in ISO format (UTC, no microseconds)."""
    return datetime.now(UTC).replace(microsecond=0).isoformat()

def hash_password(password: str) -> str:
    """Hash a password with SHA-256 and return the hex digest."""
    return hashlib.sha256(password.encode()).hexdigest()

def strip_bearer(token: str) -> str:
    """Remove a leading 'Bearer ' scheme from an Authorization header value."""
    if token.startswith("Bearer "):
        return token[7:]
    return token
