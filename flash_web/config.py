"""
Flash Web configuration. Values come from the environment with dev defaults.
No secrets in this file; session ids are generated at runtime.
"""
import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


# Cookie carrying the server-side session id
SESSION_COOKIE_NAME = os.environ.get("FLASH_SESSION_COOKIE", "flash_session")

# Idle lifetime of a session (seconds). Flash entries live only as long as their session.
SESSION_TTL_SECONDS = int(os.environ.get("FLASH_SESSION_TTL_SECONDS", "1800"))

# Send the session cookie with the Secure attribute (enable behind HTTPS)
SESSION_COOKIE_SECURE = _env_flag("FLASH_COOKIE_SECURE")

# Flag every entry at the start of each request so nothing outlives one request unless kept
SWEEP_UNUSED_FLASH_ENTRIES = _env_flag("FLASH_SWEEP_UNUSED")

# Case-fold flash keys on lookup ("Notice" and "notice" address the same entry)
FLASH_KEYS_CASE_INSENSITIVE = _env_flag("FLASH_KEYS_CASE_INSENSITIVE")
