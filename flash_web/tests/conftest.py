"""
Pytest configuration for flash_web. Pin configuration so a developer's env doesn't change test behavior.
"""
import os

os.environ["FLASH_SWEEP_UNUSED"] = "false"
os.environ["FLASH_KEYS_CASE_INSENSITIVE"] = "false"
os.environ["FLASH_COOKIE_SECURE"] = "false"
os.environ["FLASH_SESSION_COOKIE"] = "flash_session"
if "FLASH_SESSION_TTL_SECONDS" in os.environ:
    del os.environ["FLASH_SESSION_TTL_SECONDS"]
