"""
Facebook token manager.

Keeps long-lived Facebook app tokens fresh: exchanges short-lived tokens for
long-lived ones, tracks their expiry and renews them on a daily schedule.
"""

from dotenv import load_dotenv

# Load .env file if it exists (important for local development)
load_dotenv()

__version__ = "1.0.0"
