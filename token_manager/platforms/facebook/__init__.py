"""
Facebook platform integration.

Key Components:
- graph_client: FacebookGraphClient making Graph API calls with the
  credential currently held in the store for an app
"""

from token_manager.platforms.facebook.graph_client import FacebookGraphClient

__all__ = ["FacebookGraphClient"]
