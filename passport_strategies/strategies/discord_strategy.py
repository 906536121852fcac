"""
Discord OAuth 2.0 strategy.
"""

from typing import Dict, Any, List, Optional

from .base_strategy import BaseStrategy, DEFAULT_TIMEOUT

DISCORD_API_URL = 'https://discord.com/api'


class DiscordStrategy(BaseStrategy):
    """Discord OAuth 2.0 strategy."""

    name = 'discord'
    display_name = 'Discord'
    authorize_url = 'https://discord.com/oauth2/authorize'
    token_url = f'{DISCORD_API_URL}/oauth2/token'
    profile_url = f'{DISCORD_API_URL}/users/@me'
    default_scopes = ['identify', 'email']
    use_pkce_default = True

    def __init__(self, client_id: str, client_secret: str, scopes: Optional[List[str]] = None,
                 redirect_url: str = None, failure_redirect: Optional[str] = None,
                 use_pkce: Optional[bool] = None, timeout: int = DEFAULT_TIMEOUT,
                 prompt: Optional[str] = None):
        """
        Initialize Discord strategy.

        Args:
            prompt: 'consent' to always show the authorization screen, or
                'none' to skip it for users who already authorized the app
        """
        self.prompt = prompt

        super().__init__(client_id, client_secret, scopes, redirect_url,
                         failure_redirect, use_pkce, timeout)

    def authorize_params(self) -> Dict[str, str]:
        return {'prompt': self.prompt} if self.prompt else {}

    def _get_provider_metadata(self) -> Dict[str, Any]:
        return {
            'documentation_url': 'https://discord.com/developers/docs/topics/oauth2',
            'console_url': 'https://discord.com/developers/applications'
        }
