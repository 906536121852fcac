"""
Google OAuth 2.0 strategy.

Handles Google-specific authorization parameters (offline access, consent
prompt, incremental authorization) on top of the BaseStrategy flow.
"""

from typing import Dict, Any, List, Optional

from .base_strategy import BaseStrategy, DEFAULT_TIMEOUT


class GoogleStrategy(BaseStrategy):
    """
    Google OAuth 2.0 strategy.

    Requests offline access by default so the token response carries a
    refresh token.
    """

    name = 'google'
    display_name = 'Google Account'
    authorize_url = 'https://accounts.google.com/o/oauth2/v2/auth'
    token_url = 'https://oauth2.googleapis.com/token'
    profile_url = 'https://www.googleapis.com/oauth2/v2/userinfo'
    default_scopes = ['openid', 'email', 'profile']
    use_pkce_default = True

    def __init__(self, client_id: str, client_secret: str, scopes: Optional[List[str]] = None,
                 redirect_url: str = None, failure_redirect: Optional[str] = None,
                 use_pkce: Optional[bool] = None, timeout: int = DEFAULT_TIMEOUT,
                 access_type: str = 'offline', prompt: str = 'consent',
                 include_granted_scopes: bool = True):
        """
        Initialize Google strategy.

        Args:
            access_type: 'offline' to receive a refresh token, 'online' otherwise
            prompt: Google prompt parameter ('consent', 'select_account', 'none')
            include_granted_scopes: Enable incremental authorization

        See BaseStrategy for the remaining arguments.
        """
        self.access_type = access_type
        self.prompt = prompt
        self.include_granted_scopes = include_granted_scopes

        super().__init__(client_id, client_secret, scopes, redirect_url,
                         failure_redirect, use_pkce, timeout)

    def authorize_params(self) -> Dict[str, str]:
        params = {
            'access_type': self.access_type,
            'prompt': self.prompt
        }
        if self.include_granted_scopes:
            params['include_granted_scopes'] = 'true'
        return params

    def _get_provider_metadata(self) -> Dict[str, Any]:
        return {
            'documentation_url': 'https://developers.google.com/identity/protocols/oauth2',
            'console_url': 'https://console.cloud.google.com'
        }
