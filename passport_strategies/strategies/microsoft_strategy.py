"""
Microsoft identity platform (v2.0) OAuth strategy.

Supports tenant-specific endpoints and reads the profile from Microsoft Graph.
"""

from typing import Dict, Any, List, Optional

from .base_strategy import BaseStrategy, DEFAULT_TIMEOUT

MICROSOFT_LOGIN_BASE = 'https://login.microsoftonline.com'


class MicrosoftStrategy(BaseStrategy):
    """
    Microsoft OAuth 2.0 strategy.

    The ``tenant`` option selects the authority: 'common' (default),
    'organizations', 'consumers' or a directory (tenant) ID.
    """

    name = 'microsoft'
    display_name = 'Microsoft Account'
    authorize_url = f'{MICROSOFT_LOGIN_BASE}/common/oauth2/v2.0/authorize'
    token_url = f'{MICROSOFT_LOGIN_BASE}/common/oauth2/v2.0/token'
    profile_url = 'https://graph.microsoft.com/v1.0/me'
    default_scopes = ['openid', 'profile', 'email', 'offline_access', 'User.Read']
    use_pkce_default = True
    denial_errors = frozenset(['access_denied', 'consent_required', 'interaction_required', 'login_required'])

    def __init__(self, client_id: str, client_secret: str, scopes: Optional[List[str]] = None,
                 redirect_url: str = None, failure_redirect: Optional[str] = None,
                 use_pkce: Optional[bool] = None, timeout: int = DEFAULT_TIMEOUT,
                 tenant: str = 'common', response_mode: str = 'query',
                 prompt: str = 'select_account'):
        """
        Initialize Microsoft strategy.

        Args:
            tenant: Authority tenant used in the login endpoints
            response_mode: How the callback parameters are returned
            prompt: Microsoft prompt parameter

        See BaseStrategy for the remaining arguments.
        """
        self.tenant = tenant
        self.response_mode = response_mode
        self.prompt = prompt

        # Instance attributes shadow the class endpoints for non-common tenants
        if tenant != 'common':
            self.authorize_url = f'{MICROSOFT_LOGIN_BASE}/{tenant}/oauth2/v2.0/authorize'
            self.token_url = f'{MICROSOFT_LOGIN_BASE}/{tenant}/oauth2/v2.0/token'

        super().__init__(client_id, client_secret, scopes, redirect_url,
                         failure_redirect, use_pkce, timeout)

    def authorize_params(self) -> Dict[str, str]:
        return {
            'response_mode': self.response_mode,
            'prompt': self.prompt
        }

    def _get_provider_metadata(self) -> Dict[str, Any]:
        return {
            'documentation_url': 'https://learn.microsoft.com/entra/identity-platform/v2-oauth2-auth-code-flow',
            'console_url': 'https://portal.azure.com',
            'tenant': self.tenant
        }
