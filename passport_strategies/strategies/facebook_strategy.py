"""
Facebook Login strategy.
"""

from typing import Dict, Any, List, Optional

from .base_strategy import BaseStrategy, DEFAULT_TIMEOUT

GRAPH_API_VERSION = 'v19.0'


class FacebookStrategy(BaseStrategy):
    """
    Facebook OAuth 2.0 strategy.

    The profile is read from the Graph API ``/me`` node; ``profile_fields``
    controls which fields are requested.
    """

    name = 'facebook'
    display_name = 'Facebook'
    authorize_url = f'https://www.facebook.com/{GRAPH_API_VERSION}/dialog/oauth'
    token_url = f'https://graph.facebook.com/{GRAPH_API_VERSION}/oauth/access_token'
    profile_url = f'https://graph.facebook.com/{GRAPH_API_VERSION}/me'
    default_scopes = ['public_profile', 'email']
    use_pkce_default = False
    denial_errors = frozenset(['access_denied', 'user_denied'])

    def __init__(self, client_id: str, client_secret: str, scopes: Optional[List[str]] = None,
                 redirect_url: str = None, failure_redirect: Optional[str] = None,
                 use_pkce: Optional[bool] = None, timeout: int = DEFAULT_TIMEOUT,
                 profile_fields: Optional[List[str]] = None):
        self.profile_fields = profile_fields or ['id', 'name', 'email', 'picture']

        super().__init__(client_id, client_secret, scopes, redirect_url,
                         failure_redirect, use_pkce, timeout)

    def profile_params(self) -> Optional[Dict[str, str]]:
        return {'fields': ','.join(self.profile_fields)}

    def _get_provider_metadata(self) -> Dict[str, Any]:
        return {
            'documentation_url': 'https://developers.facebook.com/docs/facebook-login/guides/advanced/manual-flow',
            'console_url': 'https://developers.facebook.com',
            'graph_api_version': GRAPH_API_VERSION
        }
