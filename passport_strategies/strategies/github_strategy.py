"""
GitHub OAuth App strategy.
"""

from typing import Dict, Any, Optional

from .base_strategy import BaseStrategy
from ..exceptions import ProfileFetchError

GITHUB_API_URL = 'https://api.github.com'


class GithubStrategy(BaseStrategy):
    """
    GitHub OAuth 2.0 strategy.

    GitHub omits ``email`` from ``/user`` when the address is private; with
    the ``user:email`` scope the primary verified address is looked up from
    ``/user/emails`` instead.
    """

    name = 'github'
    display_name = 'GitHub'
    authorize_url = 'https://github.com/login/oauth/authorize'
    token_url = 'https://github.com/login/oauth/access_token'
    profile_url = f'{GITHUB_API_URL}/user'
    emails_url = f'{GITHUB_API_URL}/user/emails'
    default_scopes = ['read:user', 'user:email']
    use_pkce_default = False

    def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        user_info = super().fetch_profile(access_token)

        if not user_info.get('email') and 'user:email' in self.scopes:
            email = self._fetch_primary_email(access_token)
            if email:
                user_info = {**user_info, 'email': email}

        return user_info

    def _fetch_primary_email(self, access_token: str) -> Optional[str]:
        try:
            emails = self._get_json(self.emails_url, access_token)
        except ProfileFetchError as e:
            # The profile is still usable without an email address
            self.logger.warning(f"Could not read GitHub email addresses: {e}")
            return None

        if not isinstance(emails, list):
            return None

        for entry in emails:
            if not isinstance(entry, dict):
                continue
            if entry.get('primary') and entry.get('verified'):
                return entry.get('email')
        return None

    def _get_provider_metadata(self) -> Dict[str, Any]:
        return {
            'documentation_url': 'https://docs.github.com/apps/oauth-apps/building-oauth-apps/authorizing-oauth-apps',
            'console_url': 'https://github.com/settings/developers'
        }
