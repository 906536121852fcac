"""
Base strategy interface for OAuth 2.0 login providers.

This module defines the abstract base class that every provider strategy
implements: authorization URL generation, authorization code exchange and
profile retrieval. Protocol details (request shaping, PKCE challenges, token
response parsing) are delegated to Authlib's requests client.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List, Tuple
import logging
from urllib.parse import urlparse

import requests
from authlib.common.errors import AuthlibBaseError
from authlib.common.security import generate_token
from authlib.integrations.requests_client import OAuth2Session
from requests.exceptions import RequestException, ConnectionError, Timeout

from ..exceptions import OAuthFlowError, ProfileFetchError, ProviderConfigurationError
from ..responses import Profile


# RFC 7636 allows verifiers of 43-128 characters
PKCE_VERIFIER_LENGTH = 64

DEFAULT_TIMEOUT = 30

DENIAL_ERRORS = frozenset(['access_denied'])


class BaseStrategy(ABC):
    """
    Abstract base class for OAuth 2.0 login strategies.

    Subclasses bake in the provider's endpoints through class attributes and
    may override ``authorize_params`` and ``fetch_profile`` for provider
    specific behaviour. Instances are not mutated after construction.
    """

    name: str = ''
    display_name: str = ''
    authorize_url: str = ''
    token_url: str = ''
    profile_url: str = ''
    default_scopes: List[str] = []
    use_pkce_default: bool = True
    token_endpoint_auth_method: str = 'client_secret_post'
    denial_errors = DENIAL_ERRORS

    def __init__(self, client_id: str, client_secret: str, scopes: Optional[List[str]] = None,
                 redirect_url: str = None, failure_redirect: Optional[str] = None,
                 use_pkce: Optional[bool] = None, timeout: int = DEFAULT_TIMEOUT):
        """
        Initialize the strategy.

        Args:
            client_id: Application (client) ID issued by the provider
            client_secret: Client secret issued by the provider
            scopes: OAuth scopes to request, defaults to the provider's defaults
            redirect_url: Callback URL registered with the provider
            failure_redirect: Optional URL to send the user to when they cancel
            use_pkce: Override the provider's PKCE default
            timeout: Timeout in seconds for token and profile requests

        Raises:
            ProviderConfigurationError: If configuration is invalid
        """
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

        self.client_id = client_id
        self.client_secret = client_secret
        self.scopes = list(self.default_scopes) if scopes is None else scopes
        self.redirect_url = redirect_url
        self.failure_redirect = failure_redirect
        self.use_pkce = self.use_pkce_default if use_pkce is None else bool(use_pkce)
        self.timeout = timeout
        self.display_name = self.display_name or self.name.title()

        self._validate_config()
        self.scopes = list(self.scopes)

        self.logger.info(f"Initialized {self.display_name} strategy (pkce={self.use_pkce})")

    def _validate_config(self) -> None:
        """
        Validate strategy configuration.

        Raises:
            ProviderConfigurationError: If required configuration is missing or invalid
        """
        missing_fields = [
            field for field in ('client_id', 'client_secret', 'redirect_url')
            if not getattr(self, field)
        ]
        if missing_fields:
            raise ProviderConfigurationError(
                f"Missing required configuration for {self.name} strategy: {', '.join(missing_fields)}"
            )

        if not isinstance(self.client_id, str):
            raise ProviderConfigurationError(f"client_id must be a string for {self.name} strategy")

        if not isinstance(self.client_secret, str):
            raise ProviderConfigurationError(f"client_secret must be a string for {self.name} strategy")

        if not isinstance(self.scopes, list):
            raise ProviderConfigurationError(f"scopes must be a list for {self.name} strategy")

        url_fields = ['redirect_url', 'failure_redirect', 'authorize_url', 'token_url', 'profile_url']
        for field in url_fields:
            url = getattr(self, field)
            if field == 'failure_redirect' and url is None:
                continue
            if not self._is_valid_url(url):
                raise ProviderConfigurationError(f"Invalid {field} for {self.name} strategy: {url}")

    @staticmethod
    def _is_valid_url(url: str) -> bool:
        if not isinstance(url, str):
            return False
        try:
            result = urlparse(url)
        except ValueError:
            return False
        return bool(result.scheme in ('http', 'https') and result.netloc)

    def _create_session(self) -> OAuth2Session:
        """Create an Authlib session bound to this strategy's client credentials."""
        return OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            token_endpoint_auth_method=self.token_endpoint_auth_method,
            scope=self.scopes,
            redirect_uri=self.redirect_url,
            code_challenge_method='S256' if self.use_pkce else None
        )

    def authorize_params(self) -> Dict[str, str]:
        """
        Get provider-specific parameters appended to the authorization URL.

        Returns:
            Extra query parameters, empty by default
        """
        return {}

    def build_authorize_url(self, state: str) -> Tuple[str, Optional[str]]:
        """
        Generate the authorization URL for this provider.

        Args:
            state: Anti-forgery state token to bind the flow to

        Returns:
            Tuple of (authorization URL, PKCE verifier or None)

        Raises:
            OAuthFlowError: If URL generation fails
        """
        verifier = generate_token(PKCE_VERIFIER_LENGTH) if self.use_pkce else None

        try:
            with self._create_session() as session:
                url, _ = session.create_authorization_url(
                    self.authorize_url,
                    state=state,
                    code_verifier=verifier,
                    **self.authorize_params()
                )
        except AuthlibBaseError as e:
            self.logger.error(f"Failed to generate {self.display_name} authorization URL: {e}", exc_info=True)
            raise OAuthFlowError(f"Failed to generate authorization URL: {e}")

        self.logger.debug(f"Generated {self.display_name} authorization URL with scopes: {' '.join(self.scopes)}")
        return url, verifier

    def exchange_code(self, code: str, verifier: Optional[str] = None) -> Dict[str, Any]:
        """
        Exchange an authorization code for tokens.

        Args:
            code: Authorization code from the callback
            verifier: PKCE verifier recorded when the URL was built

        Returns:
            Token data dictionary with access_token, refresh_token, expires_in, scope, token_type

        Raises:
            OAuthFlowError: If token exchange fails
        """
        kwargs = {'code': code}
        if verifier:
            kwargs['code_verifier'] = verifier

        self.logger.debug(f"Exchanging authorization code for {self.display_name} tokens")

        try:
            with self._create_session() as session:
                token_response = session.fetch_token(self.token_url, timeout=self.timeout, **kwargs)
        except AuthlibBaseError as e:
            self.logger.error(f"{self.display_name} token exchange rejected: {e}")
            raise OAuthFlowError(f"Token exchange failed: {e}", 'token_exchange_failed')
        except RequestException as e:
            self.logger.error(f"Network error during {self.display_name} token exchange: {e}", exc_info=True)
            if isinstance(e, ConnectionError):
                raise OAuthFlowError("Network connection failed during token exchange.", 'network_error')
            elif isinstance(e, Timeout):
                raise OAuthFlowError("Token exchange timed out.", 'timeout')
            else:
                raise OAuthFlowError(f"Network request failed: {e}", 'network_error')
        except ValueError as e:
            self.logger.error(f"Unparseable token response from {self.display_name}: {e}")
            raise OAuthFlowError(f"Invalid token response: {e}", 'token_exchange_failed')

        if not self.validate_token_response(token_response):
            raise OAuthFlowError(f"Invalid token response from {self.display_name}", 'token_exchange_failed')

        normalized_tokens = self.extract_token_data(token_response)

        self.logger.info(f"Exchanged code for {self.display_name} tokens - expires_in: {normalized_tokens['expires_in']}")

        return normalized_tokens

    def validate_token_response(self, token_data: Dict[str, Any]) -> bool:
        """
        Validate an OAuth token response.

        Args:
            token_data: Token response from the provider

        Returns:
            True if the response carries an access token, False otherwise
        """
        if not token_data:
            self.logger.error(f"Empty token response from {self.name}")
            return False

        if not token_data.get('access_token'):
            self.logger.error(f"Missing access_token in response from {self.name}")
            return False

        return True

    def extract_token_data(self, token_response: Dict[str, Any]) -> Dict[str, Any]:
        """
        Extract and normalize token data from an OAuth response.

        Args:
            token_response: Raw token response from the provider

        Returns:
            Normalized token data dictionary
        """
        expires_in = token_response.get('expires_in')
        try:
            expires_in = int(expires_in) if expires_in is not None else None
        except (ValueError, TypeError):
            self.logger.warning(f"Non-numeric expires_in value from {self.name}: {expires_in}")
            expires_in = None

        return {
            'access_token': token_response['access_token'],
            'refresh_token': token_response.get('refresh_token'),
            'expires_in': expires_in,
            'scope': token_response.get('scope', ' '.join(self.scopes)),
            'token_type': token_response.get('token_type', 'Bearer')
        }

    def _get_json(self, url: str, access_token: str, params: Optional[Dict[str, str]] = None) -> Any:
        """
        Perform an authenticated GET against the provider API.

        Raises:
            ProfileFetchError: On network errors, non-200 responses or invalid JSON
        """
        headers = {
            'Authorization': f'Bearer {access_token}',
            'Accept': 'application/json'
        }

        try:
            response = requests.get(url, headers=headers, params=params, timeout=self.timeout)
        except RequestException as e:
            self.logger.error(f"Network error during {self.display_name} profile request: {e}", exc_info=True)
            raise ProfileFetchError(f"Profile request network error: {e}")

        if response.status_code != 200:
            self.logger.error(f"{self.display_name} profile request failed: HTTP {response.status_code}")
            raise ProfileFetchError(f"Profile request failed: HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            self.logger.error(f"Invalid JSON in {self.display_name} profile response: {e}")
            raise ProfileFetchError(f"Invalid profile response: {e}")

    def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        """
        Retrieve the user's profile from the provider.

        Args:
            access_token: Valid access token

        Returns:
            User information dictionary as returned by the provider

        Raises:
            ProfileFetchError: If the profile cannot be retrieved
        """
        user_info = self._get_json(self.profile_url, access_token, params=self.profile_params())
        if not isinstance(user_info, dict):
            raise ProfileFetchError(f"Unexpected profile payload from {self.display_name}")

        self.logger.info(f"Retrieved {self.display_name} profile for user: {user_info.get('id', 'unknown')}")
        return user_info

    def profile_params(self) -> Optional[Dict[str, str]]:
        """Query parameters for the profile request."""
        return None

    def authenticate(self, code: str, verifier: Optional[str] = None) -> Profile:
        """
        Exchange the code and fetch the profile in one step.

        Args:
            code: Authorization code from the callback
            verifier: PKCE verifier recorded for this flow

        Returns:
            Profile carrying the tokens and the provider user info
        """
        tokens = self.exchange_code(code, verifier)
        user_info = self.fetch_profile(tokens['access_token'])

        return Profile(
            provider=self.name,
            access_token=tokens['access_token'],
            refresh_token=tokens['refresh_token'],
            expires_in=tokens['expires_in'],
            scope=tokens['scope'],
            token_type=tokens['token_type'],
            user_info=user_info
        )

    def is_denial(self, error: Optional[str]) -> bool:
        """Check whether a callback error code means the user cancelled or refused."""
        return bool(error) and error in self.denial_errors

    def parse_oauth_error(self, error: str, error_description: str = None) -> Tuple[str, str]:
        """
        Parse and standardize OAuth error responses.

        Args:
            error: OAuth error code
            error_description: Optional error description

        Returns:
            Tuple of (error_code, user_friendly_message)
        """
        error_messages = {
            'access_denied': 'You cancelled the authorization. Please try again if you want to sign in.',
            'invalid_request': 'Invalid authorization request. Please try again.',
            'unauthorized_client': 'Application not authorized. Please contact support.',
            'unsupported_response_type': 'Configuration error. Please contact support.',
            'invalid_scope': 'Invalid permissions requested. Please contact support.',
            'server_error': f'{self.display_name} server error. Please try again later.',
            'temporarily_unavailable': f'{self.display_name} is temporarily unavailable. Please try again later.'
        }

        user_message = error_messages.get(error, error_description or 'OAuth authorization failed')

        self.logger.warning(f"OAuth error for {self.name}: {error} - {error_description}")

        return error, user_message

    def get_strategy_info(self) -> Dict[str, Any]:
        """
        Get strategy information for display and diagnostics.

        Returns:
            Strategy information dictionary, without secrets
        """
        return {
            'name': self.name,
            'display_name': self.display_name,
            'type': 'oauth2',
            'scopes': list(self.scopes),
            'redirect_url': self.redirect_url,
            'failure_redirect': self.failure_redirect,
            'pkce': self.use_pkce,
            'authorization_endpoint': self.authorize_url,
            'token_endpoint': self.token_url,
            'profile_endpoint': self.profile_url,
            'metadata': self._get_provider_metadata()
        }

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'BaseStrategy':
        """
        Build a strategy from a configuration mapping.

        Args:
            config: Mapping with client_id, client_secret, redirect_url and
                optional scopes, failure_redirect, use_pkce, timeout plus any
                keyword accepted by the concrete strategy
        """
        options = {
            key: value for key, value in config.items()
            if key not in ('enabled', 'name', 'display_name', 'strategy')
        }
        try:
            return cls(**options)
        except TypeError as e:
            raise ProviderConfigurationError(f"Invalid configuration for {cls.name} strategy: {e}")

    @abstractmethod
    def _get_provider_metadata(self) -> Dict[str, Any]:
        """Provider documentation links used in diagnostics."""

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', display_name='{self.display_name}')"

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(name='{self.name}', "
                f"client_id='{self.client_id}', scopes={self.scopes})")
