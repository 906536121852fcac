"""
passport-strategies: OAuth 2.0 login with Google, Microsoft, GitHub, Facebook
and Discord, modeled after the Passport.js strategy pattern.

Register strategies on a PassportBasicClient, redirect the user to the URL
from generate_redirect_url(), then hand the callback parameters to
get_profile() to receive a Profile or a FailureRedirect.
"""

from .basic_client import PassportBasicClient
from .config import Config, configure_logging
from .exceptions import (
    AuthorizationDeniedError,
    ConfigurationError,
    InvalidStateError,
    NoStrategySelectedError,
    OAuthFlowError,
    PassportError,
    ProfileFetchError,
    ProviderConfigurationError,
    UnknownStrategyError,
)
from .flow_store import PendingFlow, PendingFlowStore
from .responses import FailureRedirect, PassportResponse, Profile, StateCode
from .strategies import (
    BaseStrategy,
    DiscordStrategy,
    FacebookStrategy,
    GithubStrategy,
    GoogleStrategy,
    MicrosoftStrategy,
    create_strategy,
)

__version__ = '0.2.0'

__all__ = [
    'PassportBasicClient',
    'Config',
    'configure_logging',
    'StateCode',
    'Profile',
    'FailureRedirect',
    'PassportResponse',
    'PendingFlow',
    'PendingFlowStore',
    'BaseStrategy',
    'GoogleStrategy',
    'MicrosoftStrategy',
    'GithubStrategy',
    'FacebookStrategy',
    'DiscordStrategy',
    'create_strategy',
    'PassportError',
    'ConfigurationError',
    'ProviderConfigurationError',
    'UnknownStrategyError',
    'NoStrategySelectedError',
    'InvalidStateError',
    'AuthorizationDeniedError',
    'OAuthFlowError',
    'ProfileFetchError'
]
