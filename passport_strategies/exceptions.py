"""
Exception classes for passport-strategies.
"""


class PassportError(Exception):
    """Base exception for all passport-strategies errors."""
    
    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or 'passport_error'


class ConfigurationError(PassportError):
    """Raised when configuration is invalid or missing."""
    
    def __init__(self, message: str):
        super().__init__(message, 'configuration_error')


class ProviderConfigurationError(PassportError):
    """Raised when strategy configuration is invalid."""
    
    def __init__(self, message: str):
        super().__init__(message, 'invalid_strategy_configuration')


class UnknownStrategyError(PassportError):
    """Raised when a strategy name is not registered."""
    
    def __init__(self, name: str):
        super().__init__(f"Unknown strategy: {name}", 'unknown_strategy')
        self.name = name


class NoStrategySelectedError(PassportError):
    """Raised when a redirect URL is requested before authenticate()."""
    
    def __init__(self):
        super().__init__("No strategy selected. Call authenticate() first.", 'no_strategy_selected')


class InvalidStateError(PassportError):
    """Raised when a callback state is unknown, expired or already used."""
    
    def __init__(self, message: str = "Unknown or expired state parameter"):
        super().__init__(message, 'invalid_state')


class AuthorizationDeniedError(PassportError):
    """Raised when the user denied access and no failure redirect is configured."""
    
    def __init__(self, message: str, provider: str = None):
        super().__init__(message, 'access_denied')
        self.provider = provider


class OAuthFlowError(PassportError):
    """Raised when code exchange or the provider callback fails."""
    
    def __init__(self, message: str, error_code: str = 'oauth_flow_error'):
        super().__init__(message, error_code)


class ProfileFetchError(OAuthFlowError):
    """Raised when the provider profile cannot be fetched or parsed."""
    
    def __init__(self, message: str):
        super().__init__(message, 'profile_fetch_error')
