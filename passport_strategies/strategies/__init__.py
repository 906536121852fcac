"""
OAuth 2.0 login strategies.

Each supported provider has one strategy class sharing the BaseStrategy
interface. ``create_strategy`` builds one from a configuration mapping.
"""

from typing import Any, Dict, Type

from ..exceptions import ProviderConfigurationError
from .base_strategy import BaseStrategy
from .discord_strategy import DiscordStrategy
from .facebook_strategy import FacebookStrategy
from .github_strategy import GithubStrategy
from .google_strategy import GoogleStrategy
from .microsoft_strategy import MicrosoftStrategy

STRATEGY_CLASSES: Dict[str, Type[BaseStrategy]] = {
    strategy_class.name: strategy_class
    for strategy_class in (
        GoogleStrategy,
        MicrosoftStrategy,
        GithubStrategy,
        FacebookStrategy,
        DiscordStrategy,
    )
}


def create_strategy(provider: str, config: Dict[str, Any]) -> BaseStrategy:
    """
    Instantiate the strategy for a provider from a configuration mapping.

    Args:
        provider: Provider key, one of STRATEGY_CLASSES. A ``strategy`` entry
            in the config takes precedence, so several registrations can share
            one provider under different names.
        config: Strategy configuration

    Raises:
        ProviderConfigurationError: If the provider is not supported or the
            configuration is invalid
    """
    key = config.get('strategy', provider).lower()
    strategy_class = STRATEGY_CLASSES.get(key)
    if strategy_class is None:
        raise ProviderConfigurationError(
            f"Unsupported provider '{key}'. Supported: {', '.join(sorted(STRATEGY_CLASSES))}"
        )
    return strategy_class.from_config(config)


__all__ = [
    'BaseStrategy',
    'GoogleStrategy',
    'MicrosoftStrategy',
    'GithubStrategy',
    'FacebookStrategy',
    'DiscordStrategy',
    'STRATEGY_CLASSES',
    'create_strategy'
]
