"""
Strategy registry and authorization-code flow dispatcher.

``PassportBasicClient`` holds the registered strategies, tracks which one is
selected for the current request and remembers in-flight authorizations by
their state token until the provider calls back.
"""

import asyncio
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from authlib.common.security import generate_token

from .exceptions import (
    AuthorizationDeniedError,
    InvalidStateError,
    NoStrategySelectedError,
    OAuthFlowError,
    PassportError,
    UnknownStrategyError,
)
from .flow_store import DEFAULT_FLOW_TTL, DEFAULT_MAX_PENDING_FLOWS, PendingFlowStore
from .responses import FailureRedirect, PassportResponse, StateCode
from .strategies import BaseStrategy, create_strategy

STATE_TOKEN_LENGTH = 43

# Attempts at drawing a state that is not already pending
MAX_STATE_ATTEMPTS = 5


class PassportBasicClient:
    """
    Registry of OAuth strategies running the two-phase login flow.

    Phase one: ``authenticate(name)`` then ``generate_redirect_url()``.
    Phase two: ``get_profile(StateCode)`` with the callback parameters.

    The selected strategy and pending flows are guarded by a re-entrant lock;
    use ``locked()`` or ``authorize_url()`` when several requests share one
    client so that selection and URL generation are not interleaved.
    """

    def __init__(self, flow_ttl: float = DEFAULT_FLOW_TTL,
                 max_pending_flows: int = DEFAULT_MAX_PENDING_FLOWS,
                 flow_store: Optional[PendingFlowStore] = None):
        """
        Initialize the client.

        Args:
            flow_ttl: Seconds a generated authorization URL stays redeemable
            max_pending_flows: Upper bound on in-flight authorizations
            flow_store: Pre-built store, overrides flow_ttl and max_pending_flows
        """
        self._strategies: Dict[str, BaseStrategy] = {}
        self._selected: Optional[str] = None
        self._lock = threading.RLock()
        self.flows = flow_store or PendingFlowStore(ttl=flow_ttl, max_entries=max_pending_flows)
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config) -> 'PassportBasicClient':
        """
        Build a client with every enabled provider from a Config.

        Args:
            config: passport_strategies.config.Config instance

        Raises:
            ProviderConfigurationError: If a provider configuration is invalid
        """
        settings = config.get_settings()
        client = cls(
            flow_ttl=settings['flow_ttl'],
            max_pending_flows=settings['max_pending_flows']
        )
        for name in config.get_enabled_providers():
            client.using(name, create_strategy(name, config.get_strategy_config(name)))
        return client

    @contextmanager
    def locked(self) -> Iterator['PassportBasicClient']:
        """Hold the client lock across several operations."""
        with self._lock:
            yield self

    def using(self, name: str, strategy: BaseStrategy) -> 'PassportBasicClient':
        """
        Register a strategy under a name, replacing any previous one.

        Args:
            name: Name later passed to authenticate()
            strategy: Strategy instance

        Returns:
            The client, for chaining

        Raises:
            PassportError: If strategy is not a BaseStrategy
        """
        if not isinstance(strategy, BaseStrategy):
            raise PassportError(f"Strategy for '{name}' must inherit from BaseStrategy")

        with self._lock:
            replaced = name in self._strategies
            self._strategies[name] = strategy

        if replaced:
            self.logger.info(f"Replaced strategy: {name} ({strategy.__class__.__name__})")
        else:
            self.logger.info(f"Registered strategy: {name} ({strategy.__class__.__name__})")
        return self

    def get_strategy(self, name: str) -> Optional[BaseStrategy]:
        with self._lock:
            return self._strategies.get(name)

    def strategies(self) -> Dict[str, BaseStrategy]:
        """Get a copy of the registered strategies by name."""
        with self._lock:
            return self._strategies.copy()

    def get_strategy_info(self) -> List[Dict]:
        with self._lock:
            return [
                {**strategy.get_strategy_info(), 'registered_as': name}
                for name, strategy in self._strategies.items()
            ]

    @property
    def selected(self) -> Optional[str]:
        """Name of the currently selected strategy."""
        with self._lock:
            return self._selected

    def authenticate(self, name: str) -> 'PassportBasicClient':
        """
        Select the strategy used by the next generate_redirect_url().

        Raises:
            UnknownStrategyError: If no strategy is registered under name
        """
        with self._lock:
            if name not in self._strategies:
                self.logger.error(f"Attempted to authenticate with unknown strategy: {name}")
                raise UnknownStrategyError(name)
            self._selected = name
        return self

    def generate_redirect_url(self) -> str:
        """
        Generate the authorization URL for the selected strategy.

        A fresh state token is drawn and recorded with the strategy name and
        PKCE verifier until the provider calls back.

        Returns:
            Authorization URL to redirect the user to

        Raises:
            NoStrategySelectedError: If authenticate() was not called
            OAuthFlowError: If the URL cannot be built
        """
        with self._lock:
            if self._selected is None:
                raise NoStrategySelectedError()

            name = self._selected
            strategy = self._strategies[name]

            for _ in range(MAX_STATE_ATTEMPTS):
                state = generate_token(STATE_TOKEN_LENGTH)
                if state not in self.flows:
                    break
            else:
                raise OAuthFlowError("Could not generate a unique state token", 'state_generation_failed')

            url, verifier = strategy.build_authorize_url(state)

            if not self.flows.add(state, name, verifier):
                raise OAuthFlowError("State token collision", 'state_generation_failed')

        self.logger.info(f"Initiated {strategy.display_name} authorization (state {state[:8]}...)")
        return url

    def authorize_url(self, name: str) -> str:
        """Select a strategy and generate its authorization URL atomically."""
        with self._lock:
            self.authenticate(name)
            return self.generate_redirect_url()

    def get_profile(self, state_code: StateCode) -> PassportResponse:
        """
        Complete the flow for a provider callback.

        The state must match a flow generated by this client; it is consumed
        whether or not the rest of the flow succeeds.

        Args:
            state_code: Callback parameters (state, code, error)

        Returns:
            Profile on success, FailureRedirect if the user cancelled and the
            strategy has a failure redirect configured

        Raises:
            InvalidStateError: If the state is missing, unknown, expired or already used
            AuthorizationDeniedError: If the user cancelled and no failure redirect is set
            OAuthFlowError: If the provider reported an error, the code is
                missing, or code exchange / profile fetch failed
            UnknownStrategyError: If the originating strategy was unregistered
        """
        state = state_code.state

        with self._lock:
            flow = self.flows.pop(state)
            if flow is None:
                if not state:
                    self.logger.error("OAuth state parameter missing from callback")
                    raise InvalidStateError("Missing state parameter")
                self.logger.error(f"Rejected callback with unknown or expired state {state[:8]}...")
                raise InvalidStateError()

            strategy = self._strategies.get(flow.strategy_name)

        if strategy is None:
            self.logger.error(f"Strategy {flow.strategy_name} was removed before its callback arrived")
            raise UnknownStrategyError(flow.strategy_name)

        if state_code.error:
            return self._handle_callback_error(strategy, state_code)

        if not state_code.code:
            self.logger.error(f"Authorization code missing from {flow.strategy_name} callback")
            raise OAuthFlowError("Authorization code missing from callback", 'missing_code')

        profile = strategy.authenticate(state_code.code, flow.verifier)

        self.logger.info(f"Completed {strategy.display_name} authentication for user: {profile.id or 'unknown'}")
        return profile

    def _handle_callback_error(self, strategy: BaseStrategy, state_code: StateCode) -> PassportResponse:
        error_code, user_message = strategy.parse_oauth_error(state_code.error, state_code.error_description)

        if not strategy.is_denial(error_code):
            raise OAuthFlowError(user_message, error_code)

        if strategy.failure_redirect:
            self.logger.info(f"User cancelled {strategy.display_name} authorization, redirecting to failure URL")
            return FailureRedirect(strategy.failure_redirect, provider=strategy.name, error=error_code)

        raise AuthorizationDeniedError(user_message, provider=strategy.name)

    async def get_profile_async(self, state_code: StateCode) -> PassportResponse:
        """Run get_profile in a worker thread for asyncio callers."""
        return await asyncio.to_thread(self.get_profile, state_code)

    def pending_count(self) -> int:
        return len(self.flows)

    def cleanup_expired(self) -> int:
        """Drop expired pending flows, returning how many were removed."""
        return self.flows.cleanup_expired()
