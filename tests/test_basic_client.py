"""
Unit tests for PassportBasicClient.

This module tests strategy registration and selection, redirect URL
generation, state validation on callback (forged, replayed and expired
states), denial handling and the end-to-end flow with the network mocked.
"""

import asyncio
import threading
import unittest
from unittest.mock import patch, MagicMock
from urllib.parse import urlparse, parse_qs
import sys
import os

# Add the project root to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from passport_strategies.basic_client import PassportBasicClient
from passport_strategies.exceptions import (
    AuthorizationDeniedError,
    InvalidStateError,
    NoStrategySelectedError,
    OAuthFlowError,
    PassportError,
    UnknownStrategyError,
)
from passport_strategies.flow_store import PendingFlowStore
from passport_strategies.responses import FailureRedirect, Profile, StateCode
from passport_strategies.strategies import DiscordStrategy, GithubStrategy, GoogleStrategy, MicrosoftStrategy


def query_of(url):
    return {key: values[0] for key, values in parse_qs(urlparse(url).query).items()}


class TestPassportBasicClient(unittest.TestCase):
    """Test cases for the strategy registry and flow dispatcher."""

    def setUp(self):
        """Set up test fixtures before each test method."""
        self.client = PassportBasicClient()
        self.github = GithubStrategy(
            client_id='C',
            client_secret='github_secret',
            scopes=['read:user', 'user:email'],
            redirect_url='https://app/cb',
            failure_redirect='https://app/login'
        )
        self.google = GoogleStrategy(
            client_id='google_client',
            client_secret='google_secret',
            redirect_url='https://app/google/cb'
        )
        self.client.using('github', self.github).using('google', self.google)

        self.profile = Profile(provider='github', access_token='access_123',
                               refresh_token='refresh_456', user_info={'id': 7, 'login': 'octocat'})

    def _start_flow(self, name='github'):
        self.client.authenticate(name)
        url = self.client.generate_redirect_url()
        return url, query_of(url)['state']

    # Registration

    def test_using_registers_strategy(self):
        """Test registered strategies are retrievable by name."""
        self.assertIs(self.client.get_strategy('github'), self.github)
        self.assertEqual(set(self.client.strategies()), {'github', 'google'})

    def test_using_replaces_existing_strategy(self):
        """Test registering under an existing name replaces the strategy."""
        replacement = GithubStrategy(client_id='B', client_secret='other_secret',
                                     redirect_url='https://other/cb')
        self.client.using('github', replacement)

        url, _ = self._start_flow('github')

        self.assertIs(self.client.get_strategy('github'), replacement)
        self.assertEqual(query_of(url)['client_id'], 'B')
        self.assertEqual(query_of(url)['redirect_uri'], 'https://other/cb')

    def test_using_rejects_non_strategy(self):
        """Test only BaseStrategy instances can be registered."""
        with self.assertRaises(PassportError):
            self.client.using('fake', MagicMock())

    def test_strategy_info_lists_registrations(self):
        """Test strategy info is reported per registered name."""
        info = {entry['registered_as']: entry for entry in self.client.get_strategy_info()}

        self.assertEqual(info['github']['name'], 'github')
        self.assertEqual(info['google']['display_name'], 'Google Account')

    # Selection and redirect URL

    def test_authenticate_unknown_strategy(self):
        """Test selecting an unregistered name is an explicit error."""
        with self.assertRaises(UnknownStrategyError) as context:
            self.client.authenticate('myspace')

        self.assertEqual(context.exception.name, 'myspace')
        self.assertIsNone(self.client.selected)

    def test_generate_redirect_url_without_selection(self):
        """Test generating a URL before authenticate() fails."""
        with self.assertRaises(NoStrategySelectedError):
            self.client.generate_redirect_url()

    def test_generate_redirect_url_contains_strategy_parameters(self):
        """Test the URL carries the selected strategy's client id, redirect URL and a state."""
        url, state = self._start_flow('github')
        params = query_of(url)

        self.assertTrue(url.startswith(GithubStrategy.authorize_url))
        self.assertEqual(params['client_id'], 'C')
        self.assertEqual(params['redirect_uri'], 'https://app/cb')
        self.assertTrue(state)
        self.assertEqual(self.client.pending_count(), 1)
        self.assertIn(state, self.client.flows)

    def test_generate_redirect_url_fresh_states(self):
        """Test every generated URL has a previously unseen state."""
        states = {self._start_flow('github')[1] for _ in range(50)}

        self.assertEqual(len(states), 50)
        self.assertEqual(self.client.pending_count(), 50)

    def test_generate_redirect_url_retries_on_collision(self):
        """Test a state that is already pending is never reused."""
        self.client.flows.add('taken', 'github')

        with patch('passport_strategies.basic_client.generate_token', side_effect=['taken', 'fresh']):
            url, state = self._start_flow('github')

        self.assertEqual(state, 'fresh')
        self.assertEqual(self.client.pending_count(), 2)

    def test_generate_redirect_url_gives_up_after_repeated_collisions(self):
        """Test state generation fails rather than reuse a pending state."""
        self.client.flows.add('taken', 'github')
        self.client.authenticate('github')

        with patch('passport_strategies.basic_client.generate_token', return_value='taken'):
            with self.assertRaises(OAuthFlowError):
                self.client.generate_redirect_url()

    def test_authorize_url_selects_and_generates(self):
        """Test the combined helper selects the strategy and returns its URL."""
        url = self.client.authorize_url('google')

        self.assertEqual(self.client.selected, 'google')
        self.assertEqual(query_of(url)['client_id'], 'google_client')

    def test_locked_allows_composed_operations(self):
        """Test the lock is re-entrant for composed calls."""
        with self.client.locked() as client:
            client.authenticate('github')
            url = client.generate_redirect_url()

        self.assertIn('state=', url)

    # Callback handling

    def test_get_profile_unknown_state_never_exchanges(self):
        """Test a state this client never generated is rejected without a token exchange."""
        self._start_flow('github')

        with patch.object(GithubStrategy, 'authenticate') as mock_authenticate:
            with self.assertRaises(InvalidStateError):
                self.client.get_profile(StateCode(state='forged-state', code='abc'))

            mock_authenticate.assert_not_called()

        self.assertEqual(self.client.pending_count(), 1)

    def test_get_profile_missing_state(self):
        """Test a callback without state is rejected."""
        with patch.object(GithubStrategy, 'authenticate') as mock_authenticate:
            with self.assertRaises(InvalidStateError):
                self.client.get_profile(StateCode(state=None, code='abc'))

            mock_authenticate.assert_not_called()

    def test_get_profile_valid_state(self):
        """Test a valid state reaches the originating strategy with its verifier."""
        _, state = self._start_flow('github')
        verifier = self.client.flows._flows[state].verifier

        with patch.object(GithubStrategy, 'authenticate', return_value=self.profile) as mock_authenticate:
            result = self.client.get_profile(StateCode(state=state, code='abc'))

        self.assertIs(result, self.profile)
        mock_authenticate.assert_called_once_with('abc', verifier)
        self.assertEqual(self.client.pending_count(), 0)

    def test_get_profile_uses_originating_strategy(self):
        """Test the strategy recorded with the state is used, not the currently selected one."""
        _, github_state = self._start_flow('github')
        self._start_flow('google')

        with patch.object(GithubStrategy, 'authenticate', return_value=self.profile) as mock_github, \
                patch.object(GoogleStrategy, 'authenticate') as mock_google:
            self.client.get_profile(StateCode(state=github_state, code='abc'))

        mock_github.assert_called_once()
        mock_google.assert_not_called()

    def test_get_profile_replay_rejected(self):
        """Test a state can only be redeemed once."""
        _, state = self._start_flow('github')

        with patch.object(GithubStrategy, 'authenticate', return_value=self.profile):
            self.client.get_profile(StateCode(state=state, code='abc'))

            with self.assertRaises(InvalidStateError):
                self.client.get_profile(StateCode(state=state, code='abc'))

    def test_get_profile_state_consumed_on_failure(self):
        """Test a failed exchange still consumes the state."""
        _, state = self._start_flow('github')

        with patch.object(GithubStrategy, 'authenticate', side_effect=OAuthFlowError('boom')):
            with self.assertRaises(OAuthFlowError):
                self.client.get_profile(StateCode(state=state, code='abc'))

        with self.assertRaises(InvalidStateError):
            self.client.get_profile(StateCode(state=state, code='abc'))

    def test_get_profile_expired_state(self):
        """Test a state past the TTL is rejected like an unknown one."""
        clock = MagicMock(return_value=100.0)
        client = PassportBasicClient(flow_store=PendingFlowStore(ttl=60, clock=clock))
        client.using('github', self.github)
        client.authenticate('github')
        state = query_of(client.generate_redirect_url())['state']

        clock.return_value = 161.0

        with patch.object(GithubStrategy, 'authenticate') as mock_authenticate:
            with self.assertRaises(InvalidStateError):
                client.get_profile(StateCode(state=state, code='abc'))

            mock_authenticate.assert_not_called()

    def test_get_profile_denial_returns_failure_redirect(self):
        """Test a cancelled authorization yields the configured failure redirect."""
        _, state = self._start_flow('github')

        with patch.object(GithubStrategy, 'authenticate') as mock_authenticate:
            result = self.client.get_profile(StateCode(state=state, error='access_denied',
                                                       error_description='The user has denied your application access.'))

            mock_authenticate.assert_not_called()

        self.assertIsInstance(result, FailureRedirect)
        self.assertEqual(result.url, 'https://app/login')
        self.assertEqual(str(result), 'https://app/login')
        self.assertEqual(result.error, 'access_denied')
        self.assertEqual(self.client.pending_count(), 0)

    def test_get_profile_denial_without_failure_redirect(self):
        """Test a cancellation is an explicit error when no failure redirect is configured."""
        _, state = self._start_flow('google')

        with self.assertRaises(AuthorizationDeniedError) as context:
            self.client.get_profile(StateCode(state=state, error='access_denied'))

        self.assertEqual(context.exception.provider, 'google')

    def test_get_profile_provider_specific_denial(self):
        """Test a Microsoft login_required callback maps to the failure redirect."""
        microsoft = MicrosoftStrategy(client_id='ms_client', client_secret='ms_secret',
                                      redirect_url='https://app/ms/cb', failure_redirect='https://app/login')
        self.client.using('microsoft', microsoft)
        _, state = self._start_flow('microsoft')

        with patch.object(MicrosoftStrategy, 'authenticate') as mock_authenticate:
            result = self.client.get_profile(StateCode(state=state, error='login_required'))

            mock_authenticate.assert_not_called()

        self.assertIsInstance(result, FailureRedirect)
        self.assertEqual(result.url, 'https://app/login')
        self.assertEqual(result.error, 'login_required')

    def test_get_profile_denial_with_forged_state(self):
        """Test a denial carrying a forged state is still rejected as invalid state."""
        with self.assertRaises(InvalidStateError):
            self.client.get_profile(StateCode(state='forged-state', error='access_denied'))

    def test_get_profile_other_provider_error(self):
        """Test non-denial provider errors surface as OAuthFlowError."""
        _, state = self._start_flow('github')

        with self.assertRaises(OAuthFlowError) as context:
            self.client.get_profile(StateCode(state=state, error='server_error'))

        self.assertEqual(context.exception.error_code, 'server_error')

    def test_get_profile_missing_code(self):
        """Test a callback with a valid state but no code fails."""
        _, state = self._start_flow('github')

        with self.assertRaises(OAuthFlowError) as context:
            self.client.get_profile(StateCode(state=state))

        self.assertEqual(context.exception.error_code, 'missing_code')

    def test_get_profile_releases_lock_during_exchange(self):
        """Test other flows can start while a code exchange is in progress."""
        _, state = self._start_flow('github')
        exchange_started = threading.Event()
        release_exchange = threading.Event()
        results = {}

        def slow_authenticate(code, verifier):
            exchange_started.set()
            release_exchange.wait(5)
            return self.profile

        def complete_callback():
            results['profile'] = self.client.get_profile(StateCode(state=state, code='abc'))

        def start_other_flow():
            results['url'] = self.client.authorize_url('google')

        with patch.object(GithubStrategy, 'authenticate', side_effect=slow_authenticate):
            callback_thread = threading.Thread(target=complete_callback)
            callback_thread.start()
            try:
                self.assertTrue(exchange_started.wait(5))

                other_thread = threading.Thread(target=start_other_flow)
                other_thread.start()
                other_thread.join(5)

                self.assertFalse(other_thread.is_alive())
                self.assertIn('state=', results['url'])
            finally:
                release_exchange.set()
                callback_thread.join(5)

        self.assertIs(results['profile'], self.profile)

    def test_get_profile_async(self):
        """Test the asyncio wrapper returns the same result."""
        _, state = self._start_flow('github')

        with patch.object(GithubStrategy, 'authenticate', return_value=self.profile):
            result = asyncio.run(self.client.get_profile_async(StateCode(state=state, code='abc')))

        self.assertIs(result, self.profile)

    def test_cleanup_expired(self):
        """Test abandoned flows are swept after the TTL."""
        clock = MagicMock(return_value=0.0)
        client = PassportBasicClient(flow_store=PendingFlowStore(ttl=60, clock=clock))
        client.using('discord', DiscordStrategy(client_id='d', client_secret='s', redirect_url='https://app/d'))
        for _ in range(3):
            client.authorize_url('discord')

        clock.return_value = 120.0

        self.assertEqual(client.cleanup_expired(), 3)
        self.assertEqual(client.pending_count(), 0)

    # End to end

    @patch('passport_strategies.strategies.base_strategy.requests.get')
    @patch('authlib.integrations.requests_client.OAuth2Session.fetch_token')
    def test_end_to_end_github(self, mock_fetch_token, mock_get):
        """Test the full GitHub flow from redirect URL to profile."""
        mock_fetch_token.return_value = {'access_token': 'gho_access', 'token_type': 'bearer',
                                         'scope': 'read:user,user:email'}
        profile_response = MagicMock(status_code=200)
        profile_response.json.return_value = {'id': 1, 'login': 'octocat', 'email': 'octocat@github.com'}
        mock_get.return_value = profile_response

        client = PassportBasicClient()
        client.using('github', GithubStrategy(client_id='C', client_secret='S', redirect_url='https://app/cb'))
        client.authenticate('github')
        url = client.generate_redirect_url()
        params = query_of(url)

        self.assertEqual(params['client_id'], 'C')
        self.assertEqual(params['redirect_uri'], 'https://app/cb')

        callback = StateCode.from_query({'code': ['abc'], 'state': [params['state']]})
        result = client.get_profile(callback)

        self.assertIsInstance(result, Profile)
        self.assertEqual(result.access_token, 'gho_access')
        self.assertEqual(result.user_info['login'], 'octocat')
        self.assertEqual(mock_fetch_token.call_args[1]['code'], 'abc')
        self.assertEqual(client.pending_count(), 0)


class TestStateCode(unittest.TestCase):
    """Test cases for StateCode parsing."""

    def test_from_query_plain_values(self):
        """Test plain mapping values are used directly."""
        state_code = StateCode.from_query({'code': 'abc', 'state': 'xyz'})

        self.assertEqual(state_code, StateCode(state='xyz', code='abc'))

    def test_from_query_error_values(self):
        """Test error parameters are captured and empty lists ignored."""
        state_code = StateCode.from_query({'state': ['xyz'], 'error': ['access_denied'], 'code': []})

        self.assertEqual(state_code.error, 'access_denied')
        self.assertIsNone(state_code.code)


if __name__ == '__main__':
    unittest.main()
