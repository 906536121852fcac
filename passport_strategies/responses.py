"""
Value types passed between the embedding application and the client.

The callback query arrives as a ``StateCode`` and ``get_profile`` answers with a
``PassportResponse``, which is either a ``Profile`` or a ``FailureRedirect``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union


@dataclass(frozen=True)
class StateCode:
    """Parameters the provider sends back to the redirect URL."""
    state: Optional[str]
    code: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None
    
    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> 'StateCode':
        """
        Build a StateCode from a parsed callback query.
        
        Args:
            query: Mapping of query parameter names to values. List values
                (as produced by ``parse_qs``) use their first element.
        """
        def first(key: str) -> Optional[str]:
            value = query.get(key)
            if isinstance(value, (list, tuple)):
                return value[0] if value else None
            return value
        
        return cls(
            state=first('state'),
            code=first('code'),
            error=first('error'),
            error_description=first('error_description')
        )


@dataclass(frozen=True)
class Profile:
    """Authenticated user profile with the tokens that granted it."""
    provider: str
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    token_type: str = 'Bearer'
    user_info: Dict[str, Any] = field(default_factory=dict)
    
    @property
    def id(self) -> Optional[str]:
        """Provider-side user id, as a string."""
        user_id = self.user_info.get('id')
        return str(user_id) if user_id is not None else None
    
    @property
    def email(self) -> Optional[str]:
        # Microsoft Graph reports the address as mail or userPrincipalName
        return (self.user_info.get('email')
                or self.user_info.get('mail')
                or self.user_info.get('userPrincipalName'))
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {
            'provider': self.provider,
            'access_token': self.access_token,
            'refresh_token': self.refresh_token,
            'expires_in': self.expires_in,
            'scope': self.scope,
            'token_type': self.token_type,
            'profile': dict(self.user_info)
        }


@dataclass(frozen=True)
class FailureRedirect:
    """URL the embedder should redirect to after the user cancelled."""
    url: str
    provider: Optional[str] = None
    error: Optional[str] = None
    
    def __str__(self) -> str:
        return self.url


PassportResponse = Union[Profile, FailureRedirect]
