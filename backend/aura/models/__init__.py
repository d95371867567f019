from .tenancy import Organization
from .auth import Profile, SessionToken
from .dealers import Dealer
from .security import SecurityEvent

__all__ = [
    'Organization',
    'Profile', 'SessionToken',
    'Dealer',
    'SecurityEvent',
]
