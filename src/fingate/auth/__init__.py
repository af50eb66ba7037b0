"""OAuth flows and token lifecycle."""

from .authorization_code_flow import AuthorizationCodeFlow
from .device_flow import DeviceCodeFlow, DevicePollResult, DevicePollStatus
from .models import DeviceAuthorizationSession, OAuthFlowState, TokenRecord
from .pkce import PkcePair, generate_pkce, generate_state
from .prompter import Prompter
from .token_manager import TokenManager

__all__ = [
    "AuthorizationCodeFlow",
    "DeviceCodeFlow",
    "DevicePollResult",
    "DevicePollStatus",
    "DeviceAuthorizationSession",
    "OAuthFlowState",
    "TokenRecord",
    "PkcePair",
    "generate_pkce",
    "generate_state",
    "Prompter",
    "TokenManager",
]
