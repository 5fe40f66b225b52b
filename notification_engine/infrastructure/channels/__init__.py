"""Channel dispatchers delivering notifications to users."""

from .base import BaseChannelDispatcher
from .email import EmailChannelDispatcher, validate_email_address
from .in_app import InAppChannelDispatcher, calculate_expiration
from .sms import SmsChannelDispatcher, validate_phone_number

__all__ = [
    "BaseChannelDispatcher",
    "EmailChannelDispatcher",
    "InAppChannelDispatcher",
    "SmsChannelDispatcher",
    "calculate_expiration",
    "validate_email_address",
    "validate_phone_number",
]
