"""
Mock notification channels for order updates.

The mobile app receives order updates as push notifications, with email and
SMS as fallbacks. These channels simulate delivery by logging and keep a
history of what was sent so tests can assert on it.

Design decisions:
- All sends are logged for visibility
- Each channel records its sent messages
- Failures can be simulated with a fail rate for error-path tests
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

logger = logging.getLogger("notifications")
handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter(
    "%(asctime)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S"
))
logger.addHandler(handler)
logger.setLevel(logging.INFO)


class ChannelType(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


@dataclass
class NotificationResult:
    """Outcome of one send attempt on one channel."""
    success: bool
    channel: ChannelType
    recipient: str
    subject: Optional[str]  # email and push titles
    body: str
    timestamp: datetime = field(default_factory=datetime.now)
    error: Optional[str] = None

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        if self.subject:
            return f"{status} {self.channel.value.upper()} to {self.recipient}: {self.subject}"
        return f"{status} {self.channel.value.upper()} to {self.recipient}: {self.body[:50]}"


class MockChannel:
    """Shared send/record behaviour for the simulated channels."""

    channel_type: ChannelType = ChannelType.EMAIL
    max_body_length: Optional[int] = None

    def __init__(self, fail_rate: float = 0.0):
        """
        Args:
            fail_rate: Probability of send failure (0.0 to 1.0), for testing.
        """
        self.fail_rate = fail_rate
        self.sent_messages: list[NotificationResult] = []

    def send(self, to: str, body: str, subject: Optional[str] = None) -> NotificationResult:
        name = self.channel_type.value.upper()
        if self.max_body_length is not None and len(body) > self.max_body_length:
            logger.warning(
                f"[{name}] Message length ({len(body)}) exceeds {self.max_body_length} chars"
            )

        if random.random() < self.fail_rate:
            result = NotificationResult(
                success=False,
                channel=self.channel_type,
                recipient=to,
                subject=subject,
                body=body,
                error=f"Simulated {self.channel_type.value} delivery failure",
            )
            logger.error(f"[{name} FAILED] To: {to} | Error: {result.error}")
        else:
            result = NotificationResult(
                success=True,
                channel=self.channel_type,
                recipient=to,
                subject=subject,
                body=body,
            )
            logger.info(f"[{name}] To: {to} | {subject or body}")

        self.sent_messages.append(result)
        return result

    def get_sent_count(self) -> int:
        return len(self.sent_messages)

    def get_successful_sends(self) -> list[NotificationResult]:
        return [m for m in self.sent_messages if m.success]

    def clear_history(self):
        self.sent_messages.clear()

    def find_message_to(self, recipient: str) -> Optional[NotificationResult]:
        """Most recent message sent to a recipient."""
        for msg in reversed(self.sent_messages):
            if msg.recipient == recipient:
                return msg
        return None


class EmailChannel(MockChannel):
    channel_type = ChannelType.EMAIL


class SMSChannel(MockChannel):
    channel_type = ChannelType.SMS
    max_body_length = 160


class PushChannel(MockChannel):
    """Push notifications are addressed to the customer id (device tokens live in the backend)."""
    channel_type = ChannelType.PUSH
    max_body_length = 240


class NotificationChannels:
    """Facade over every channel, used by the notification service."""

    def __init__(
        self,
        email_fail_rate: float = 0.0,
        sms_fail_rate: float = 0.0,
        push_fail_rate: float = 0.0,
    ):
        self.email = EmailChannel(fail_rate=email_fail_rate)
        self.sms = SMSChannel(fail_rate=sms_fail_rate)
        self.push = PushChannel(fail_rate=push_fail_rate)

    def send(
        self,
        channel: str,
        recipient: str,
        subject: Optional[str],
        body: str,
    ) -> NotificationResult:
        """
        Send via a named channel.

        Raises:
            ValueError: If channel is not recognized
        """
        if channel == ChannelType.EMAIL:
            return self.email.send(recipient, body, subject=subject or "(no subject)")
        elif channel == ChannelType.SMS:
            return self.sms.send(recipient, body)
        elif channel == ChannelType.PUSH:
            return self.push.send(recipient, body, subject=subject)
        else:
            raise ValueError(f"Unknown channel: {channel}")

    def get_all_sent_messages(self) -> list[NotificationResult]:
        return self.email.sent_messages + self.sms.sent_messages + self.push.sent_messages

    def get_total_sent_count(self) -> int:
        return self.email.get_sent_count() + self.sms.get_sent_count() + self.push.get_sent_count()

    def clear_all_history(self):
        self.email.clear_history()
        self.sms.clear_history()
        self.push.clear_history()
