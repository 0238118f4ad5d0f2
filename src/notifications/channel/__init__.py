"""Channel adapter registry — pluggable notification dispatch channels.

Provides singleton access to channel adapters. Uses the fake email adapter
by default; SMTP delivery is selected with ``EMAIL_ADAPTER=smtp``.
"""

import os

from notifications.types import NotificationChannel

_channel_instances: dict[str, object] = {}


def get_channel(channel_type: str):
    """Return the configured channel adapter (singleton per channel type).

    Args:
        channel_type: One of NotificationChannel enum values ("Email")
    """
    if channel_type not in _channel_instances:
        if channel_type == NotificationChannel.EMAIL.value:
            adapter = os.environ.get("EMAIL_ADAPTER", "fake")
            if adapter == "fake":
                from notifications.channel.fake_email import FakeEmailAdapter

                _channel_instances[channel_type] = FakeEmailAdapter()
            elif adapter == "smtp":
                from notifications.channel.smtp_email import SMTPEmailAdapter

                _channel_instances[channel_type] = SMTPEmailAdapter()
            else:
                raise ValueError(f"Unknown email adapter: {adapter}")
        else:
            raise ValueError(f"Unknown channel type: {channel_type}")

    return _channel_instances[channel_type]


def get_email_channel():
    return get_channel(NotificationChannel.EMAIL.value)


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()
