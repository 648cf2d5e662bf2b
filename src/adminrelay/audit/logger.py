"""
Audit logging for the admin live chat.

This module provides a JSON Lines audit trail of session lifecycle and
relayed messages, so server staff can review who talked to whom and when.
"""

import gzip
import hashlib
import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


class AuditEventType(str, Enum):
    """Types of audit events."""

    # Relay lifecycle
    RELAY_STARTED = "relay_started"
    RELAY_STOPPED = "relay_stopped"
    STARTUP_FAILED = "startup_failed"

    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_CLOSING = "session_closing"
    SESSION_CLOSED = "session_closed"
    CHANNEL_ADOPTED = "channel_adopted"
    CHANNEL_DELETED_EXTERNALLY = "channel_deleted_externally"

    # Messages
    MESSAGE_RELAYED = "message_relayed"
    REPLY_SENT = "reply_sent"


class AuditLogger:
    """
    JSON Lines based audit logger.

    Events are buffered and written when the buffer fills or the flush
    interval elapses. The file is rotated (and gzip-compressed) once it
    grows past max_size_mb.
    """

    def __init__(
        self,
        log_path: str | Path,
        enable: bool = True,
        max_size_mb: int = 50,
        include_messages: bool = True,
        hash_messages: bool = False,
        buffer_size: int = 20,
        flush_interval_seconds: int = 5,
    ) -> None:
        """
        Initialize audit logger.

        Args:
            log_path: Path to audit log file
            enable: Whether logging is enabled
            max_size_mb: Maximum log file size in MB before rotation
            include_messages: Whether to record message text at all
            hash_messages: Record a SHA256 of message text instead of the text
            buffer_size: Number of events to buffer before flush
            flush_interval_seconds: Seconds between forced flushes
        """
        self.log_path = Path(log_path).expanduser()
        self.enable = enable
        self.max_size_mb = max_size_mb
        self.include_messages = include_messages
        self.hash_messages = hash_messages
        self.buffer_size = buffer_size
        self.flush_interval_seconds = flush_interval_seconds

        self._buffer: list[dict[str, Any]] = []
        self._last_flush = datetime.now()

        if self.enable:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, config: Any) -> "AuditLogger":
        """
        Create audit logger from configuration.

        Args:
            config: AuditLogConfig instance

        Returns:
            Configured AuditLogger
        """
        return cls(
            log_path=config.path,
            enable=config.enable,
            max_size_mb=config.max_size_mb,
            include_messages=config.include_messages,
            hash_messages=config.hash_messages,
            buffer_size=config.buffer_size,
            flush_interval_seconds=config.flush_interval_seconds,
        )

    def _hash_text(self, text: str) -> str:
        return hashlib.sha256(text.encode()).hexdigest()

    def _message_fields(self, text: str) -> dict[str, Any]:
        if not self.include_messages:
            return {}
        if self.hash_messages:
            return {"text_hash": self._hash_text(text)}
        return {"text": text}

    def _create_event(self, event_type: AuditEventType, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "timestamp": datetime.now().isoformat(),
            "event_type": event_type.value,
            **data,
        }

    def _write_event(self, event: dict[str, Any]) -> None:
        if not self.enable:
            return

        self._buffer.append(event)

        now = datetime.now()
        should_flush = (
            len(self._buffer) >= self.buffer_size
            or (now - self._last_flush).total_seconds() >= self.flush_interval_seconds
        )

        if should_flush:
            self.flush()

    def flush(self) -> None:
        """Flush buffered events to disk."""
        if not self.enable or not self._buffer:
            return

        self._rotate_if_needed()

        with self.log_path.open("a", encoding="utf-8") as f:
            for event in self._buffer:
                f.write(json.dumps(event, ensure_ascii=False) + "\n")

        self._buffer.clear()
        self._last_flush = datetime.now()

    def _rotate_if_needed(self) -> None:
        if not self.log_path.exists():
            return

        size_mb = self.log_path.stat().st_size / (1024 * 1024)
        if size_mb < self.max_size_mb:
            return

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        rotated_path = self.log_path.with_name(
            f"{self.log_path.stem}_{timestamp}{self.log_path.suffix}.gz"
        )
        with self.log_path.open("rb") as f_in, gzip.open(rotated_path, "wb") as f_out:
            f_out.write(f_in.read())
        self.log_path.unlink()

    # Convenience methods for logging specific events

    def log_relay_started(self, guild_id: str, category_id: str, adopted: int) -> None:
        """Log a successful startup sequence."""
        self._write_event(
            self._create_event(
                AuditEventType.RELAY_STARTED,
                {"guild_id": guild_id, "category_id": category_id, "adopted_sessions": adopted},
            )
        )

    def log_relay_stopped(self, open_sessions: int) -> None:
        """Log a relay shutdown."""
        self._write_event(
            self._create_event(AuditEventType.RELAY_STOPPED, {"open_sessions": open_sessions})
        )

    def log_startup_failed(self, error: str) -> None:
        """Log a fatal configuration problem found at startup."""
        self._write_event(self._create_event(AuditEventType.STARTUP_FAILED, {"error": error}))

    def log_session_started(self, player_id: str, channel_id: str) -> None:
        """Log a new live chat."""
        self._write_event(
            self._create_event(
                AuditEventType.SESSION_STARTED,
                {"player_id": player_id, "channel_id": channel_id},
            )
        )

    def log_session_closing(self, player_id: str, channel_id: str, reason: str | None) -> None:
        """Log a close request."""
        self._write_event(
            self._create_event(
                AuditEventType.SESSION_CLOSING,
                {"player_id": player_id, "channel_id": channel_id, "reason": reason},
            )
        )

    def log_session_closed(self, player_id: str, channel_id: str) -> None:
        """Log a session removed after its channel was deleted."""
        self._write_event(
            self._create_event(
                AuditEventType.SESSION_CLOSED,
                {"player_id": player_id, "channel_id": channel_id},
            )
        )

    def log_channel_adopted(self, player_id: str, channel_id: str) -> None:
        """Log a session recovered from an existing channel."""
        self._write_event(
            self._create_event(
                AuditEventType.CHANNEL_ADOPTED,
                {"player_id": player_id, "channel_id": channel_id},
            )
        )

    def log_channel_deleted_externally(self, player_id: str, channel_id: str) -> None:
        """Log a session channel deleted by someone else."""
        self._write_event(
            self._create_event(
                AuditEventType.CHANNEL_DELETED_EXTERNALLY,
                {"player_id": player_id, "channel_id": channel_id},
            )
        )

    def log_message_relayed(self, player_id: str, sender: str, text: str) -> None:
        """Log an operator message delivered to a player."""
        data: dict[str, Any] = {"player_id": player_id, "sender": sender}
        data.update(self._message_fields(text))
        self._write_event(self._create_event(AuditEventType.MESSAGE_RELAYED, data))

    def log_reply_sent(self, player_id: str, text: str) -> None:
        """Log a player reply posted into the session channel."""
        data: dict[str, Any] = {"player_id": player_id}
        data.update(self._message_fields(text))
        self._write_event(self._create_event(AuditEventType.REPLY_SENT, data))

    def close(self) -> None:
        """Close the audit logger and flush remaining events."""
        self.flush()
