"""Tests for audit logger."""

import gzip
import hashlib
import json
from pathlib import Path

import pytest

from adminrelay.audit.logger import AuditEventType, AuditLogger
from adminrelay.config import AuditLogConfig
from adminrelay.relay.context import RelayContext
from adminrelay.relay.session import SessionRelay

ALICE = "76561198000000001"


def read_events(path: Path) -> list[dict]:
    with path.open(encoding="utf-8") as f:
        return [json.loads(line) for line in f]


class TestAuditLogger:
    """Test AuditLogger functionality."""

    def test_create_audit_logger(self, temp_dir: Path) -> None:
        """Test creating an audit logger."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path)

        assert logger.log_path == log_path
        assert logger.enable is True

    def test_from_config(self, temp_dir: Path) -> None:
        """Test creating an audit logger from configuration."""
        config = AuditLogConfig(path=str(temp_dir / "trail.jsonl"), buffer_size=3, hash_messages=True)

        logger = AuditLogger.from_config(config)

        assert logger.log_path == temp_dir / "trail.jsonl"
        assert logger.buffer_size == 3
        assert logger.hash_messages is True

    def test_log_session_events(self, temp_dir: Path) -> None:
        """Test logging session lifecycle events."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, buffer_size=1)  # Flush immediately

        logger.log_session_started(ALICE, "1000")
        logger.log_session_closing(ALICE, "1000", "Disconnected")
        logger.log_session_closed(ALICE, "1000")

        events = read_events(log_path)
        assert [e["event_type"] for e in events] == [
            AuditEventType.SESSION_STARTED.value,
            AuditEventType.SESSION_CLOSING.value,
            AuditEventType.SESSION_CLOSED.value,
        ]
        assert events[1]["reason"] == "Disconnected"
        assert all(e["player_id"] == ALICE for e in events)
        assert "timestamp" in events[0]

    def test_message_text_modes(self, temp_dir: Path) -> None:
        """Test message text is recorded, hashed or omitted."""
        plain = AuditLogger(log_path=temp_dir / "plain.jsonl", buffer_size=1)
        hashed = AuditLogger(log_path=temp_dir / "hashed.jsonl", buffer_size=1, hash_messages=True)
        omitted = AuditLogger(log_path=temp_dir / "none.jsonl", buffer_size=1, include_messages=False)

        for logger in (plain, hashed, omitted):
            logger.log_message_relayed(ALICE, "Admin", "hello")

        assert read_events(temp_dir / "plain.jsonl")[0]["text"] == "hello"
        hashed_event = read_events(temp_dir / "hashed.jsonl")[0]
        assert hashed_event["text_hash"] == hashlib.sha256(b"hello").hexdigest()
        assert "text" not in hashed_event
        omitted_event = read_events(temp_dir / "none.jsonl")[0]
        assert "text" not in omitted_event
        assert omitted_event["sender"] == "Admin"

    def test_buffering(self, temp_dir: Path) -> None:
        """Test events are held until the buffer fills or close() is called."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, buffer_size=10, flush_interval_seconds=3600)

        logger.log_relay_started("1", "100", 2)
        assert not log_path.exists()

        logger.close()
        event = read_events(log_path)[0]
        assert event["event_type"] == "relay_started"
        assert event["adopted_sessions"] == 2

    def test_disabled(self, temp_dir: Path) -> None:
        """Test a disabled logger writes nothing."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, enable=False, buffer_size=1)

        logger.log_startup_failed("bad category")
        logger.close()

        assert not log_path.exists()

    def test_rotation(self, temp_dir: Path) -> None:
        """Test a full log file is compressed away before writing."""
        log_path = temp_dir / "audit.jsonl"
        log_path.write_text("x" * (1024 * 1024 + 1))
        logger = AuditLogger(log_path=log_path, max_size_mb=1, buffer_size=1)

        logger.log_relay_stopped(0)

        rotated = list(temp_dir.glob("audit_*.jsonl.gz"))
        assert len(rotated) == 1
        with gzip.open(rotated[0], "rb") as f:
            assert f.read().startswith(b"xxx")
        assert len(read_events(log_path)) == 1

    @pytest.mark.asyncio
    async def test_relay_writes_audit_trail(self, context: RelayContext, temp_dir: Path) -> None:
        """Test the relay records session lifecycle in the audit trail."""
        log_path = temp_dir / "audit.jsonl"
        context.audit = AuditLogger(log_path=log_path, buffer_size=1)
        relay = SessionRelay(context)

        await relay.start_session(ALICE)
        await relay.stop_session(ALICE, "bye")
        await relay.scheduler.wait_idle()

        assert [e["event_type"] for e in read_events(log_path)] == [
            "session_started",
            "session_closing",
            "session_closed",
        ]
