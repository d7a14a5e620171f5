"""
Tests for the polling file tailer.
"""

import threading
import time
from pathlib import Path
from unittest.mock import MagicMock, patch

from conftest import (
    INVITE_LINE,
    INVITE_LINE_NO_NAME,
    NOISE_LINE,
    REQUEST_INVITE_LINE,
    append,
    wait_for,
)

from invitewatch.cache import MetadataCache
from invitewatch.core import NotificationEvent, WorldInfo
from invitewatch.errors import InviteWatchError, ParseMismatch, ReadFailure
from invitewatch.resolver import MetadataResolver
from invitewatch.tailer import FileTailer, TailerState


def _tailer(events: list[NotificationEvent], **kwargs: object) -> FileTailer:
    return FileTailer(on_event=events.append, **kwargs)  # type: ignore[arg-type]


class TestStart:
    """Tests for starting a tailer."""

    def test_start_at_end_of_file(self, tmp_path: Path) -> None:
        """Test that pre-existing content is never processed."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text(f"{INVITE_LINE}\n{REQUEST_INVITE_LINE}\n", encoding="utf-8")
        events: list[NotificationEvent] = []
        tailer = _tailer(events)

        tailer.start(str(log_file), background=False)

        assert tailer.state is TailerState.WATCHING
        assert tailer.tail_state is not None
        assert tailer.tail_state.byte_offset == log_file.stat().st_size
        assert tailer.poll() == []
        assert events == []

    def test_start_on_missing_file(self, tmp_path: Path) -> None:
        """Test that a file that does not exist yet starts at offset 0."""
        log_file = tmp_path / "output_log_1.txt"
        events: list[NotificationEvent] = []
        tailer = _tailer(events)

        tailer.start(str(log_file), background=False)
        log_file.write_text(f"{REQUEST_INVITE_LINE}\n", encoding="utf-8")
        tailer.poll()

        assert [e.id for e in events] == ["ntf_3"]


class TestPoll:
    """Tests for growth detection and line splitting."""

    def test_reads_exactly_new_bytes(self, tmp_path: Path) -> None:
        """Test that only appended bytes are read and the offset is committed."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text(f"{NOISE_LINE}\n", encoding="utf-8")
        events: list[NotificationEvent] = []
        tailer = _tailer(events)
        tailer.start(str(log_file), background=False)
        initial = log_file.stat().st_size

        appended = f"{INVITE_LINE}\n{NOISE_LINE}\n{REQUEST_INVITE_LINE}\n"
        append(log_file, appended)
        emitted = tailer.poll()

        assert [e.id for e in emitted] == ["ntf_1", "ntf_3"]
        assert [e.id for e in events] == ["ntf_1", "ntf_3"]
        assert tailer.tail_state is not None
        assert tailer.tail_state.byte_offset == initial + len(appended.encode("utf-8"))
        assert tailer.tail_state.pending_fragment == b""

    def test_no_growth_no_events(self, tmp_path: Path) -> None:
        """Test that polling an unchanged file does nothing."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text("", encoding="utf-8")
        events: list[NotificationEvent] = []
        tailer = _tailer(events)
        tailer.start(str(log_file), background=False)

        assert tailer.poll() == []
        assert tailer.poll() == []

    def test_incomplete_line_held_back(self, tmp_path: Path) -> None:
        """Test that a trailing partial line waits for its newline."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text("", encoding="utf-8")
        events: list[NotificationEvent] = []
        tailer = _tailer(events)
        tailer.start(str(log_file), background=False)

        half = len(INVITE_LINE) // 2
        append(log_file, INVITE_LINE[:half])
        assert tailer.poll() == []
        assert tailer.tail_state is not None
        assert tailer.tail_state.byte_offset == half
        assert tailer.tail_state.pending_fragment == INVITE_LINE[:half].encode("utf-8")

        append(log_file, INVITE_LINE[half:] + "\n")
        emitted = tailer.poll()

        assert [e.id for e in emitted] == ["ntf_1"]
        assert emitted[0].world_name == "Cool World"

    def test_crlf_line_endings(self, tmp_path: Path) -> None:
        """Test that Windows line endings are handled."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_bytes(b"")
        events: list[NotificationEvent] = []
        tailer = _tailer(events)
        tailer.start(str(log_file), background=False)

        append(log_file, f"{INVITE_LINE}\r\n")
        tailer.poll()

        assert events[0].id == "ntf_1"

    def test_multibyte_character_split_across_polls(self, tmp_path: Path) -> None:
        """Test that UTF-8 sequences split between reads decode correctly."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_bytes(b"")
        events: list[NotificationEvent] = []
        tailer = _tailer(events)
        tailer.start(str(log_file), background=False)

        line = INVITE_LINE.replace("Cool World", "すごいワールド").encode("utf-8") + b"\n"
        cut = line.index("ワ".encode("utf-8")) + 1
        with log_file.open("ab") as f:
            f.write(line[:cut])
        tailer.poll()
        with log_file.open("ab") as f:
            f.write(line[cut:])
        tailer.poll()

        assert events[0].world_name == "すごいワールド"

    def test_truncation_resets_offset(self, tmp_path: Path) -> None:
        """Test that a file that shrinks is read again from the start."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text(f"{NOISE_LINE}\n{NOISE_LINE}\n", encoding="utf-8")
        events: list[NotificationEvent] = []
        tailer = _tailer(events)
        tailer.start(str(log_file), background=False)

        log_file.write_text(f"{REQUEST_INVITE_LINE}\n", encoding="utf-8")
        tailer.poll()

        assert [e.id for e in events] == ["ntf_3"]

    def test_resolver_applied_before_emit(self, tmp_path: Path) -> None:
        """Test that events are resolved before reaching the callback."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text("", encoding="utf-8")
        fetch = MagicMock(return_value=WorldInfo(id="wrld_9", name="Fetched World"))
        resolver = MetadataResolver(MetadataCache(), fetch)
        events: list[NotificationEvent] = []
        tailer = _tailer(events, resolver=resolver)
        tailer.start(str(log_file), background=False)

        append(log_file, f"{INVITE_LINE_NO_NAME}\n")
        tailer.poll()

        assert events[0].world_name == "Fetched World"

    def test_parse_mismatch_reported_and_skipped(self, tmp_path: Path) -> None:
        """Test that broken marker lines are reported and processing continues."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text("", encoding="utf-8")
        errors: list[InviteWatchError] = []
        events: list[NotificationEvent] = []
        tailer = _tailer(events, on_error=errors.append)
        tailer.start(str(log_file), background=False)

        broken = "2026.02.08 23:09:18 Received Notification: type: invite (truncated"
        append(log_file, f"{broken}\n{REQUEST_INVITE_LINE}\n")
        tailer.poll()

        assert [e.id for e in events] == ["ntf_3"]
        assert len(errors) == 1
        assert isinstance(errors[0], ParseMismatch)

    def test_consumer_error_does_not_stop_tailer(self, tmp_path: Path) -> None:
        """Test that a failing callback does not block later lines."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text("", encoding="utf-8")
        received: list[str] = []

        def on_event(event: NotificationEvent) -> None:
            received.append(event.id)
            if event.id == "ntf_1":
                raise RuntimeError("consumer failed")

        tailer = FileTailer(on_event=on_event)
        tailer.start(str(log_file), background=False)

        append(log_file, f"{INVITE_LINE}\n{REQUEST_INVITE_LINE}\n")
        tailer.poll()

        assert received == ["ntf_1", "ntf_3"]


class TestReadFailure:
    """Tests for I/O errors while reading."""

    def test_offset_unchanged_and_retried(self, tmp_path: Path) -> None:
        """Test that a failed read leaves the offset and retries next poll."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text("", encoding="utf-8")
        errors: list[InviteWatchError] = []
        events: list[NotificationEvent] = []
        tailer = _tailer(events, on_error=errors.append)
        tailer.start(str(log_file), background=False)

        append(log_file, f"{INVITE_LINE}\n")
        with patch("invitewatch.tailer.open", create=True, side_effect=OSError("disk gone")):
            assert tailer.poll() == []

        assert tailer.tail_state is not None
        assert tailer.tail_state.byte_offset == 0
        assert tailer.state is TailerState.WATCHING
        assert len(errors) == 1
        assert isinstance(errors[0], ReadFailure)
        assert errors[0].offset == 0

        tailer.poll()
        assert [e.id for e in events] == ["ntf_1"]

    def test_deleted_file_reported(self, tmp_path: Path) -> None:
        """Test that a vanished file is reported without raising."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text("", encoding="utf-8")
        errors: list[InviteWatchError] = []
        tailer = _tailer([], on_error=errors.append)
        tailer.start(str(log_file), background=False)

        log_file.unlink()

        assert tailer.poll() == []
        assert isinstance(errors[0], ReadFailure)


class TestStop:
    """Tests for stopping and the background thread."""

    def test_stop_returns_to_idle(self, tmp_path: Path) -> None:
        """Test that stop releases state and ignores later growth."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text("", encoding="utf-8")
        events: list[NotificationEvent] = []
        tailer = _tailer(events)
        tailer.start(str(log_file), background=False)

        tailer.stop()
        append(log_file, f"{INVITE_LINE}\n")

        assert tailer.state is TailerState.IDLE
        assert tailer.tail_state is None
        assert tailer.poll() == []
        assert events == []

    def test_stop_during_chunk_drops_remaining_lines(self, tmp_path: Path) -> None:
        """Test that lines after a stop within one chunk are discarded."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text("", encoding="utf-8")
        received: list[str] = []
        tailer: FileTailer

        def on_event(event: NotificationEvent) -> None:
            received.append(event.id)
            tailer.stop()

        tailer = FileTailer(on_event=on_event)
        tailer.start(str(log_file), background=False)
        append(log_file, f"{INVITE_LINE}\n{REQUEST_INVITE_LINE}\n")
        tailer.poll()

        assert received == ["ntf_1"]

    def test_background_polling(self, tmp_path: Path) -> None:
        """Test that the polling thread picks up appended lines."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text(f"{NOISE_LINE}\n", encoding="utf-8")
        events: list[NotificationEvent] = []
        tailer = _tailer(events, interval=0.05)
        tailer.start(str(log_file))
        try:
            append(log_file, f"{INVITE_LINE}\n")
            assert wait_for(lambda: len(events) == 1)
            assert events[0].id == "ntf_1"
        finally:
            tailer.stop()

    def test_restart_on_other_file(self, tmp_path: Path) -> None:
        """Test that starting again retargets with a fresh state."""
        first = tmp_path / "output_log_1.txt"
        second = tmp_path / "output_log_2.txt"
        first.write_text("", encoding="utf-8")
        second.write_text(f"{NOISE_LINE}\n", encoding="utf-8")
        events: list[NotificationEvent] = []
        tailer = _tailer(events)
        tailer.start(str(first), background=False)
        append(first, INVITE_LINE[:20])
        tailer.poll()

        tailer.start(str(second), background=False)

        assert tailer.tail_state is not None
        assert tailer.tail_state.file_path == str(second)
        assert tailer.tail_state.byte_offset == second.stat().st_size
        assert tailer.tail_state.pending_fragment == b""

    def test_stop_during_resolution_discards_event(self, tmp_path: Path) -> None:
        """Test that an event resolved after stop() is never emitted."""
        log_file = tmp_path / "output_log_1.txt"
        log_file.write_text("", encoding="utf-8")
        fetch_started = threading.Event()
        release_fetch = threading.Event()

        def slow_fetch(world_id: str) -> WorldInfo:
            fetch_started.set()
            release_fetch.wait(5)
            return WorldInfo(id=world_id, name="Slow World")

        events: list[NotificationEvent] = []
        tailer = _tailer(
            events, resolver=MetadataResolver(MetadataCache(), slow_fetch), interval=0.05
        )
        tailer.start(str(log_file))
        try:
            append(log_file, f"{INVITE_LINE_NO_NAME}\n")
            assert fetch_started.wait(3)

            tailer.stop(wait=False)
            release_fetch.set()
            time.sleep(0.3)

            assert events == []
            assert tailer.state is TailerState.IDLE
        finally:
            release_fetch.set()
            tailer.stop()
