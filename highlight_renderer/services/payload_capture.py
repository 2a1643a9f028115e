"""
Payload Capture - stores incoming task payloads on disk during development so
they can be replayed later.

Disabled unless CAPTURE_PAYLOADS is set. Capture failures are logged and never
affect the request being processed.
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, Optional, Union

from highlight_renderer.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Replaces callback URLs so replays never call back into a real system
SANITIZED_CALLBACK_URL = "dev-test"


@dataclass
class CaptureConfig:
    """Explicit capture configuration, built once from settings."""

    enabled: bool = False
    task_types: Union[list[str], Literal["all"]] = "all"
    base_directory: str = "./data/dev-payloads"
    keep_latest: bool = True
    max_files_per_task: int = 10
    remove_callback_urls: bool = True

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        valid_task_types: Optional[list[str]] = None,
    ) -> "CaptureConfig":
        task_types = settings.get_capture_task_types()

        if valid_task_types and task_types != "all":
            invalid = [t for t in task_types if t not in valid_task_types]
            if invalid:
                logger.warning(
                    f"Invalid task types in CAPTURE_TASK_TYPES: {', '.join(invalid)}. "
                    f"Valid task types: {', '.join(valid_task_types)}. "
                    f"Falling back to capturing all task types"
                )
                task_types = "all"

        return cls(
            enabled=settings.capture_payloads,
            task_types=task_types,
            base_directory=settings.payload_capture_directory,
            max_files_per_task=settings.payload_max_files_per_task,
        )


@dataclass
class CapturedPayload:
    """A payload as written to disk."""

    task_type: str
    timestamp: str
    payload: dict[str, Any]
    note: str = "Captured from task request"

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskType": self.task_type,
            "timestamp": self.timestamp,
            "note": self.note,
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CapturedPayload":
        return cls(
            task_type=data["taskType"],
            timestamp=data["timestamp"],
            payload=data["payload"],
            note=data.get("note", ""),
        )


class PayloadCapture:
    """Writes, lists and prunes captured payloads."""

    def __init__(self, config: Optional[CaptureConfig] = None, settings: Optional[Settings] = None):
        self.config = config or CaptureConfig.from_settings(settings or get_settings())

    @property
    def directory(self) -> Path:
        return Path(self.config.base_directory)

    def should_capture(self, task_type: str, payload: dict[str, Any]) -> bool:
        if not self.config.enabled:
            return False

        if payload.get("skipCapture") is True or payload.get("skip_capture") is True:
            return False

        if self.config.task_types == "all":
            return True
        return task_type in self.config.task_types

    def capture(self, task_type: str, payload: dict[str, Any]) -> Optional[Path]:
        """
        Store ``payload`` if capture is enabled for ``task_type``.

        Returns:
            Path of the timestamped file, or None when nothing was written
        """
        if not self.should_capture(task_type, payload):
            return None

        captured = CapturedPayload(
            task_type=task_type,
            timestamp=datetime.now(timezone.utc).isoformat(),
            payload=self._sanitize(payload),
        )

        try:
            path = self._store(captured)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to capture payload for {task_type}: {e}")
            return None

        logger.info(f"Payload captured for task: {task_type} ({path.name})")
        return path

    def _sanitize(self, payload: dict[str, Any]) -> dict[str, Any]:
        sanitized = dict(payload)
        if self.config.remove_callback_urls:
            for key in ("callbackUrl", "callback_url"):
                if key in sanitized:
                    sanitized[key] = SANITIZED_CALLBACK_URL
        return sanitized

    def _store(self, captured: CapturedPayload) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)

        content = json.dumps(captured.to_dict(), indent=2)
        stamp = captured.timestamp.replace(":", "-").replace(".", "-").replace("+", "-")
        path = self.directory / f"{captured.task_type}-payload-{stamp}.json"
        path.write_text(content, encoding="utf-8")

        if self.config.keep_latest:
            (self.directory / f"{captured.task_type}-latest.json").write_text(content, encoding="utf-8")

        self._cleanup_old_files(captured.task_type)
        return path

    def _payload_files(self, task_type: Optional[str] = None) -> list[Path]:
        if not self.directory.is_dir():
            return []
        prefix = f"{task_type}-payload-" if task_type else ""
        return [
            p for p in self.directory.iterdir()
            if p.suffix == ".json" and "-payload-" in p.name and p.name.startswith(prefix)
        ]

    def _cleanup_old_files(self, task_type: str) -> None:
        files = sorted(
            self._payload_files(task_type),
            key=lambda p: (p.stat().st_mtime, p.name),
            reverse=True,
        )
        excess = files[self.config.max_files_per_task:]
        for path in excess:
            path.unlink()
        if excess:
            logger.info(f"Cleaned up {len(excess)} old payload files for {task_type}")

    def get_captured_payloads(self, task_type: Optional[str] = None) -> list[CapturedPayload]:
        """Captured payloads, newest first."""
        payloads: list[CapturedPayload] = []
        for path in self._payload_files(task_type):
            try:
                captured = CapturedPayload.from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, ValueError, KeyError) as e:
                logger.warning(f"Failed to read payload file {path.name}: {e}")
                continue
            if task_type and captured.task_type != task_type:
                continue
            payloads.append(captured)

        return sorted(payloads, key=lambda p: p.timestamp, reverse=True)

    def get_latest_payload(self, task_type: str) -> Optional[CapturedPayload]:
        path = self.directory / f"{task_type}-latest.json"
        if not path.is_file():
            return None
        return CapturedPayload.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def clear_payloads(self, task_type: Optional[str] = None) -> int:
        """Delete captured payloads (and latest files); returns the count removed."""
        if not self.directory.is_dir():
            return 0

        removed = 0
        for path in self.directory.iterdir():
            if path.suffix != ".json":
                continue
            if task_type and not path.name.startswith(f"{task_type}-"):
                continue
            os.remove(path)
            removed += 1

        logger.info(f"Cleared {removed} captured payload file(s)")
        return removed
