"""Session logging for debugging and analysis."""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

# Log directory
LOG_DIR = Path.home() / ".perp" / "logs"


def ensure_log_dir() -> Path:
    """Create logs directory if it doesn't exist."""
    if not LOG_DIR.exists():
        LOG_DIR.mkdir(parents=True, exist_ok=True)
    return LOG_DIR


class SessionLogger:
    """Logs one query, its request and the streamed answer as JSON lines."""

    def __init__(self, model_name: str = "unknown", debug: bool = False):
        self.model_name = model_name
        self.debug = debug
        self.session_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        self.log_file = ensure_log_dir() / f"session_{self.session_id}.jsonl"
        self.enabled = True

        self._write_entry({
            "type": "session_start",
            "model": self.model_name,
            "timestamp": datetime.now().isoformat(),
        })

    def log_request(self, payload: dict) -> None:
        """Log the request body sent to the API."""
        if not self.enabled:
            return
        self._write_entry({
            "type": "api_request",
            "payload": payload,
            "timestamp": datetime.now().isoformat(),
        })

    def log_stream_event(self, line: str) -> None:
        """Log a raw stream line; only recorded in debug mode."""
        if not self.enabled or not self.debug:
            return
        self._write_entry({
            "type": "stream_event",
            "content": line[:500],
            "timestamp": datetime.now().isoformat(),
        })

    def log_diagnostic(self, message: str) -> None:
        """Log a recoverable problem reported while decoding the stream."""
        if not self.enabled:
            return
        self._write_entry({
            "type": "diagnostic",
            "message": message,
            "timestamp": datetime.now().isoformat(),
        })

    def log_citations(self, citations: list[str]) -> None:
        if not self.enabled:
            return
        self._write_entry({
            "type": "citations",
            "citations": citations,
            "timestamp": datetime.now().isoformat(),
        })

    def log_model_response(self, response: str) -> None:
        """Log the full text emitted for this session."""
        if not self.enabled:
            return
        self._write_entry({
            "type": "assistant",
            "model": self.model_name,
            "content": response,
            "timestamp": datetime.now().isoformat(),
        })

    def log_error(self, error: str) -> None:
        """Log error."""
        if not self.enabled:
            return
        self._write_entry({
            "type": "error",
            "error": error,
            "timestamp": datetime.now().isoformat(),
        })

    def _write_entry(self, entry: dict) -> None:
        """Write a log entry to file."""
        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError:
            # Stop logging after the first failed write
            self.enabled = False

    @property
    def log_path(self) -> Path:
        """Return path to current log file."""
        return self.log_file


# Global logger instance
_logger: Optional[SessionLogger] = None


def get_logger() -> SessionLogger:
    """Get or create the global logger instance."""
    global _logger
    if _logger is None:
        _logger = SessionLogger()
    return _logger


def init_logger(model_name: str, debug: bool = False) -> SessionLogger:
    """Initialize logger with model name."""
    global _logger
    _logger = SessionLogger(model_name, debug=debug)
    return _logger
