"""Raw byte logger for simulator traffic inspection

Captures ALL traffic passing through a transport without filtering.
Like `tee` in Unix - logs everything passing through.

Used for:
- Checking what a client actually sent to the simulator
- Comparing simulated responses with captures from real controllers
- Troubleshooting client-side line framing
"""

import threading
from datetime import datetime, timezone
from pathlib import Path


def interpret(data: bytes) -> str:
    """Tag a received line with the kind of controller message it looks like."""
    text = data.strip()
    if not text:
        return "BLANK"
    if text == b"ok":
        return "OK"
    if text.startswith(b"error"):
        return "ERROR"
    if text.startswith(b"<") and text.endswith(b">"):
        return "STATUS"
    if text.startswith(b"Grbl"):
        return "BANNER"
    if text.startswith(b"{") and b'"sr"' in text:
        return "JSON STATUS"
    if text.startswith(b"{"):
        return "JSON"
    if text.startswith(b"["):
        return "FEEDBACK"
    if text.startswith(b"$"):
        return "SETTING"
    return ""


class ByteDumpLogger:
    """Log raw transport I/O for protocol analysis.

    Creates two files:
    - .dump: Binary dump of all I/O
    - .dump.txt: Human-readable hex/text format

    Safe to call from the caller thread (sends) and the simulator worker
    (receives) at the same time.
    """

    @staticmethod
    def _iso_timestamp() -> str:
        """UTC ISO-8601 timestamp with millisecond precision."""
        return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def __init__(self, base_path: str):
        """Initialize byte logger.

        Args:
            base_path: Base path for log files (without extension)
                      Creates: {base_path}.dump and {base_path}.dump.txt
        """
        self.base_path = Path(base_path)
        self._lock = threading.Lock()
        self.binary_file = open(f"{base_path}.dump", "wb")
        self.text_file = open(f"{base_path}.dump.txt", "w")

        self.text_file.write(f"Loopback I/O Dump - {self._iso_timestamp()}\n")
        self.text_file.write("=" * 70 + "\n\n")
        self.text_file.flush()

    def _write_hex(self, data: bytes):
        self.text_file.write("  HEX: ")
        for i, byte in enumerate(data):
            self.text_file.write(f"{byte:02x} ")
            if (i + 1) % 16 == 0 and i < len(data) - 1:
                self.text_file.write("\n       ")
        self.text_file.write("\n")
        printable = data.decode("utf-8", errors="replace")
        self.text_file.write(f"  TXT: {printable!r}\n")

    def log_send(self, data: bytes, description: str = ""):
        """Log bytes written to the simulator.

        Args:
            data: Bytes sent
            description: Optional description (e.g. "BRIDGE")
        """
        with self._lock:
            if self.binary_file.closed:
                return
            timestamp = self._iso_timestamp()
            self.binary_file.write(b">>> SEND " + data + b"\n")
            self.binary_file.flush()

            self.text_file.write(f"[{timestamp}] SEND ({len(data)} bytes)")
            if description:
                self.text_file.write(f": {description}")
            self.text_file.write("\n")
            self._write_hex(data)
            self.text_file.write("\n")
            self.text_file.flush()

    def log_recv(self, data: bytes):
        """Log bytes received from the simulator.

        Args:
            data: Bytes received
        """
        if not data:
            return

        with self._lock:
            if self.binary_file.closed:
                return
            timestamp = self._iso_timestamp()
            self.binary_file.write(b"<<< RECV " + data + b"\n")
            self.binary_file.flush()

            self.text_file.write(f"[{timestamp}] RECV ({len(data)} bytes)\n")
            self._write_hex(data)
            kind = interpret(data)
            if kind:
                self.text_file.write(f"  → {kind}\n")
            self.text_file.write("\n")
            self.text_file.flush()

    def log_error(self, message: str):
        """Log error message.

        Args:
            message: Error description
        """
        with self._lock:
            if self.text_file.closed:
                return
            self.text_file.write(f"[{self._iso_timestamp()}] ERROR: {message}\n\n")
            self.text_file.flush()

    def close(self):
        """Close log files."""
        with self._lock:
            if self.binary_file and not self.binary_file.closed:
                self.binary_file.close()
            if self.text_file and not self.text_file.closed:
                self.text_file.write(f"\nLog closed: {self._iso_timestamp()}\n")
                self.text_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
