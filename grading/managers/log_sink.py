import threading
from collections import deque
from typing import IO, List, Optional


class LogSink:
    """
    Bounded buffer for a child process's output.

    A daemon thread copies lines from the pipe into a ring buffer holding the
    last ``max_lines`` lines. Reading stops when the pipe closes or when
    ``close()`` is called, so a chatty or hung submission never blocks the
    supervisor.
    """

    def __init__(self, stream: Optional[IO[bytes]], max_lines: int = 500, name: str = "submission"):
        self._stream = stream
        self._lines: deque = deque(maxlen=max_lines)
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._name = name

    def start(self) -> None:
        if self._stream is None or self._thread is not None:
            return
        self._thread = threading.Thread(target=self._pump, name=f"log-sink-{self._name}", daemon=True)
        self._thread.start()

    def _pump(self) -> None:
        try:
            for raw in iter(self._stream.readline, b""):
                if self._cancelled.is_set():
                    break
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                with self._lock:
                    self._lines.append(line)
        except (OSError, ValueError):
            # Pipe closed underneath us during teardown
            pass
        finally:
            self._close_stream()

    def _close_stream(self) -> None:
        try:
            self._stream.close()
        except OSError:
            pass

    def lines(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    def close(self, timeout: float = 1.0) -> List[str]:
        """
        Stop reading and return the buffered lines.

        While an escaped child still holds the write end the reader keeps
        running and closes the pipe itself once that child is gone.
        """
        self._cancelled.set()
        if self._thread is not None:
            self._thread.join(timeout)
        elif self._stream is not None:
            self._close_stream()
        return self.lines()
