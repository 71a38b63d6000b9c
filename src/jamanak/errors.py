"""Errors raised when the start/end pairing of a session is misused."""


class JamanakError(RuntimeError):
    """Base class for timing session misuse."""


class AlreadyRunning(JamanakError):
    def __init__(self, running: str, requested: str) -> None:
        super().__init__(
            f"already jamming: '{running}' is still running, cannot start '{requested}'"
        )
        self.running = running
        self.requested = requested


class NotRunning(JamanakError):
    def __init__(self) -> None:
        super().__init__("jamming not started: end() called without a running section")
