"""Guard engine configuration.

GuardConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass

from metaguards.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class GuardConfig:
    """Guard engine configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = GuardConfig(repeat_delay=1.0, dedupe_repeat=True)
    """

    # Repeat scheduler
    repeat_delay: float = 5.0  # Seconds between runs when a repeat_in declares no delay
    dedupe_repeat: bool = False  # Starting an already-repeating handler is a no-op when True

    # Logging
    log_repeat_errors: bool = True

    def __post_init__(self) -> None:
        if self.repeat_delay < 0:
            msg = f"repeat_delay must be >= 0, got {self.repeat_delay!r}"
            raise ConfigurationError(msg)
