"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups. Runtime feature switches (``"perch rest"``) live
in the app's mutable settings instead, see ``App.enable()``.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, port=3030)
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 3030
    debug: bool = False
    log_level: str = "info"

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB

    # JSON serialization
    json_indent: int | None = None
