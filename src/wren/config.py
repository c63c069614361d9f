"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(prefix="/api", debug=True)
    """

    # Path prefix prepended to every route registered on this app
    prefix: str = ""

    # Name used in logs and to identify mounted apps
    name: str = ""

    # Include exception text in 500 responses
    debug: bool = False

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB
