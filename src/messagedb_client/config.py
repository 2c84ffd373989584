"""Configuration management for the Message DB client.

This module handles loading and validating configuration from environment
variables. It provides type-safe configuration for the Message DB connection,
read limits and logging.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_BATCH_SIZE = 1000
DEFAULT_MAX_BATCH_SIZE = 10000


@dataclass(frozen=True)
class MessageDBConfig:
    """Configuration for Message DB connection.

    Attributes:
        host: PostgreSQL host (default: localhost)
        port: PostgreSQL port (default: 5432)
        database: Database name (default: message_store)
        user: Database user (required)
        password: Database password (required)
        min_size: Minimum connection pool size (default: 2)
        max_size: Maximum connection pool size (default: 10)

    Example:
        >>> config = MessageDBConfig(
        ...     host="localhost",
        ...     port=5432,
        ...     database="message_store",
        ...     user="postgres",
        ...     password="secret"
        ... )
    """

    host: str
    port: int
    database: str
    user: str
    password: str
    min_size: int = 2
    max_size: int = 10

    def __post_init__(self) -> None:
        """Validate Message DB configuration after initialization.

        Raises:
            ValueError: If required fields are empty or invalid
        """
        if not self.host or not self.host.strip():
            raise ValueError("Message DB host cannot be empty")
        if self.port <= 0 or self.port > 65535:
            raise ValueError(f"Message DB port must be 1-65535, got {self.port}")
        if not self.database or not self.database.strip():
            raise ValueError("Message DB database cannot be empty")
        if not self.user or not self.user.strip():
            raise ValueError("Message DB user cannot be empty")
        if not self.password:
            raise ValueError("Message DB password cannot be empty")
        if self.min_size < 1:
            raise ValueError(f"Pool min_size must be >= 1, got {self.min_size}")
        if self.max_size < self.min_size:
            raise ValueError(
                f"Pool max_size must be >= min_size ({self.min_size}), got {self.max_size}"
            )

    def to_connection_string(self) -> str:
        """Generate PostgreSQL connection string.

        Returns:
            Connection string in DSN format
        """
        return (
            f"host={self.host} "
            f"port={self.port} "
            f"dbname={self.database} "
            f"user={self.user} "
            f"password={self.password}"
        )


@dataclass(frozen=True)
class StoreConfig:
    """Limits applied to reads before they reach the store.

    Attributes:
        default_batch_size: Batch size used when a caller does not give one
        max_batch_size: Largest batch size a read may request

    Example:
        >>> config = StoreConfig(default_batch_size=100, max_batch_size=1000)
    """

    default_batch_size: int = DEFAULT_BATCH_SIZE
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE

    def __post_init__(self) -> None:
        """Validate store configuration after initialization.

        Raises:
            ValueError: If batch sizes are invalid
        """
        if self.max_batch_size <= 0:
            raise ValueError(f"max_batch_size must be > 0, got {self.max_batch_size}")
        if self.default_batch_size <= 0 or self.default_batch_size > self.max_batch_size:
            raise ValueError(
                f"default_batch_size must be 1-{self.max_batch_size}, "
                f"got {self.default_batch_size}"
            )


@dataclass(frozen=True)
class LoggingConfig:
    """Configuration for logging.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format (json, text)

    Example:
        >>> config = LoggingConfig(log_level="INFO", log_format="json")
    """

    log_level: str
    log_format: str

    def __post_init__(self) -> None:
        """Validate logging configuration after initialization.

        Raises:
            ValueError: If log_level or log_format is invalid
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.log_level.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}, got {self.log_level}")

        valid_formats = {"json", "text"}
        if self.log_format.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of {valid_formats}, got {self.log_format}")


@dataclass(frozen=True)
class Config:
    """Complete configuration for the Message DB client.

    Attributes:
        message_db: Message DB connection configuration
        store: Read limits
        logging: Logging configuration

    Example:
        >>> config = load_config()
        >>> print(config.message_db.host)
        >>> print(config.store.max_batch_size)
    """

    message_db: MessageDBConfig
    store: StoreConfig
    logging: LoggingConfig


def load_config(env_file: str | None = None) -> Config:
    """Load configuration from environment variables.

    This function loads environment variables (optionally from a .env file)
    and constructs a complete Config object with all necessary settings.

    Args:
        env_file: Optional path to .env file to load (default: .env in current directory)

    Returns:
        Complete Config object with all sub-configurations

    Raises:
        ValueError: If required environment variables are missing or invalid

    Environment Variables:
        Message DB:
            - DB_HOST: PostgreSQL host (default: localhost)
            - DB_PORT: PostgreSQL port (default: 5432)
            - DB_NAME: Database name (default: message_store)
            - DB_USER: Database user (required)
            - DB_PASSWORD: Database password (required)
            - DB_POOL_MIN_SIZE: Minimum pool size (default: 2)
            - DB_POOL_MAX_SIZE: Maximum pool size (default: 10)

        Store:
            - DEFAULT_BATCH_SIZE: Batch size for reads (default: 1000)
            - MAX_BATCH_SIZE: Largest allowed batch size (default: 10000)

        Logging:
            - LOG_LEVEL: Logging level (default: INFO)
            - LOG_FORMAT: Log format (default: json)

    Example:
        >>> config = load_config()  # Loads from .env
        >>> config = load_config(".env.test")  # Loads from custom file
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    message_db = MessageDBConfig(
        host=os.getenv("DB_HOST", "localhost"),
        port=int(os.getenv("DB_PORT", "5432")),
        database=os.getenv("DB_NAME", "message_store"),
        user=_get_required_env("DB_USER"),
        password=_get_required_env("DB_PASSWORD"),
        min_size=int(os.getenv("DB_POOL_MIN_SIZE", "2")),
        max_size=int(os.getenv("DB_POOL_MAX_SIZE", "10")),
    )

    store = StoreConfig(
        default_batch_size=int(os.getenv("DEFAULT_BATCH_SIZE", str(DEFAULT_BATCH_SIZE))),
        max_batch_size=int(os.getenv("MAX_BATCH_SIZE", str(DEFAULT_MAX_BATCH_SIZE))),
    )

    logging = LoggingConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("LOG_FORMAT", "json").lower(),
    )

    return Config(message_db=message_db, store=store, logging=logging)


def _get_required_env(var_name: str) -> str:
    """Get a required environment variable or raise an error.

    Args:
        var_name: Name of the environment variable

    Returns:
        Value of the environment variable

    Raises:
        ValueError: If the environment variable is not set
    """
    value = os.getenv(var_name)
    if value is None:
        raise ValueError(
            f"Required environment variable {var_name} is not set. "
            f"Please set it in your environment or .env file."
        )
    return value
