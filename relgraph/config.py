from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Basic auth settings for the upstream gateway
    auth_username: str
    auth_password: str

    # Storage settings
    edge_store_path: str = "data/edges.json"
    identity_store_path: str = "data/profiles.json"

    # Listing settings
    default_page_size: int = 10
    max_page_size: int = 100

    # Maximum connections for non-premium users, None disables the limit
    connection_limit: int | None = None

    log_level: str = "INFO"  # Can be DEBUG, INFO, WARNING, ERROR, CRITICAL


settings = Settings()  # type: ignore
