"""Service configuration loaded from environment variables."""
from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration loaded from environment variables.

    Attributes:
        host: Bind address for the API server.
        port: Port number for the API server.
        debug: Enable debug mode and API documentation.
        key: API key for authenticating requests.
        database_path: SQLite database holding figures and search documents.
        search_backend_enabled: Route queries to the managed full-text index.
        search_index_name: Name of the managed full-text index.
        test_mode: "memory" when running against the in-memory test setup.
        integration_test: True while the integration suite is running.
        reindex_batch_size: Figures per batch during a full resynchronization.
    """

    model_config = SettingsConfigDict(
        env_prefix="COLLECTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    key: str = ""

    database_path: str = ":memory:"

    search_backend_enabled: bool = False
    search_index_name: str = "unified_search"
    test_mode: str = ""
    integration_test: bool = False
    reindex_batch_size: int = 100

    @computed_field
    @property
    def managed_search_enabled(self) -> bool:
        """Decide whether queries may use the managed full-text index.

        The in-memory and integration test modes always force the
        fallback scorer, even with the backend flag switched on.

        Returns:
            True when the managed index path should be tried first.
        """
        return (
            self.search_backend_enabled
            and self.test_mode != "memory"
            and not self.integration_test
        )
