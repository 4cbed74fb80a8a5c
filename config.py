from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Submission layout
    server_dir_name: str = "backend"
    manifest_name: str = "package.json"

    # Launch
    server_host: str = "localhost"
    server_port: int = 3000
    node_executable: str = "node"
    npm_executable: str = "npm"
    log_max_lines: int = 500

    # Readiness and testing
    readiness_path: str = "/"
    readiness_timeout_seconds: float = 30.0
    readiness_interval_seconds: float = 1.0
    request_timeout_seconds: float = 5.0
    stabilize_seconds: float = 2.0
    test_pacing_seconds: float = 0.0
    server_start_points: int = 5

    # UI battery (frontend served externally)
    ui_battery_enabled: bool = False
    frontend_url: str = "http://localhost:5500"

    # Teardown
    termination_grace_seconds: float = 2.0
    port_release_timeout_seconds: float = 5.0
    cooldown_seconds: float = 3.0

    # Storage
    database_url: str = "sqlite:///grading.db"
    results_path: str = "results/grading_results.json"
    repos_path: str = "/tmp/grading/repos"
    persist_retries: int = 3
    persist_retry_delay_seconds: float = 1.0

    # Preparation
    clone_timeout_seconds: int = 120
    install_timeout_seconds: int = 300

    class Config:
        env_prefix = "GRADER_"
        env_file = ".env"
        extra = "ignore"

    def get_database_url(self) -> str:
        return self.database_url


config = Settings()
