"""Global configuration, loaded from environment variables."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


class ProcwardenSettings(BaseSettings):
    # Relative paths resolve against the working directory of the caller.
    # The directory must already exist.
    quarantine_dir: Path = Path("quarantine")
    quarantine_mode: str = "444"  # r--r--r--
    proc_root: Path = Path("/proc")
    procstat_bin: str = "procstat"
    powershell_bin: str = "powershell"
    log_level: str = "INFO"

    model_config = {"env_prefix": "PROCWARDEN_"}

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper()


settings = ProcwardenSettings()
