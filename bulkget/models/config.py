"""
Pydantic model for application configuration.
Provides validation and normalization for all run settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

# User-Agent strings offered by -random-agent and printed by -list-agents
USER_AGENTS = [
    "Mozilla/5.0 (X11; Linux i686; rv:64.0) Gecko/20100101 Firefox/64.0",
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/70.0.3538.77 Safari/537.36"
    ),
    "Mozilla/5.0 (Windows NT 6.1; WOW64; Trident/7.0; AS; rv:11.0) like Gecko",
]


class DownloadConfig(BaseModel):
    """An immutable, validated configuration for a single download run."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    # Download Settings
    connections: int = 1
    overwrite: bool = False
    dest_dir: str = "."

    # Request Options
    user_agent: str = ""

    # Pacing
    wait: int = 0
    random_wait: bool = False

    # URL sources, in registration order
    input_files: list[str] = Field(default_factory=list)
    urls: list[str] = Field(default_factory=list, repr=False)

    @field_validator("connections")
    @classmethod
    def normalize_connections(cls, v: int) -> int:
        """Any non-positive number of connections means a single connection."""
        return v if v > 0 else 1

    @field_validator("wait")
    @classmethod
    def normalize_wait(cls, v: int) -> int:
        """Negative waits are treated as no wait at all."""
        return max(v, 0)

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that may appear in the INI file."""
        internal_fields = {"input_files", "urls"}
        return {key for key in cls.model_fields if key not in internal_fields}
