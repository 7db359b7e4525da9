"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_VERIFY_EXEMPT_SUFFIXES = [".html"]
DEFAULT_EXECUTABLE_SUFFIXES = [".exe"]


class SyncConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # CDN selection
    cdn_url: str = ""
    use_https: bool = True
    asn: int = 0

    # Synchronization
    groups: list[str] = Field(default_factory=list)
    force: bool = False
    interactive: bool = True
    max_retries: int = 3
    verify_exempt_suffixes: list[str] = Field(
        default_factory=lambda: list(DEFAULT_VERIFY_EXEMPT_SUFFIXES)
    )
    executable_suffixes: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXECUTABLE_SUFFIXES)
    )

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    @field_validator("cdn_url")
    @classmethod
    def validate_cdn_url(cls, v: str) -> str:
        """Ensures an override URL is an http(s) origin without a trailing slash."""
        if not v:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("CDN URL must start with http:// or https://.")
        return v.rstrip("/")

    @field_validator("asn")
    @classmethod
    def validate_asn(cls, v: int) -> int:
        if v < 0 or v > 4294967295:
            raise ValueError("ASN must be between 0 and 4294967295.")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        """Ensures a reasonable number of automatic retries."""
        if v < 0 or v > 20:
            raise ValueError("Max retries must be between 0 and 20.")
        return v

    @field_validator("groups")
    @classmethod
    def validate_groups(cls, v: list[str]) -> list[str]:
        groups = [g.strip().strip("/") for g in v if g.strip().strip("/")]
        for group in groups:
            if ".." in group.split("/"):
                raise ValueError(f"Directory group cannot contain '..': {group}")
        return groups

    @field_validator("verify_exempt_suffixes", "executable_suffixes")
    @classmethod
    def validate_suffixes(cls, v: list[str]) -> list[str]:
        suffixes = [s.strip().lower() for s in v if s.strip()]
        for suffix in suffixes:
            if not suffix.startswith("."):
                raise ValueError(f"File suffix must start with '.': {suffix}")
        return suffixes

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
