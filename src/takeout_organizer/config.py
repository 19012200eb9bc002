"""Configuration models for the export organizer."""

from pydantic import BaseModel, Field, ConfigDict

from takeout_organizer.common import LoggingConfig, auto_detect_io_workers


class OrganizerSettings(BaseModel):
    """Pipeline tuning and external tool configuration."""
    
    model_config = ConfigDict(extra='forbid')
    
    worker_threads: int = Field(
        default_factory=auto_detect_io_workers,
        ge=1,
        description="Number of pipeline worker threads (default: 2 x CPU cores)"
    )
    queue_maxsize: int = Field(
        default=1000,
        ge=1,
        description="Maximum size of the work queue (backpressure on the scanner)"
    )
    min_prefix_length: int = Field(
        default=16,
        ge=1,
        description="Shortest shared prefix accepted when matching truncated sidecar names"
    )
    signature_prefix_size: int = Field(
        default=8192,
        ge=16,
        description="Number of leading bytes read to detect a file's content signature"
    )
    hash_chunk_size: int = Field(
        default=1024 * 1024,
        ge=4096,
        description="Read size used when hashing file content"
    )
    apply_metadata: bool = Field(
        default=True,
        description="Write sidecar metadata into copied files with exiftool"
    )
    exiftool_path: str = Field(
        default="exiftool",
        description="Executable name or path of exiftool"
    )
    exiftool_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds before an exiftool invocation is abandoned"
    )
    set_file_times: bool = Field(
        default=True,
        description="Set copied files' modification time to the capture time"
    )
    dates_from_filenames: bool = Field(
        default=True,
        description="Take a capture date from YYYYMMDD-style filenames when no sidecar provides one"
    )
    report_path: str | None = Field(
        default=None,
        description="Optional path for a JSON report of all warnings and errors"
    )


class OrganizerConfig(BaseModel):
    """Root configuration."""
    
    model_config = ConfigDict(extra='forbid')
    
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    organizer: OrganizerSettings = Field(default_factory=OrganizerSettings)
