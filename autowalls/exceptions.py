"""
Custom exceptions for the wall detection pipeline.
"""

from typing import Optional


class WallDetectionError(Exception):
    """Base exception for wall detection errors."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class InvalidArgumentError(WallDetectionError, ValueError):
    """Raised for empty buffers, non-positive sizes and bad thresholds."""

    def __init__(self, message: str, argument: Optional[str] = None):
        self.argument = argument
        full_message = message
        if argument:
            full_message += f" (argument: {argument})"
        super().__init__(full_message, "INVALID_ARGUMENT")


class NoEdgesDetectedError(WallDetectionError):
    """Raised when edge detection finds no gradient signal at all."""

    def __init__(self, message: str = "No edges detected in the image", max_magnitude: Optional[int] = None):
        self.max_magnitude = max_magnitude
        full_message = message
        if max_magnitude is not None:
            full_message += f" (max suppressed magnitude: {max_magnitude})"
        super().__init__(full_message, "NO_EDGES")


class ConfigurationError(WallDetectionError):
    """Exception raised for configuration errors."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        full_message = f"Configuration error: {message}"
        if config_key:
            full_message += f" (key: {config_key})"
        super().__init__(full_message, "CONFIG_ERROR")


class ImageLoadError(WallDetectionError):
    """Exception raised when a background image cannot be read."""

    def __init__(self, message: str, image_path: Optional[str] = None):
        self.image_path = image_path
        full_message = f"Image load error: {message}"
        if image_path:
            full_message += f" (file: {image_path})"
        super().__init__(full_message, "IMAGE_ERROR")


class PipelineError(WallDetectionError):
    """Terminal error for a pipeline run; wraps the failing stage's exception."""

    def __init__(self, message: str, stage: Optional[str] = None):
        self.stage = stage
        full_message = message
        if stage:
            full_message = f"[{stage}] {message}"
        super().__init__(full_message, "PIPELINE_ERROR")


class PipelineCancelledError(WallDetectionError):
    """Raised when the caller asks to stop between pipeline stages."""

    def __init__(self, stage: Optional[str] = None):
        self.stage = stage
        message = "Pipeline cancelled"
        if stage:
            message += f" before {stage}"
        super().__init__(message, "CANCELLED")
