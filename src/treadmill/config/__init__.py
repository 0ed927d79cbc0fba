"""Configuration for treadmill deployments."""

from treadmill.config.settings import (
    CONFIG_FILENAME,
    DOCS_URL,
    TreadmillConfig,
    VerifyStep,
)

__all__ = ["CONFIG_FILENAME", "DOCS_URL", "TreadmillConfig", "VerifyStep"]
