"""
Pipeline errors.

Only StartupConfigError is allowed to stop the application. The other
errors are raised by the external collaborators (pose detector, action
classifier) and are turned into sentinel predictions by the processing chain.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class StartupConfigError(PipelineError):
    """Model metadata or label set is unusable. Raised before any frame is processed."""


class DetectionError(PipelineError):
    """Pose detector failed on a single frame."""


class ClassificationError(PipelineError):
    """Action classifier failed on a single window."""
