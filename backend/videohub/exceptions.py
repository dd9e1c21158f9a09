"""Domain exceptions raised by the services layer.

Routers never translate these by hand; main.py maps each class to an HTTP status.
"""


class VideoHubError(Exception):
    """Base class for domain errors."""


class ValidationError(VideoHubError):
    """Missing/empty required field or malformed identifier."""


class NotFoundError(VideoHubError):
    """Referenced video or user does not exist."""


class OwnershipError(VideoHubError):
    """Acting identity is not the owner of the resource."""


class UpstreamStorageError(VideoHubError):
    """Remote asset store failed an upload."""

    def __init__(self, message: str, kind: str | None = None, external_id: str | None = None):
        self.kind = kind
        self.external_id = external_id
        super().__init__(message)
