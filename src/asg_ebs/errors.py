class AsgEbsError(Exception):
    """Base class for every fatal condition of an asg-ebs run.

    Subclasses keep the identifiers of the failed operation as attributes so
    the CLI can log them next to the message.
    """

    def context(self) -> dict[str, str]:
        return {
            key: str(value)
            for key, value in vars(self).items()
            if not key.startswith("_") and value is not None
        }


class PreconditionError(AsgEbsError):
    pass


class DeviceExists(PreconditionError):
    def __init__(self, device: str) -> None:
        super().__init__(f"Device {device} already exists")
        self.device = device


class AlreadyMounted(PreconditionError):
    def __init__(self, mount_point: str) -> None:
        super().__init__(f"{mount_point} is already mounted")
        self.mount_point = mount_point


class MetadataError(AsgEbsError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Unable to read instance metadata {path!r}: {reason}")
        self.path = path


class QueryError(AsgEbsError):
    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"{operation} failed: {reason}")
        self.operation = operation


class ProvisioningError(AsgEbsError):
    def __init__(self, reason: str, snapshot_id: str | None = None) -> None:
        super().__init__(f"Unable to create volume: {reason}")
        self.snapshot_id = snapshot_id


class TaggingError(AsgEbsError):
    """Tags could not be written on a volume that otherwise exists.

    The first phase of the operation (volume creation, or formatting) has
    already succeeded and is kept: `volume_id` is valid and usable.
    """

    def __init__(self, volume_id: str, tags: dict[str, str], reason: str) -> None:
        super().__init__(f"Unable to tag volume {volume_id} with {tags}: {reason}")
        self.volume_id = volume_id
        self.tags = tags


class VolumeTimeout(AsgEbsError):
    def __init__(self, volume_id: str, reason: str) -> None:
        super().__init__(f"Volume {volume_id} never became available: {reason}")
        self.volume_id = volume_id


class AttachError(AsgEbsError):
    def __init__(self, volume_id: str, device: str, reason: str) -> None:
        super().__init__(f"Unable to attach {volume_id} as {device}: {reason}")
        self.volume_id = volume_id
        self.device = device


class DeviceNotFound(AttachError):
    def __init__(self, volume_id: str, device: str, timeout: float) -> None:
        super().__init__(
            volume_id, device, f"{device} did not show up within {timeout:g}s"
        )
        self.timeout = timeout


class FormatError(AsgEbsError):
    def __init__(self, device: str, reason: str) -> None:
        super().__init__(f"Unable to create a file system on {device}: {reason}")
        self.device = device


class MountError(AsgEbsError):
    def __init__(self, device: str, mount_point: str, reason: str) -> None:
        super().__init__(f"Unable to mount {device} to {mount_point}: {reason}")
        self.device = device
        self.mount_point = mount_point
