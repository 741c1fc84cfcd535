import abc


class BaseProvider(abc.ABC):
    """Everything the orchestrator needs from the cloud and the local host."""

    @abc.abstractmethod
    def check_device(self, device: str) -> None:
        """Raise DeviceExists if `device` is already present."""

    @abc.abstractmethod
    def check_mount_point(self, mount_point: str) -> None:
        """Raise AlreadyMounted if `mount_point` shows up in the mount table."""

    @abc.abstractmethod
    def find_volume(self, tag_key: str, tag_value: str) -> str | None:
        """Return an available, formatted volume with this tag in the local zone."""

    @abc.abstractmethod
    def find_snapshot(self, tag_key: str, tag_value: str) -> str | None:
        """Return the newest completed snapshot with this tag."""

    @abc.abstractmethod
    def create_volume(
        self,
        size: int,
        name: str,
        volume_type: str,
        tags: dict[str, str],
        snapshot_id: str | None = None,
    ) -> str:
        pass

    @abc.abstractmethod
    def wait_until_volume_available(self, volume_id: str) -> None:
        pass

    @abc.abstractmethod
    def attach_volume(
        self, volume_id: str, device_name: str, delete_on_termination: bool = False
    ) -> None:
        pass

    @abc.abstractmethod
    def make_file_system(self, device: str, inode_ratio: int, volume_id: str) -> None:
        pass

    @abc.abstractmethod
    def mount_volume(self, device: str, mount_point: str) -> None:
        pass
