"""Find or create the volume, attach it, format it if needed, and mount it.

Several instances of the same autoscaling group may boot at once and look for
volumes carrying the same tag. Nothing locks a volume between the moment an
instance finds it and the moment it attaches it: the only guarantee is that
EC2 refuses to attach a volume which is already attached elsewhere. The
reuse loop relies on that and simply looks for the next candidate when an
attachment fails. Volumes leaving the ``available`` state drop out of the
next search, so contending instances spread over the pool within a few
attempts.

Nothing created or attached here is ever rolled back.
"""

import enum
from dataclasses import dataclass

import structlog

from .config import Config
from .errors import AsgEbsError, AttachError
from .providers import BaseProvider

logger = structlog.get_logger()

REUSE_ATTEMPTS = 10
SNAPSHOT_TAG_KEY = "Name"


class State(enum.Enum):
    INIT = "init"
    PRECONDITIONS_CHECKED = "preconditions-checked"
    REUSE_ATTEMPT = "reuse-attempt"
    SNAPSHOT_RESTORE = "snapshot-restore"
    VOLUME_READY = "volume-ready"
    ATTACHED = "attached"
    FORMATTED_OR_SKIPPED = "formatted-or-skipped"
    MOUNTED = "mounted"
    FAILED = "failed"


@dataclass(frozen=True)
class RunResult:
    volume_id: str
    device: str
    mount_point: str
    reused: bool
    formatted: bool
    snapshot_id: str | None
    attempts: int


class Orchestrator:
    def __init__(self, provider: BaseProvider, config: Config) -> None:
        self.provider = provider
        self.config = config
        self.state = State.INIT

    def transition(self, state: State, **context: object) -> None:
        logger.debug(f"{self.state.value} -> {state.value}", **context)
        self.state = state

    def run(self) -> RunResult:
        try:
            return self._run()
        except AsgEbsError:
            self.transition(State.FAILED)
            raise

    def _run(self) -> RunResult:
        config = self.config
        device = config.device

        self.provider.check_device(device)
        self.provider.check_mount_point(config.mount_point)
        self.transition(State.PRECONDITIONS_CHECKED)

        volume_id: str | None = None
        snapshot_id: str | None = None
        attempts = 0

        if config.snapshot_name is None:
            self.transition(State.REUSE_ATTEMPT)
            volume_id, attempts = self.reuse_volume()
        else:
            self.transition(State.SNAPSHOT_RESTORE, snapshot_name=config.snapshot_name)
            snapshot_id = self.provider.find_snapshot(
                SNAPSHOT_TAG_KEY, config.snapshot_name
            )

        reused = volume_id is not None
        needs_file_system = False

        if volume_id is None:
            volume_id = self.create_volume(snapshot_id)
            needs_file_system = snapshot_id is None

            logger.info("Attaching volume", volume=volume_id, device=device)
            self.provider.attach_volume(
                volume_id, config.attach_as, config.delete_on_termination
            )

        self.transition(State.ATTACHED, volume=volume_id, device=device)

        if needs_file_system:
            logger.info("Creating file system on new volume", device=device)
            self.provider.make_file_system(
                device, config.mkfs_inode_ratio, volume_id
            )
        self.transition(State.FORMATTED_OR_SKIPPED, formatted=needs_file_system)

        logger.info("Mounting volume", device=device, mount_point=config.mount_point)
        self.provider.mount_volume(device, config.mount_point)
        self.transition(State.MOUNTED)

        return RunResult(
            volume_id=volume_id,
            device=device,
            mount_point=config.mount_point,
            reused=reused,
            formatted=needs_file_system,
            snapshot_id=snapshot_id,
            attempts=attempts,
        )

    def reuse_volume(self) -> tuple[str | None, int]:
        config = self.config

        for attempt in range(1, REUSE_ATTEMPTS + 1):
            volume_id = self.provider.find_volume(config.tag_key, config.tag_value)
            if volume_id is None:
                return None, attempt

            log = logger.bind(
                volume=volume_id,
                device=config.device,
                attempt=f"{attempt}/{REUSE_ATTEMPTS}",
            )
            log.info("Trying to attach existing volume")
            try:
                self.provider.attach_volume(
                    volume_id, config.attach_as, config.delete_on_termination
                )
            except AttachError as exc:
                log.warning("Failed to attach volume", error=str(exc))
                continue

            self.transition(State.VOLUME_READY, volume=volume_id, reused=True)
            return volume_id, attempt

        logger.warning(
            f"Unable to attach an existing volume after {REUSE_ATTEMPTS} attempts"
        )
        return None, REUSE_ATTEMPTS

    def create_volume(self, snapshot_id: str | None) -> str:
        config = self.config

        logger.info("Creating new volume", snapshot=snapshot_id)
        volume_id = self.provider.create_volume(
            config.create_size,
            config.create_name,
            config.create_volume_type,
            config.create_tags,
            snapshot_id,
        )

        logger.info("Waiting until new volume is available", volume=volume_id)
        self.provider.wait_until_volume_available(volume_id)
        self.transition(State.VOLUME_READY, volume=volume_id, reused=False)

        return volume_id
