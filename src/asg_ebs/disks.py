import structlog
import os
import subprocess
import time
from pathlib import Path

from .errors import FormatError, MountError

logger = structlog.get_logger()

MKFS = "/usr/sbin/mkfs.ext4"
MOUNT = "/bin/mount"
PROC_MOUNTS = Path("/proc/mounts")

DEVICE_TIMEOUT = 60.0
DEVICE_POLL_INTERVAL = 1.0


def run(*cmd: str) -> bytes:
    logger.info("Running command", cmd=list(cmd))
    try:
        return subprocess.check_output(cmd, stderr=subprocess.STDOUT)
    except subprocess.CalledProcessError as exc:
        logger.warning(
            "Error running command",
            cmd=list(cmd),
            returncode=exc.returncode,
            output=exc.output.decode("utf-8", "replace").strip(),
        )
        raise


def device_exists(device: str) -> bool:
    try:
        os.stat(device)
    except FileNotFoundError:
        return False
    except OSError as exc:
        # Anything but "not found" means something already sits at that path.
        logger.info(f"Unable to stat {device}", error=str(exc))
    return True


def is_mounted(mount_point: str, mounts: Path = PROC_MOUNTS) -> bool:
    # Plain substring match: "/srv" also matches "/srv/data".
    try:
        table = mounts.read_text()
    except OSError as exc:
        logger.info("Failed to read mount table", path=str(mounts), error=str(exc))
        return False
    return mount_point in table


def wait_for_device(
    device: str,
    timeout: float = DEVICE_TIMEOUT,
    interval: float = DEVICE_POLL_INTERVAL,
) -> bool:
    deadline = time.monotonic() + timeout

    while True:
        if device_exists(device):
            logger.info(f"Device {device} is present")
            return True

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.info(f"Device {device} not found, giving up")
            return False

        logger.debug(f"Device {device} not found, waiting {interval}s")
        time.sleep(min(interval, remaining))


def make_file_system(device: str, inode_ratio: int) -> None:
    logger.info(f"{device}: formatting disk with ext4", inode_ratio=inode_ratio)
    try:
        run(MKFS, "-i", str(inode_ratio), device)
    except (subprocess.CalledProcessError, OSError) as exc:
        raise FormatError(device, str(exc)) from exc


def mount(device: str, mount_point: str) -> None:
    logger.info(f"Mount {device} to {mount_point}")
    try:
        Path(mount_point).mkdir(mode=0o755, parents=True, exist_ok=True)
        run(MOUNT, device, mount_point)
    except (subprocess.CalledProcessError, OSError) as exc:
        raise MountError(device, mount_point, str(exc)) from exc

    logger.info(f"{device} mounted to {mount_point}")
