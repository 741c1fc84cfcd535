import math
from typing import TYPE_CHECKING, Any

import boto3
import structlog
from botocore.config import Config as AWSConfig
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from .. import disks
from ..config import DEFAULT_MAX_RETRIES
from ..errors import (
    AlreadyMounted,
    AttachError,
    DeviceExists,
    DeviceNotFound,
    ProvisioningError,
    QueryError,
    TaggingError,
    VolumeTimeout,
)
from ..metadata import InstanceIdentity
from ._base import BaseProvider

if TYPE_CHECKING:
    from types_boto3_ec2.client import EC2Client

logger = structlog.get_logger(module="aws")

AVAILABLE_TIMEOUT = 600.0
IN_USE_TIMEOUT = 600.0
WAITER_DELAY = 15

AWSError = (ClientError, BotoCoreError)


def get_aws_config(region: str, max_retries: int = DEFAULT_MAX_RETRIES) -> AWSConfig:
    config = AWSConfig(
        region_name=region,
        retries={"max_attempts": max_retries, "mode": "standard"},
    )
    return config


def to_filters(**filters: str) -> list[dict[str, Any]]:
    return [{"Name": name, "Values": [value]} for name, value in filters.items()]


def to_tags(tags: dict[str, str]) -> list[dict[str, str]]:
    return [{"Key": key, "Value": value} for key, value in tags.items()]


class AWS(BaseProvider):
    def __init__(
        self,
        identity: InstanceIdentity,
        max_retries: int = DEFAULT_MAX_RETRIES,
        client: "EC2Client | None" = None,
        available_timeout: float = AVAILABLE_TIMEOUT,
        in_use_timeout: float = IN_USE_TIMEOUT,
        device_timeout: float = disks.DEVICE_TIMEOUT,
        waiter_delay: int = WAITER_DELAY,
    ) -> None:
        self.identity = identity
        if client is None:
            client = boto3.client(
                "ec2", config=get_aws_config(identity.region, max_retries)
            )
        self.client = client
        self.available_timeout = available_timeout
        self.in_use_timeout = in_use_timeout
        self.device_timeout = device_timeout
        self.waiter_delay = waiter_delay

    def waiter_config(self, timeout: float) -> dict[str, int]:
        return {
            "Delay": self.waiter_delay,
            "MaxAttempts": max(1, math.ceil(timeout / max(self.waiter_delay, 1))),
        }

    def check_device(self, device: str) -> None:
        if disks.device_exists(device):
            raise DeviceExists(device)

    def check_mount_point(self, mount_point: str) -> None:
        if disks.is_mounted(mount_point):
            raise AlreadyMounted(mount_point)

    def find_volume(self, tag_key: str, tag_value: str) -> str | None:
        filters = to_filters(
            **{
                f"tag:{tag_key}": tag_value,
                "tag:filesystem": "true",
                "status": "available",
                "availability-zone": self.identity.availability_zone,
            }
        )
        logger.debug("Looking for volume", filters=filters)

        try:
            response = self.client.describe_volumes(Filters=filters)
        except AWSError as exc:
            raise QueryError("DescribeVolumes", str(exc)) from exc

        volumes = response["Volumes"]
        if not volumes:
            logger.info(f"No available volume with tag {tag_key}={tag_value}")
            return None

        volume_id = volumes[0]["VolumeId"]
        logger.info(f"Found volume {volume_id}", candidates=len(volumes))
        return volume_id

    def find_snapshot(self, tag_key: str, tag_value: str) -> str | None:
        filters = to_filters(**{f"tag:{tag_key}": tag_value, "status": "completed"})
        logger.debug("Looking for snapshot", filters=filters)

        snapshots = []
        try:
            paginator = self.client.get_paginator("describe_snapshots")
            for page in paginator.paginate(Filters=filters):
                snapshots.extend(page["Snapshots"])
        except AWSError as exc:
            raise QueryError("DescribeSnapshots", str(exc)) from exc

        if not snapshots:
            logger.info(f"No completed snapshot with tag {tag_key}={tag_value}")
            return None

        # Ties on StartTime keep whichever snapshot AWS listed first.
        newest = max(snapshots, key=lambda snapshot: snapshot["StartTime"])
        snapshot_id = newest["SnapshotId"]
        logger.info(
            f"Found snapshot {snapshot_id}",
            start_time=str(newest["StartTime"]),
            candidates=len(snapshots),
        )
        return snapshot_id

    def create_volume(
        self,
        size: int,
        name: str,
        volume_type: str,
        tags: dict[str, str],
        snapshot_id: str | None = None,
    ) -> str:
        args: dict[str, Any] = {
            "AvailabilityZone": self.identity.availability_zone,
            "Size": size,
            "VolumeType": volume_type,
        }
        if snapshot_id is not None:
            args["SnapshotId"] = snapshot_id

        logger.info("Creating volume", **args)
        try:
            response = self.client.create_volume(**args)
        except AWSError as exc:
            raise ProvisioningError(str(exc), snapshot_id=snapshot_id) from exc

        volume_id = response["VolumeId"]
        logger.info(f"Created volume {volume_id}")

        volume_tags = {
            "Name": name,
            "filesystem": "true" if snapshot_id is not None else "false",
        }
        volume_tags.update(tags)
        self.tag_volume(volume_id, volume_tags)

        return volume_id

    def tag_volume(self, volume_id: str, tags: dict[str, str]) -> None:
        logger.info(f"Tagging volume {volume_id}", tags=tags)
        try:
            self.client.create_tags(Resources=[volume_id], Tags=to_tags(tags))
        except AWSError as exc:
            raise TaggingError(volume_id, tags, str(exc)) from exc

    def wait_until_volume_available(self, volume_id: str) -> None:
        logger.info(f"Waiting for volume {volume_id} to be available")
        waiter = self.client.get_waiter("volume_available")
        try:
            waiter.wait(
                VolumeIds=[volume_id],
                WaiterConfig=self.waiter_config(self.available_timeout),
            )
        except (WaiterError, BotoCoreError) as exc:
            raise VolumeTimeout(volume_id, str(exc)) from exc

        logger.info(f"Volume {volume_id} is available")

    def attach_volume(
        self, volume_id: str, device_name: str, delete_on_termination: bool = False
    ) -> None:
        instance_id = self.identity.instance_id
        logger.info(f"Attaching volume {volume_id} to instance {instance_id}")

        try:
            response = self.client.attach_volume(
                Device=device_name,
                InstanceId=instance_id,
                VolumeId=volume_id,
            )
        except AWSError as exc:
            raise AttachError(volume_id, device_name, str(exc)) from exc

        state = response.get("State")
        logger.info(f"Attach request accepted, {state=}")

        waiter = self.client.get_waiter("volume_in_use")
        try:
            waiter.wait(
                VolumeIds=[volume_id],
                WaiterConfig=self.waiter_config(self.in_use_timeout),
            )
        except (WaiterError, BotoCoreError) as exc:
            raise AttachError(volume_id, device_name, str(exc)) from exc

        if delete_on_termination:
            logger.info(f"Setting DeleteOnTermination on {device_name}")
            try:
                self.client.modify_instance_attribute(
                    InstanceId=instance_id,
                    BlockDeviceMappings=[
                        {
                            "DeviceName": device_name,
                            "Ebs": {
                                "DeleteOnTermination": True,
                                "VolumeId": volume_id,
                            },
                        }
                    ],
                )
            except AWSError as exc:
                raise AttachError(volume_id, device_name, str(exc)) from exc

        device = f"/dev/{device_name}"
        if not disks.wait_for_device(device, timeout=self.device_timeout):
            raise DeviceNotFound(volume_id, device, self.device_timeout)

        logger.info(f"Volume {volume_id} attached as {device}")

    def make_file_system(self, device: str, inode_ratio: int, volume_id: str) -> None:
        disks.make_file_system(device, inode_ratio)
        self.tag_volume(volume_id, {"filesystem": "true"})

    def mount_volume(self, device: str, mount_point: str) -> None:
        disks.mount(device, mount_point)
