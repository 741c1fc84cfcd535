from dataclasses import dataclass
from typing import Self

import requests
import structlog

from .errors import MetadataError
from .http import raise_http_error

logger = structlog.get_logger()

METADATA_URL = "http://169.254.169.254/latest"
TOKEN_TTL = "21600"
TIMEOUT = 5


@dataclass(frozen=True)
class InstanceIdentity:
    """Where this process runs: resolved once, then passed around as is."""

    region: str
    availability_zone: str
    instance_id: str

    @classmethod
    def from_metadata(
        cls, session: requests.Session | None = None, base_url: str = METADATA_URL
    ) -> Self:
        session = session or requests.Session()
        token = get_token(session, base_url)

        availability_zone = get_metadata(
            session, base_url, token, "placement/availability-zone"
        )
        try:
            region = get_metadata(session, base_url, token, "placement/region")
        except MetadataError:
            # Older metadata versions don't expose the region directly.
            region = availability_zone[:-1]
        instance_id = get_metadata(session, base_url, token, "instance-id")

        identity = cls(
            region=region,
            availability_zone=availability_zone,
            instance_id=instance_id,
        )
        logger.info(
            "Found instance identity",
            region=region,
            az=availability_zone,
            instance_id=instance_id,
        )
        return identity


def get_token(session: requests.Session, base_url: str) -> str:
    headers = {"X-aws-ec2-metadata-token-ttl-seconds": TOKEN_TTL}
    try:
        with session.put(
            f"{base_url}/api/token", headers=headers, timeout=TIMEOUT
        ) as response:
            raise_http_error(response)
            return response.text
    except requests.RequestException as exc:
        raise MetadataError("api/token", str(exc)) from exc


def get_metadata(
    session: requests.Session, base_url: str, token: str, path: str
) -> str:
    headers = {"X-aws-ec2-metadata-token": token}
    try:
        with session.get(
            f"{base_url}/meta-data/{path}", headers=headers, timeout=TIMEOUT
        ) as response:
            raise_http_error(response)
            return str(response.text).strip()
    except requests.RequestException as exc:
        raise MetadataError(path, str(exc)) from exc
