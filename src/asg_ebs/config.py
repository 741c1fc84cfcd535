from dataclasses import dataclass, field
from pathlib import Path
import json
from typing import Any, Self

VOLUME_TYPES = ("standard", "gp2", "gp3")
DEFAULT_INODE_RATIO = 16384
DEFAULT_MAX_RETRIES = 20


@dataclass(frozen=True)
class Config:
    tag_key: str
    tag_value: str
    attach_as: str
    mount_point: str
    create_size: int
    create_name: str
    create_volume_type: str
    create_tags: dict[str, str] = field(default_factory=dict)
    mkfs_inode_ratio: int = DEFAULT_INODE_RATIO
    delete_on_termination: bool = False
    snapshot_name: str | None = None
    max_retries: int = DEFAULT_MAX_RETRIES

    def __post_init__(self) -> None:
        for name in ("tag_key", "tag_value", "attach_as", "mount_point", "create_name"):
            if not getattr(self, name):
                raise ValueError(f"{name} must not be empty")
        if "/" in self.attach_as:
            raise ValueError(
                f"attach_as must be a device name such as 'xvdb', got {self.attach_as!r}"
            )
        if self.create_size < 1:
            raise ValueError(f"create_size must be positive, got {self.create_size}")
        if self.mkfs_inode_ratio < 1:
            raise ValueError(
                f"mkfs_inode_ratio must be positive, got {self.mkfs_inode_ratio}"
            )
        if self.create_volume_type not in VOLUME_TYPES:
            raise ValueError(
                f"create_volume_type must be one of {VOLUME_TYPES}, "
                f"got {self.create_volume_type!r}"
            )
        if self.max_retries < 0:
            raise ValueError(f"max_retries must not be negative, got {self.max_retries}")
        # An empty snapshot name means "no snapshot", like an absent one.
        if not self.snapshot_name:
            object.__setattr__(self, "snapshot_name", None)

    @property
    def device(self) -> str:
        return f"/dev/{self.attach_as}"


def parse_tag(value: str) -> tuple[str, str]:
    key, sep, tag_value = value.partition("=")
    if not sep:
        raise ValueError(f"expected KEY=VALUE got {value!r}")
    if not key:
        raise ValueError(f"tag key must not be empty in {value!r}")
    return key, tag_value


def parse_tags(values: list[str] | tuple[str, ...]) -> dict[str, str]:
    return dict(parse_tag(value) for value in values)


def load_defaults(path: Path) -> dict[str, Any]:
    """Read option defaults from a JSON file, or every *.json file in a directory.

    Keys use the option names with underscores (``tag_key``, ``mount_point``...).
    Later files in a directory override earlier ones.
    """
    data: dict[str, Any] = {}

    if path.is_file():
        data = json.loads(path.read_text())
    else:
        for p in sorted(path.iterdir()):
            if p.suffix != ".json":
                continue

            part = json.loads(p.read_text())
            data.update(part)

    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")

    return {key.replace("-", "_"): value for key, value in data.items()}
