import pytest

from asg_ebs.config import Config
from asg_ebs.metadata import InstanceIdentity

from .fake_provider import FakeProvider


@pytest.fixture
def identity() -> InstanceIdentity:
    return InstanceIdentity(
        region="us-east-1",
        availability_zone="us-east-1a",
        instance_id="i-0123456789abcdef0",
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def make_config():
    def make_config(**overrides) -> Config:
        options = {
            "tag_key": "env",
            "tag_value": "prod",
            "attach_as": "xvdb",
            "mount_point": "/srv/data",
            "create_size": 20,
            "create_name": "prod-data",
            "create_volume_type": "gp2",
        }
        options.update(overrides)
        return Config(**options)

    return make_config
