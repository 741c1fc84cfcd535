from ..config import Config
from ..metadata import InstanceIdentity
from ._base import BaseProvider
from .aws import AWS


def get_provider(config: Config, identity: InstanceIdentity) -> BaseProvider:
    return AWS(identity, max_retries=config.max_retries)


__all__ = ["AWS", "BaseProvider", "get_provider"]
