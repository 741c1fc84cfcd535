import sys
from pathlib import Path
from typing import NoReturn

import click
import structlog

from . import __version__
from .config import (
    DEFAULT_INODE_RATIO,
    DEFAULT_MAX_RETRIES,
    VOLUME_TYPES,
    Config,
    load_defaults,
    parse_tags,
)
from .errors import AsgEbsError
from .log import DEFAULT_LOG_FILE, setup_logging

logger = structlog.get_logger()


def read_config_file(
    ctx: click.Context, param: click.Parameter, value: Path | None
) -> Path | None:
    if value is None:
        return None
    try:
        defaults = load_defaults(value)
    except (OSError, ValueError) as exc:
        raise click.BadParameter(str(exc), ctx=ctx, param=param) from exc
    ctx.default_map = {**(ctx.default_map or {}), **defaults}
    return value


def validate_tags(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> dict[str, str]:
    try:
        return parse_tags(values)
    except ValueError as exc:
        raise click.BadParameter(str(exc), ctx=ctx, param=param) from exc


def validate_device_name(ctx: click.Context, param: click.Parameter, value: str) -> str:
    if value and "/" in value:
        raise click.BadParameter(
            f"expected a device name such as 'xvdb', got {value!r}",
            ctx=ctx,
            param=param,
        )
    return value


@click.command(
    help="Create, attach, format and mount an EBS volume to this EC2 instance.",
    context_settings={"auto_envvar_prefix": "ASG_EBS"},
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, path_type=Path),
    is_eager=True,
    expose_value=False,
    callback=read_config_file,
    help="JSON file (or directory of JSON files) providing option defaults.",
)
@click.option("--tag-key", required=True, metavar="KEY", help="The tag key to search for")
@click.option(
    "--tag-value", required=True, metavar="VALUE", help="The tag value to search for"
)
@click.option(
    "--attach-as",
    required=True,
    metavar="DEVICE",
    callback=validate_device_name,
    help="Device name, e.g. xvdb",
)
@click.option(
    "--mount-point",
    required=True,
    metavar="DIR",
    help="Directory where the volume will be mounted",
)
@click.option(
    "--create-size",
    required=True,
    type=click.IntRange(min=1),
    metavar="SIZE",
    help="The size of the created volume, in GiBs",
)
@click.option(
    "--create-name", required=True, metavar="NAME", help="The name of the created volume"
)
@click.option(
    "--create-volume-type",
    required=True,
    type=click.Choice(VOLUME_TYPES),
    help="The volume type of the created volume",
)
@click.option(
    "--create-tags",
    multiple=True,
    metavar="KEY=VALUE",
    callback=validate_tags,
    help="Tag to use for the new volume, can be specified multiple times",
)
@click.option(
    "--mkfs-inode-ratio",
    type=click.IntRange(min=1),
    default=DEFAULT_INODE_RATIO,
    show_default=True,
    help="mkfs.ext4 inode ratio (-i)",
)
@click.option(
    "--delete-on-termination",
    is_flag=True,
    default=False,
    help="Delete volume when instance is terminated",
)
@click.option("--snapshot-name", help="Name of snapshot to use for new volume")
@click.option(
    "--max-retries",
    type=click.IntRange(min=0),
    default=DEFAULT_MAX_RETRIES,
    show_default=True,
    help="Maximum number of retries for AWS requests",
)
@click.option(
    "--log-file",
    default=DEFAULT_LOG_FILE,
    show_default=True,
    help="Also write logs to this file, if writable",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug messages")
@click.version_option(__version__)
def cli(log_file: str, verbose: bool, **options: object) -> None:
    setup_logging(verbose=verbose, log_file=log_file)

    try:
        config = Config(**options)  # type: ignore[arg-type]
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc

    from .metadata import InstanceIdentity
    from .orchestrator import Orchestrator
    from .providers import get_provider

    try:
        identity = InstanceIdentity.from_metadata()
        structlog.contextvars.bind_contextvars(instance_id=identity.instance_id)

        provider = get_provider(config, identity)
        result = Orchestrator(provider, config).run()
    except AsgEbsError as exc:
        logger.critical(
            str(exc), error=type(exc).__name__, **exc.context(), exc_info=exc.__cause__
        )
        sys.exit(1)

    logger.info(
        f"Volume {result.volume_id} mounted to {result.mount_point}",
        reused=result.reused,
        formatted=result.formatted,
        snapshot=result.snapshot_id,
    )


def main() -> NoReturn:
    sys.exit(cli())
