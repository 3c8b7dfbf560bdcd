# cli.py
import logging
import sys

import click
import uvicorn
from pydantic import ValidationError

from upload_server import __version__
from upload_server.config.settings import Settings, get_settings
from upload_server.errors import InitializationFailed

# Configure logging
logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


@click.group()
@click.version_option(__version__, prog_name="upload-server")
def cli():
    """CLI commands for the upload server"""
    pass


@cli.command()
@click.option("-s", "--server-address", default=None,
              help="The address where the server should bind to, as host:port")
@click.option("-f", "--folder", default=None,
              help="Folder where uploads are stored at")
@click.option("-v", "--verbose", is_flag=True, default=False,
              help="Log error sources and tracebacks")
@click.option("--log-level",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              default=None,
              help="Logging level")
def serve(server_address, folder, verbose, log_level):
    """Lock the storage folder and start serving uploads"""
    # Import here so show-config does not pull in the web stack
    from upload_server.main import create_app
    from upload_server.adapters.storage import StorageController

    overrides = {
        "server_address": server_address,
        "storage_dir": folder,
        "verbose": verbose or None,
        "log_level": log_level,
    }
    try:
        settings = Settings(**{key: value for key, value in overrides.items() if value is not None})
    except ValidationError as err:
        raise click.UsageError(str(err)) from err
    configure_logging(settings.log_level)

    try:
        controller = StorageController(settings.storage_dir)
    except InitializationFailed as err:
        logger.error(f"Failed to start server on address {settings.server_address}")
        if settings.verbose:
            logger.error(str(err))
        sys.exit(1)

    click.echo(controller.get_info())
    app = create_app(settings=settings, controller=controller)
    logger.info(f"Server listening on {settings.server_address}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    print(f"  App Name: {settings.app_name}")
    print(f"  Server Address: {settings.server_address}")
    print(f"  Storage Folder: {settings.storage_dir}")
    print(f"  Download Chunk Size: {settings.download_chunk_size}")
    print(f"  Verbose: {settings.verbose}")
    print(f"  Log Level: {settings.log_level}")


if __name__ == "__main__":
    cli()
