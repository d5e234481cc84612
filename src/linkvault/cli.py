"""Command-line interface for LinkVault."""

import asyncio
import logging
import secrets
import sys
from pathlib import Path
from typing import Optional

import click
import httpx
import uvicorn

CONFIG_DIR_HELP = "Configuration directory (default: ~/.linkvault)"


@click.group()
@click.version_option(version="0.1.0", prog_name="linkvault")
def cli():
    """LinkVault - personal link bookmarking service."""
    pass


@cli.command()
@click.option("--config-dir", type=click.Path(path_type=Path), default=None, help=CONFIG_DIR_HELP)
@click.option(
    "--backend",
    type=click.Choice(["file", "rest"], case_sensitive=False),
    default="file",
    show_default=True,
    help="Record store backend.",
)
@click.option(
    "--data-path",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Data directory for the file backend (default: <config-dir>/data)",
)
@click.option("--service-url", type=str, default=None, help="Hosted database URL (rest backend)")
@click.option("--service-anon-key", type=str, default=None, help="Hosted database public key")
@click.option("--ai-endpoint", type=str, default=None, help="Chat-completion endpoint for tag suggestions")
@click.option("--ai-api-key", type=str, default=None, help="API key for the chat-completion endpoint")
def init(
    config_dir: Optional[Path],
    backend: str,
    data_path: Optional[Path],
    service_url: Optional[str],
    service_anon_key: Optional[str],
    ai_endpoint: Optional[str],
    ai_api_key: Optional[str],
):
    """Initialize LinkVault configuration.

    Creates the configuration directory, .env file and, for the file backend,
    the data directory.
    """
    from .config import ConfigError, ConfigManager
    from .models.config import AppConfig

    try:
        cm = ConfigManager(config_dir)

        click.echo(f"Initializing LinkVault at {cm.config_dir}...")
        cm.config_dir.mkdir(parents=True, exist_ok=True)

        backend = backend.lower()
        if backend == "rest" and not service_url:
            service_url = click.prompt("Hosted database URL", type=str)

        api_token = secrets.token_hex(16)
        cm.create_env_file(
            api_token=api_token,
            ai_api_key=ai_api_key,
            service_anon_key=service_anon_key,
        )
        click.echo("[OK] Created .env file")

        if backend == "file":
            data_path = data_path or cm.config_dir / "data"
            (data_path / "links").mkdir(parents=True, exist_ok=True)

        config = AppConfig(
            store_backend=backend,
            data_path=str(data_path) if data_path else None,
            service_url=service_url,
            ai_endpoint=ai_endpoint,
        )
        cm.save_app_config(config)
        click.echo("[OK] Created config.yaml")
        if data_path:
            click.echo(f"[OK] Created data directory at {data_path}")

        click.echo("\n" + "=" * 60)
        click.echo("[SUCCESS] LinkVault initialized successfully!")
        click.echo("=" * 60)

        if backend == "file":
            click.echo(f"\nAPI token (send as 'Authorization: Bearer <token>'): {api_token}")
        if not ai_api_key:
            click.echo(f"\n[WARNING] Tag suggestions are disabled until AI_API_KEY is set in {cm.env_file}")

        click.echo(f"\nConfiguration directory: {cm.config_dir}")
        click.echo(f"Store backend: {backend}")
        click.echo("\nStart the server with: linkvault serve")

    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind (default: from config)")
@click.option("--port", type=int, default=None, help="Port to bind (default: from config)")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development")
@click.option("--config-dir", type=click.Path(path_type=Path), default=None, help=CONFIG_DIR_HELP)
def serve(host: Optional[str], port: Optional[int], reload: bool, config_dir: Optional[Path]):
    """Start the LinkVault API server."""
    from .config import ConfigError, ConfigManager

    try:
        cm = ConfigManager(config_dir)

        try:
            app_config = cm.load_app_config()
            cm.load_env_settings()
        except ConfigError as e:
            click.echo(f"Configuration error: {e}", err=True)
            click.echo(f"Run 'linkvault init' to create configuration at {cm.config_dir}", err=True)
            sys.exit(1)

        if config_dir:
            import os
            os.environ["LINKVAULT_CONFIG_DIR"] = str(config_dir)

        host = host or app_config.host
        port = port or app_config.port
        log_level = app_config.log_level.upper()
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        click.echo("=" * 60)
        click.echo("Starting LinkVault API server...")
        click.echo("=" * 60)
        click.echo(f"Config directory: {cm.config_dir}")
        click.echo(f"Server URL: http://{host}:{port}")
        click.echo(f"API docs: http://{host}:{port}/docs")
        click.echo("=" * 60)
        click.echo("\nPress Ctrl+C to stop the server\n")

        uvicorn.run(
            "linkvault.api:app",
            host=host,
            port=port,
            reload=reload,
            log_level=log_level.lower(),
        )

    except KeyboardInterrupt:
        click.echo("\n\nShutting down server...")
        sys.exit(0)
    except Exception as e:
        click.echo(f"Error starting server: {e}", err=True)
        sys.exit(1)


async def _open_library(config_dir: Optional[Path], token: Optional[str]):
    """Load configuration and build a library for the CLI caller."""
    from .config import ConfigManager
    from .core.auth import SessionResolver
    from .core.library import LinkLibrary
    from .core.record_store import create_record_store
    from .models.session import Session

    cm = ConfigManager(config_dir)
    app_config = cm.load_app_config()
    env_settings = cm.load_env_settings()

    store = await create_record_store(app_config, env_settings)
    if app_config.store_backend == "file" and not token:
        session = Session(user_id=app_config.local_owner_id)
    else:
        session = await SessionResolver(app_config, env_settings).resolve(token)
    return LinkLibrary(store, session)


@cli.command(name="export")
@click.option("--config-dir", type=click.Path(path_type=Path), default=None, help=CONFIG_DIR_HELP)
@click.option("--token", type=str, default=None, help="Access token (required for rest backend)")
@click.option(
    "--output-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=Path("."),
    show_default=True,
    help="Directory to write the export file into",
)
def export_command(config_dir: Optional[Path], token: Optional[str], output_dir: Path):
    """Export all links to link-vault-export-<date>.json."""
    from .config import ConfigError
    from .core.auth import AuthError
    from .core.record_store import StoreError

    async def run():
        library = await _open_library(config_dir, token)
        return await library.export_document()

    try:
        document = asyncio.run(run())
    except (ConfigError, AuthError, StoreError) as e:
        click.echo(f"Export failed: {e}", err=True)
        sys.exit(1)

    if document is None:
        click.echo("You have no links to export.")
        return

    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / document.filename
    target.write_text(document.content, encoding="utf-8")
    click.echo(f"Exported {document.count} links to {target}")


@cli.command(name="import")
@click.argument("source", type=click.Path(path_type=Path, exists=True, dir_okay=False))
@click.option("--config-dir", type=click.Path(path_type=Path), default=None, help=CONFIG_DIR_HELP)
@click.option("--token", type=str, default=None, help="Access token (required for rest backend)")
def import_command(source: Path, config_dir: Optional[Path], token: Optional[str]):
    """Import links from a JSON export file."""
    from .config import ConfigError
    from .core.auth import AuthError
    from .core.record_store import StoreError
    from .core.transfer import FormatError

    if source.suffix.lower() != ".json":
        click.echo("Import failed: Please select a valid JSON file.", err=True)
        sys.exit(1)

    async def run():
        library = await _open_library(config_dir, token)
        return await library.import_document(source.read_bytes())

    try:
        result = asyncio.run(run())
    except (ConfigError, AuthError, StoreError, FormatError) as e:
        click.echo(f"Import failed: {e}", err=True)
        sys.exit(1)

    click.echo(result.message)


def _is_placeholder_secret(value: Optional[str]) -> bool:
    """Detect placeholder/empty secret values that should be replaced."""
    if value is None:
        return True

    normalized = value.strip().lower()
    if not normalized:
        return True

    markers = ("your-", "replace-with", "<random", "example", "changeme")
    return any(marker in normalized for marker in markers)


@cli.command()
@click.option("--config-dir", type=click.Path(path_type=Path), default=None, help=CONFIG_DIR_HELP)
@click.option(
    "--api-url",
    type=str,
    default=None,
    help="Optional running API URL to verify (example: http://127.0.0.1:8000)",
)
def doctor(config_dir: Optional[Path], api_url: Optional[str]):
    """Validate local setup and report actionable fixes."""
    from .config import ConfigError, ConfigManager

    cm = ConfigManager(config_dir)
    failures = 0
    warnings = 0
    app_config = None
    env_settings = None

    def report(status: str, message: str, fix: Optional[str] = None) -> None:
        click.echo(f"[{status}] {message}")
        if fix:
            click.echo(f"      Fix: {fix}")

    click.echo("=" * 60)
    click.echo("LinkVault doctor")
    click.echo("=" * 60)
    click.echo(f"Config directory: {cm.config_dir}")

    if cm.config_file.exists():
        try:
            app_config = cm.load_app_config()
            report("PASS", "config.yaml parsed successfully")
        except ConfigError as e:
            failures += 1
            report("FAIL", f"config.yaml validation failed: {e}")
    else:
        failures += 1
        report("FAIL", f"Missing config file: {cm.config_file}", "Run: linkvault init")

    if cm.env_file.exists():
        try:
            env_settings = cm.load_env_settings()
            report("PASS", ".env parsed successfully")
        except ConfigError as e:
            failures += 1
            report("FAIL", f".env validation failed: {e}")
    else:
        failures += 1
        report("FAIL", f"Missing env file: {cm.env_file}", "Run: linkvault init")

    if app_config is not None and app_config.store_backend == "file":
        try:
            path = cm.validate_data_path(app_config)
            report("PASS", f"Data directory is accessible: {path}")
        except ConfigError as e:
            failures += 1
            report("FAIL", f"Data directory is not accessible: {e}")

        if env_settings is not None:
            if _is_placeholder_secret(env_settings.api_token):
                failures += 1
                report(
                    "FAIL",
                    "API_TOKEN appears unset or placeholder",
                    f"Set API_TOKEN in {cm.env_file}",
                )
            else:
                report("PASS", "API_TOKEN looks configured")

    if app_config is not None and app_config.store_backend == "rest":
        if env_settings is None or _is_placeholder_secret(env_settings.service_anon_key):
            failures += 1
            report(
                "FAIL",
                "SERVICE_ANON_KEY appears unset or placeholder",
                f"Set SERVICE_ANON_KEY in {cm.env_file}",
            )
        else:
            report("PASS", "SERVICE_ANON_KEY looks configured")

    if app_config is not None and env_settings is not None:
        if not app_config.ai_endpoint or _is_placeholder_secret(env_settings.ai_api_key):
            warnings += 1
            report(
                "WARN",
                "Tag suggestions are not configured (suggestions will be empty)",
                "Set ai_endpoint in config.yaml and AI_API_KEY in .env",
            )
        else:
            report("PASS", "Tag suggestion endpoint looks configured")

    if api_url:
        health_url = f"{api_url.rstrip('/')}/api/v1/health"
        try:
            response = httpx.get(health_url, timeout=3.0)
            if response.status_code == 200:
                report("PASS", f"Server is reachable: {health_url}")
            else:
                failures += 1
                report(
                    "FAIL",
                    f"Server health check returned HTTP {response.status_code}: {health_url}",
                    "Start server: linkvault serve",
                )
        except Exception as e:
            failures += 1
            report(
                "FAIL",
                f"Server is not reachable at {health_url} ({e})",
                "Start server and ensure API URL matches --api-url",
            )
    else:
        warnings += 1
        report("WARN", "Skipped server reachability check (no --api-url provided)")

    click.echo("-" * 60)
    click.echo(f"Summary: {failures} fail, {warnings} warn")

    if failures:
        sys.exit(1)
    sys.exit(0)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
