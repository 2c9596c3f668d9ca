"""
CLI interface for pdtemplate.

Runs the package template's deployment hooks against a Dataverse environment
outside the Package Deployer host, e.g. from a release pipeline.
"""

import os

import click
import yaml

from pdtemplate import __version__


@click.group()
@click.version_option(version=__version__, prog_name="pdt")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Path to config.yaml")
@click.option("--log-level", default="INFO", show_default=True, help="DEBUG, INFO, WARNING or ERROR")
@click.option("--log-format", type=click.Choice(["pretty", "structured"]), default="pretty", show_default=True)
@click.pass_context
def main(ctx, config_path, log_level, log_format):
    """
    pdt - Package Deployer template steps.

    Activates processes and SDK steps, connects connection references and
    manages SLAs after a solution import.
    """
    from pathlib import Path
    from pdtemplate.config import load_config
    from pdtemplate.utils import setup_logging

    ctx.ensure_object(dict)
    ctx.obj["logger"] = setup_logging(log_level=log_level, log_format=log_format)
    try:
        ctx.obj["config"] = load_config(Path(config_path) if config_path else None)
    except Exception as e:
        # init does not need a config; other commands check ctx.obj.get("config")
        ctx.obj["config_error"] = str(e)


def _require_config(ctx):
    if "config" not in ctx.obj:
        click.echo(f"✗ Config not loaded: {ctx.obj.get('config_error', 'Unknown error')}", err=True)
        click.echo("Run 'pdt init' to create a configuration file.", err=True)
        raise SystemExit(1)
    return ctx.obj["config"]


def _build_adapter(config, dry_run: bool, logger):
    from pdtemplate.adapters import DataverseWebApiAdapter, DryRunCrmServiceAdapter
    from pdtemplate.config import ACCESS_TOKEN_ENV

    if not config.environment_url:
        click.echo("✗ environment_url is not set in config.yaml", err=True)
        raise SystemExit(1)

    token = os.environ.get(ACCESS_TOKEN_ENV)
    if not token:
        click.echo(f"✗ No access token: set {ACCESS_TOKEN_ENV}", err=True)
        raise SystemExit(1)

    adapter = DataverseWebApiAdapter(
        config.environment_url,
        token,
        api_version=config.api_version,
        timeout=config.request_timeout,
        logger=logger,
    )
    if dry_run:
        return DryRunCrmServiceAdapter(adapter, logger)
    return adapter


@main.command("run")
@click.option(
    "--phase",
    type=click.Choice(["before", "after", "all"]),
    default="after",
    show_default=True,
    help="Which template hook(s) to run",
)
@click.option("--dry-run", is_flag=True, help="Query the environment but do not write")
@click.pass_context
def run(ctx, phase: str, dry_run: bool):
    """
    Run the template's deployment hooks.

    Examples:

        pdt run

        pdt run --phase before

        pdt --config ./deploy/config.yaml run --dry-run
    """
    from pdtemplate.deployer import PackageTemplate
    from pdtemplate.errors import PdtError

    config = _require_config(ctx)
    logger = ctx.obj["logger"]
    template = PackageTemplate(_build_adapter(config, dry_run, logger), config, logger=logger)

    if dry_run:
        click.echo("=== DRY RUN MODE === (no writes)")

    try:
        reports = []
        if phase in ("before", "all"):
            reports.append(template.before_import())
        if phase in ("after", "all"):
            reports.append(template.after_import())
    except PdtError as e:
        click.echo(f"✗ Deployment failed: {e}", err=True)
        raise SystemExit(1)

    for report in reports:
        faulted = report.faulted_steps
        if faulted:
            click.echo(f"⚠ {report.phase} completed with errors in: {', '.join(faulted)}")
        else:
            click.echo(f"✓ {report.phase} completed")


@main.command("connect")
@click.option("--owner", help="Domain name of the connection owner to impersonate")
@click.option("--dry-run", is_flag=True, help="Query the environment but do not write")
@click.pass_context
def connect(ctx, owner, dry_run: bool):
    """Connect connection references only."""
    from pdtemplate.deployer import PackageTemplate
    from pdtemplate.errors import PdtError

    config = _require_config(ctx)
    logger = ctx.obj["logger"]
    template = PackageTemplate(_build_adapter(config, dry_run, logger), config, logger=logger)

    try:
        outcome = template.connection_references.connect_connection_references(
            template.connection_map, owner or template.connection_owner
        )
    except PdtError as e:
        click.echo(f"✗ Connecting connection references failed: {e}", err=True)
        raise SystemExit(1)

    if outcome is None:
        click.echo("No connection references configured")
    elif outcome.is_faulted:
        click.echo(f"⚠ {len(outcome.faults)} of {len(outcome)} connection reference(s) failed")
    else:
        click.echo(f"✓ Connected {len(outcome)} connection reference(s)")


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Initialize pdtemplate configuration."""
    from pdtemplate.config import get_pdt_home

    home = get_pdt_home()
    if not home.exists():
        home.mkdir(parents=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    default_cfg = {
        "environment_url": "https://contoso.crm.dynamics.com",
        "api_version": "9.2",
        "request_timeout": 120,
        "env_file": str(home / ".env"),
        "connection_owner": None,
        "strict_resolution": False,
        "activate_deactivate_slas": True,
        "processes": [],
        "sdksteps": [],
        "slas": [],
        "connection_references": {},
    }
    cfg_path.write_text(yaml.safe_dump(default_cfg, sort_keys=False))

    env_path = home / ".env"
    if not env_path.exists():
        env_path.write_text(
            "# PDT_ACCESS_TOKEN=...\n"
            "# PACKAGEDEPLOYER_SETTINGS_LICENSEDUSERNAME=...\n"
            "# PACKAGEDEPLOYER_SETTINGS_CONNREF_<logicalname>=<connection id>\n"
        )

    click.echo(f"Initialized pdtemplate config at {cfg_path}")


if __name__ == "__main__":
    main()
