"""Command line interface: configure addons and submit them to the marketplace."""

import logging
from pathlib import Path
from typing import Callable

import click

from addon_release.config_store import AddonRecord, ConfigStore, ConfigurationError, derive_key
from addon_release.core.git import GitService
from addon_release.core.github import PullRequestClient
from addon_release.core.secrets import SecretsManagerProvider
from addon_release.core.workspace import RepositoryWorkspace
from addon_release.pipeline import PipelineError, ReleasePipeline, ReleaseRequest, ReleaseTarget
from addon_release.settings import Settings, get_settings
from addon_release.validators import FieldKind, is_valid_field

EXIT_VALIDATION_ERROR = 2
EXIT_PIPELINE_ERROR = 3

_FIELD_HINTS = {
    "region": "must be 3-25 lowercase letters, digits or hyphens, starting with a letter",
    "namespace": "must be at most 63 lowercase alphanumerics or '-', not starting or ending with '-'",
    "url": "must be an absolute URL",
}


class ValidationFailed(click.ClickException):
    exit_code = EXIT_VALIDATION_ERROR


class ReleaseFailed(click.ClickException):
    exit_code = EXIT_PIPELINE_ERROR


def _field_checker(kind: FieldKind) -> Callable[[str], str]:
    """Build a click ``value_proc`` that re-prompts until ``kind`` is valid."""

    def check(value: str) -> str:
        if not is_valid_field(kind, value):
            raise click.BadParameter(f"{value!r} {_FIELD_HINTS[kind]}")
        return value

    return check


def _load_store(settings: Settings) -> ConfigStore:
    try:
        return ConfigStore.load(settings.config_path)
    except ConfigurationError as e:
        raise ValidationFailed(str(e))


def _persist(store: ConfigStore) -> None:
    try:
        store.persist()
    except ConfigurationError as e:
        raise ValidationFailed(str(e))


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Addon configuration file (default: ~/.addon-release/config.json)",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_level: str | None) -> None:
    """Configure Helm addons and submit them to the marketplace repository."""
    settings = get_settings()
    updates: dict[str, object] = {}
    if config_path is not None:
        updates["config_path"] = config_path
    if log_level is not None:
        updates["log_level"] = log_level.upper()
    if updates:
        settings = settings.model_copy(update=updates)

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.obj = settings


@cli.command()
@click.option("--addon_name", "addon_name", default=None, help="Name of the addon")
@click.option("--addon_version", "addon_version", default=None, help="Version of the addon")
@click.option("--helm_url", "helm_url", default=None, help="Helm URL of the addon")
@click.option("--marketplace_id", "marketplace_id", default=None, help="Marketplace AWS Account ID")
@click.option("--namespace", default=None, help="Namespace of the addon")
@click.option("--region", default=None, help="AWS Region")
@click.pass_obj
def configure(
    settings: Settings,
    addon_name: str | None,
    addon_version: str | None,
    helm_url: str | None,
    marketplace_id: str | None,
    namespace: str | None,
    region: str | None,
) -> None:
    """Create or edit the configuration of an addon.

    Without flags an interactive session asks whether to edit an existing
    addon or create a new one. With flags, all six must be given and valid;
    nothing is saved otherwise.
    """
    store = _load_store(settings)
    flags = {
        "--addon_name": addon_name,
        "--addon_version": addon_version,
        "--helm_url": helm_url,
        "--marketplace_id": marketplace_id,
        "--namespace": namespace,
        "--region": region,
    }

    if all(value is None for value in flags.values()):
        _configure_interactive(store)
        return

    problems = [f"{flag} is required" for flag, value in flags.items() if not value]
    for kind, value in (("url", helm_url), ("namespace", namespace), ("region", region)):
        if value and not is_valid_field(kind, value):
            problems.append(f"{value!r} {_FIELD_HINTS[kind]}")
    if problems:
        raise ValidationFailed("; ".join(problems))

    try:
        key = derive_key(addon_name, addon_version)
    except ConfigurationError as e:
        raise ValidationFailed(str(e))

    store.upsert(
        key,
        AddonRecord(helm_url=helm_url, account_id=marketplace_id, namespace=namespace, region=region),
    )
    _persist(store)
    click.echo(f"Saved {key} to {store.path}")


def _prompt_record(defaults: AddonRecord | None = None) -> AddonRecord:
    verb = "Change the" if defaults else "What is the"
    return AddonRecord(
        helm_url=click.prompt(
            f"{verb} Helm URL?",
            default=defaults.helm_url if defaults else None,
            value_proc=_field_checker("url"),
        ),
        account_id=click.prompt(
            f"{verb} Marketplace AWS Account ID?",
            default=defaults.account_id if defaults else None,
        ),
        namespace=click.prompt(
            f"{verb} Namespace?",
            default=defaults.namespace if defaults else None,
            value_proc=_field_checker("namespace"),
        ),
        region=click.prompt(
            f"{verb} AWS Region?",
            default=defaults.region if defaults else None,
            value_proc=_field_checker("region"),
        ),
    )


def _prompt_key(name_default: str | None = None, version_default: str | None = None) -> str:
    verb = "Change the" if name_default else "What is the"
    while True:
        name = click.prompt(f"{verb} AddOn Name?", default=name_default)
        version = click.prompt(f"{verb} AddOn Version?", default=version_default)
        try:
            return derive_key(name, version)
        except ConfigurationError as e:
            click.echo(f"Error: {e}", err=True)


def _configure_interactive(store: ConfigStore) -> None:
    addons = store.list()
    if addons and click.confirm("Do you want to edit an existing AddOn?", default=False):
        keys = [derive_key(identity.name, identity.version) for identity, _ in addons]
        old_key = click.prompt(
            "Which addon would you like to change the configuration for?",
            type=click.Choice(keys),
            show_choices=True,
        )
        identity, current = next((i, r) for i, r in addons if derive_key(i.name, i.version) == old_key)

        new_key = _prompt_key(identity.name, identity.version)
        record = _prompt_record(current)
        for warning in store.rename(old_key, new_key, record):
            click.echo(f"Warning: {warning}", err=True)
        _persist(store)
        click.echo(f"Saved {new_key} to {store.path}")
        return

    key = _prompt_key()
    store.upsert(key, _prompt_record())
    _persist(store)
    click.echo(f"Saved {key} to {store.path}")


@cli.command("list")
@click.pass_obj
def list_addons(settings: Settings) -> None:
    """List configured addons."""
    store = _load_store(settings)
    addons = store.list()
    if not addons:
        click.echo("No addons configured.")
        return
    for identity, record in addons:
        state = "validated" if record.validated else "not validated"
        click.echo(f"{identity.name}@{identity.version}  {record.region}  {record.namespace}  {record.helm_url}  ({state})")


@cli.command()
@click.option("--addon_name", "addon_name", required=True, help="Name of the addon")
@click.option("--addon_version", "addon_version", required=True, help="Version of the addon")
@click.option("--region", default=None, help="AWS Region of the secret (default: the addon's region)")
@click.option("--owner", default=None, help="Owner of the marketplace repository")
@click.option("--repo", default=None, help="Name of the marketplace repository")
@click.option("--base", "base_branch", default=None, help="Branch to open the pull request against")
@click.option("--secret-name", default=None, help="Secret holding the GitHub access token")
@click.pass_obj
def submit(
    settings: Settings,
    addon_name: str,
    addon_version: str,
    region: str | None,
    owner: str | None,
    repo: str | None,
    base_branch: str | None,
    secret_name: str | None,
) -> None:
    """Open a pull request adding a packaged addon to the marketplace repository.

    The artifact must already be unpacked at unzipped-<addon>/<addon>.tgz
    under the staging directory.
    """
    store = _load_store(settings)
    try:
        record = store.get(derive_key(addon_name, addon_version))
    except ConfigurationError as e:
        raise ValidationFailed(str(e))

    region = region or record.region
    if not is_valid_field("region", region):
        raise ValidationFailed(f"{region!r} {_FIELD_HINTS['region']}")

    clone_url = settings.repo_url
    if clone_url and (owner or repo):
        click.echo(f"Ignoring configured repo_url {clone_url}: --owner/--repo select the repository", err=True)
        clone_url = None

    target = ReleaseTarget(
        owner=owner or settings.github_owner,
        repo=repo or settings.github_repo,
        base_branch=base_branch or settings.base_branch,
        secret_name=secret_name or settings.secret_name,
        clone_url=clone_url,
    )
    pipeline = ReleasePipeline(
        workspace=RepositoryWorkspace(
            settings.workspace_dir,
            target.repo,
            GitService(timeout=settings.git_timeout),
        ),
        secrets=SecretsManagerProvider(region, timeout=settings.network_timeout),
        pull_requests=PullRequestClient(settings.github_api_base_url, timeout=settings.network_timeout),
        target=target,
    )

    try:
        result = pipeline.run(ReleaseRequest(addon_name, region, settings.staging_dir))
    except PipelineError as e:
        raise ReleaseFailed(f"{e.step} failed ({e.kind}): {e.cause}")

    pr = result.pull_request
    if result.already_existed:
        where = f": {pr.html_url}" if pr else ""
        click.echo(f"Pushed {result.head_branch}; a pull request already exists{where}")
    elif pr is not None:
        click.echo(f"Opened pull request #{pr.number}: {pr.html_url}")
