"""Addon Release - submit packaged Helm addons to a marketplace repository."""

from addon_release.cli import cli


def main() -> None:
    cli()
