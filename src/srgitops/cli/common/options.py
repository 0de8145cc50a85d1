"""Common CLI options for the CLI."""

import typer

FilesArg = typer.Argument(
    ...,
    exists=True,
    dir_okay=False,
    readable=True,
    help="State file(s) (YAML). Several files are merged in order.",
)

RegistryOpt = typer.Option(
    None,
    "--registry",
    "-r",
    help="Schema registry URL (default: $SCHEMA_REGISTRY_URL)",
)

UserInfoOpt = typer.Option(
    None,
    "--user-info",
    help="Basic auth credentials as user:password "
    "(default: $SCHEMA_REGISTRY_BASIC_AUTH_USER_INFO)",
)

BearerTokenOpt = typer.Option(
    None,
    "--bearer-token",
    help="Bearer token (default: $SCHEMA_REGISTRY_BEARER_TOKEN)",
)

EnableDeletesOpt = typer.Option(
    False,
    "--enable-deletes",
    "-d",
    help="Delete subjects that exist in the registry but not in the state files",
)

ConfirmOpt = typer.Option(
    True,
    "--confirm/--no-confirm",
    help="Ask for confirmation before applying changes",
)

DryRunOpt = typer.Option(
    False,
    "--dry-run",
    help="Show what would be applied, but don't change anything",
)

OutputOpt = typer.Option(
    None,
    "--output",
    "-o",
    dir_okay=False,
    help="Write to this file instead of stdout",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Show debug logging",
)

QuietOpt = typer.Option(
    False,
    "--quiet",
    "-q",
    help="Only log errors",
)
