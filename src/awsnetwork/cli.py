"""
Command line tools for the deployed network stacks.

Shows the outputs CloudFormation reports for the VPC and EC2 stacks, and the
export names the EC2 stack imports from the VPC stack.
"""

import logging
from typing import List, Optional

import typer
from botocore.exceptions import BotoCoreError, ClientError
from rich import print
from rich.logging import RichHandler

from ._stack_outputs import (
    StackNotFoundError,
    outputs_table,
    read_stack_outputs,
    read_vpc_exports,
)
from .exports import EXPORT_KEYS, export_name
from .schema import NetworkConfig

app = typer.Typer(help="Inspect the AWS network stacks.", no_args_is_help=True)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )


def _load_config() -> NetworkConfig:
    try:
        return NetworkConfig.from_settings()
    except ValueError as e:
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(code=1)


@app.command("outputs")
def outputs(
    stack_names: Optional[List[str]] = typer.Argument(
        None, help="Stacks to show (default: the configured VPC and EC2 stacks)"
    ),
    wait: bool = typer.Option(
        False, "--wait", "-w", help="Wait for in-progress stacks to settle"
    ),
) -> None:
    """Show the outputs of deployed stacks."""
    config = _load_config()
    names = stack_names or [config.vpc_stack_name, config.ec2_stack_name]

    for name in names:
        try:
            stack_outputs = read_stack_outputs(name, config.region, wait=wait)
        except StackNotFoundError:
            typer.echo(f"Error: stack {name} does not exist in {config.region}", err=True)
            raise typer.Exit(code=1)
        except (RuntimeError, ClientError, BotoCoreError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)

        if stack_outputs:
            print(outputs_table(name, stack_outputs))
        else:
            print(f"\nStack {name} has no outputs.\n")


@app.command("exports")
def exports(
    resolve: bool = typer.Option(
        False, "--resolve", "-r", help="Look up the deployed values"
    ),
) -> None:
    """Show the values the VPC stack exports for the EC2 stack."""
    config = _load_config()

    for key in EXPORT_KEYS:
        typer.echo(export_name(config.vpc_stack_name, key))

    if not resolve:
        return

    try:
        vpc_exports = read_vpc_exports(config.vpc_stack_name, config.region)
    except StackNotFoundError:
        typer.echo(
            f"Error: stack {config.vpc_stack_name} does not exist in {config.region}",
            err=True,
        )
        raise typer.Exit(code=1)
    except KeyError as e:
        typer.echo(f"Error: missing {e} for stack {config.vpc_stack_name}", err=True)
        raise typer.Exit(code=1)
    except (RuntimeError, ClientError, BotoCoreError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"vpc: {vpc_exports.vpc_id}")
    for label, ids in (
        ("public subnets", vpc_exports.public_subnet_ids),
        ("private subnets", vpc_exports.private_subnet_ids),
        ("private route tables", vpc_exports.private_route_table_ids),
    ):
        typer.echo(f"{label}: {', '.join(ids) or '-'}")


if __name__ == "__main__":
    app()
