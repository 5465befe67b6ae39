from typing import Any, Dict

import click

ZERO_ADDRESS = "0x" + "0" * 40


def _continue() -> None:
    """Asks the operator to continue; aborts the run otherwise."""
    click.confirm("Continue?", default=True, abort=True)


def _confirm_zero_address() -> None:
    click.confirm("Zero address detected in transaction arguments; continue?", abort=True)


def _confirm_transaction(description: str, named_args: Dict[str, Any]) -> None:
    """Shows the resolved arguments of a state-changing transaction and asks to go ahead."""
    if not named_args:
        click.echo(f"\n{description} with no arguments")
        _continue()
        return

    pretty_args = "\n\t".join(f"{name}={value}" for name, value in named_args.items())
    click.echo(f"\n{description} with arguments:\n\t{pretty_args}")
    contains_zero_address = any(
        isinstance(value, str) and value.lower() == ZERO_ADDRESS for value in named_args.values()
    )
    _continue()
    if contains_zero_address:
        _confirm_zero_address()
