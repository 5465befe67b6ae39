import click
from click.shell_completion import CompletionItem

from creator_passport.constants import DEFAULT_NETWORKS


class PositiveFloat(click.ParamType):
    name = "seconds"

    def convert(self, value, param, ctx):
        try:
            fvalue = float(value)
        except (TypeError, ValueError):
            self.fail(f"{value} is not a valid number", param, ctx)
        if fvalue <= 0:
            self.fail(f"{value} must be greater than zero", param, ctx)
        return fvalue


class NetworkName(click.ParamType):
    """Any network name; the built-in ones are offered for shell completion."""

    name = "network"

    def convert(self, value, param, ctx):
        value = str(value).strip()
        if not value:
            self.fail("Network name cannot be empty", param, ctx)
        return value

    def shell_complete(self, ctx, param, incomplete):
        return [
            CompletionItem(name) for name in sorted(DEFAULT_NETWORKS) if name.startswith(incomplete)
        ]
