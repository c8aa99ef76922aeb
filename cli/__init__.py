import click

from cli.inspect_vote import inspect_vote
from cli.interactive import interactive


@click.group()
@click.version_option(version="1.0.0")
@click.pass_context
def cli(ctx):
    pass


# One-shot report(s) for a vote id or "all"
cli.add_command(inspect_vote, "inspect_vote")

# Prompt loop
cli.add_command(interactive, "interactive")
