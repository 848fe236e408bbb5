import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple

import click
from pydantic import ValidationError

from .adapters.signers import LocalAccountSigner
from .config import Settings, get_settings
from .exceptions import VotingError
from .logging_config import setup_structured_logging
from .proposals import format_time_remaining
from .service import VotingClient
from .types import ProposalOutcome, TimeUnit

logger = logging.getLogger(__name__)

OUTCOME_LABELS = {
    ProposalOutcome.NO_VOTES: "No Votes",
    ProposalOutcome.PASSED: "Passed",
    ProposalOutcome.FAILED: "Failed",
    ProposalOutcome.TIED: "Tied",
}


# --- Helper Functions ---
def client_from_environment() -> Tuple[VotingClient, str]:
    """Build a client for the account in ZVOTE_PRIVATE_KEY"""
    settings = get_settings()
    if not settings.private_key:
        raise click.UsageError("ZVOTE_PRIVATE_KEY is not set.")
    signer = LocalAccountSigner.from_key(settings.private_key)
    client = VotingClient.from_settings(settings, signer, account=signer.account)
    return client, signer.address


def logging_settings() -> Tuple[str, bool]:
    """Log level and format from ZVOTE_* settings, or their defaults when settings are incomplete"""
    try:
        settings = get_settings()
    except ValidationError:
        fields = Settings.model_fields
        return fields["log_level"].default, fields["json_logs"].default
    return settings.log_level, settings.json_logs


def run_command(ctx: click.Context, operation: Callable[[VotingClient, str], Awaitable]):
    """Run operation against a fresh client and map client errors to exit status 1"""
    async def runner():
        client, address = ctx.obj["client_factory"]()
        try:
            return await operation(client, address)
        finally:
            await client.close()

    try:
        return asyncio.run(runner())
    except VotingError as e:
        click.echo(f"Error [{e.error_code}]: {e}", err=True)
        ctx.exit(1)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


# --- CLI Commands ---
@click.group()
@click.option("--log-level", default=None,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Overrides ZVOTE_LOG_LEVEL (default WARNING).")
@click.option("--log-format", default=None, type=click.Choice(["json", "plain"]),
              help="Overrides ZVOTE_JSON_LOGS (default plain).")
@click.pass_context
def cli(ctx, log_level: Optional[str], log_format: Optional[str]):
    """Encrypted yes/no voting on the zVote contract."""
    configured_level, configured_json = logging_settings()
    json_logs = configured_json if log_format is None else log_format == "json"
    setup_structured_logging(log_level or configured_level, json_logs)
    ctx.ensure_object(dict)
    ctx.obj.setdefault("client_factory", client_from_environment)


@cli.command("proposals")
@click.option("--closed", is_flag=True, help="List ended proposals instead of active ones.")
@click.option("--page", default=1, show_default=True, help="Page number.")
@click.pass_context
def list_proposals(ctx, closed: bool, page: int):
    """Lists active or closed proposals, newest first."""
    async def operation(client: VotingClient, address: str):
        listing = await client.list_proposals(show_closed=closed, page=page)
        proposals = await asyncio.gather(
            *(client.get_proposal(i) for i in listing.items), return_exceptions=True
        )
        return listing, proposals

    listing, proposals = run_command(ctx, operation)
    if not listing.items:
        click.echo("No closed proposals." if closed else "No active proposals.")
        return

    for proposal_id, proposal in zip(listing.items, proposals):
        if isinstance(proposal, Exception):
            click.echo(f"#{proposal_id}  (unavailable)")
            continue
        click.echo(f"#{proposal.id}  {proposal.title}  [{format_time_remaining(proposal.seconds_remaining())}]")
    click.echo(f"Page {listing.page_number} of {listing.total_pages}")


@cli.command("show")
@click.argument("proposal_id", type=int)
@click.pass_context
def show_proposal(ctx, proposal_id: int):
    """Shows a proposal's details."""
    async def operation(client: VotingClient, address: str):
        return await client.get_proposal(proposal_id), await client.cached_results(proposal_id)

    proposal, results = run_command(ctx, operation)
    click.echo(f"#{proposal.id}  {proposal.title}")
    click.echo(proposal.description)
    click.echo(f"Creator: {proposal.creator}")
    click.echo(f"Status: {'Active' if proposal.is_active else 'Ended'}")
    click.echo(f"Time remaining: {format_time_remaining(proposal.seconds_remaining())}")
    if results is not None:
        click.echo(f"Results: {results.yes_votes} yes / {results.no_votes} no "
                   f"({OUTCOME_LABELS[results.outcome]})")


@cli.command("create")
@click.argument("title")
@click.argument("description")
@click.option("--duration", default=7.0, show_default=True, help="How long voting stays open.")
@click.option("--unit", default="days", show_default=True,
              type=click.Choice([u.value for u in TimeUnit]))
@click.pass_context
def create_proposal(ctx, title: str, description: str, duration: float, unit: str):
    """Creates a new proposal."""
    async def operation(client: VotingClient, address: str):
        return await client.create_proposal(title, description, duration, TimeUnit(unit), address)

    receipt = run_command(ctx, operation)
    click.echo(f"Proposal created in transaction {receipt.transaction_hash}")


@cli.command("vote")
@click.argument("proposal_id", type=int)
@click.argument("choice", type=click.Choice(["yes", "no"], case_sensitive=False))
@click.pass_context
def cast_vote(ctx, proposal_id: int, choice: str):
    """Casts an encrypted vote."""
    async def operation(client: VotingClient, address: str):
        return await client.cast_vote(proposal_id, address, choice)

    receipt = run_command(ctx, operation)
    click.echo(f"Vote on proposal #{proposal_id} confirmed in transaction "
               f"{receipt.transaction.transaction_hash}")


@cli.command("status")
@click.argument("proposal_id", type=int)
@click.pass_context
def vote_status(ctx, proposal_id: int):
    """Shows whether this account has voted on a proposal."""
    async def operation(client: VotingClient, address: str):
        return await client.get_vote_status(proposal_id, address)

    status = run_command(ctx, operation)
    if not status.has_voted:
        click.echo(f"You have not voted on proposal #{proposal_id}.")
    elif status.choice is None:
        click.echo(f"You have voted on proposal #{proposal_id}.")
    else:
        click.echo(f"You have voted on proposal #{proposal_id} ({status.choice.value}).")


@cli.command("my-votes")
@click.pass_context
def my_votes(ctx):
    """Lists the proposals this account has voted on."""
    async def operation(client: VotingClient, address: str):
        return await client.my_votes(address)

    votes = run_command(ctx, operation)
    if not votes:
        click.echo("No votes found.")
        return
    for vote in votes:
        click.echo(f"#{vote.proposal_id}: {vote.label}")


@cli.command("decrypt")
@click.argument("proposal_id", type=int)
@click.option("--refresh", is_flag=True, help="Decrypt again even if results are cached.")
@click.pass_context
def decrypt_results(ctx, proposal_id: int, refresh: bool):
    """Decrypts the results of a closed proposal you created."""
    async def operation(client: VotingClient, address: str):
        return await client.decrypt_results(proposal_id, address, refresh=refresh)

    tally = run_command(ctx, operation)
    click.echo(f"Yes: {tally.yes_votes}")
    click.echo(f"No: {tally.no_votes}")
    click.echo(f"Outcome: {OUTCOME_LABELS[tally.outcome]}")


if __name__ == '__main__':
    cli()
