"""CLI entry point for the rankdrop client."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from rankdrop.chain.schemas import AIRDROP_FACTORY, USER_RANK, artifact_path, load_artifact
from rankdrop.config import load_config
from rankdrop.deploy import ContractDeployer, save_deployments
from rankdrop.errors import RankdropError
from rankdrop.runner import LifecycleRunner


def _require_key(cfg):
    """Exit with error if no private key is configured."""
    if not cfg.private_key:
        click.echo("Error: No private key configured.", err=True)
        click.echo("Set RANKDROP_PRIVATE_KEY env var or private_key in config.", err=True)
        sys.exit(1)


def _require_address(value: str, what: str, env: str):
    """Exit with error if a contract address is missing."""
    if not value:
        click.echo(f"Error: No {what} address configured.", err=True)
        click.echo(f"Set RANKDROP_{env} or run 'rankdrop deploy --save'.", err=True)
        sys.exit(1)


def _run(ctx: click.Context, body) -> None:
    """Build a runner, execute ``body(runner)``, and report client errors."""
    cfg = ctx.obj["cfg"]

    async def _main():
        runner = LifecycleRunner(cfg)
        try:
            await body(runner)
        finally:
            await runner.close()

    try:
        asyncio.run(_main())
    except RankdropError as exc:
        click.echo(f"\nFailed: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """rankdrop - drive the UserRank and Airdrop contracts."""
    ctx.ensure_object(dict)
    cfg = load_config(config_path)
    ctx.obj["cfg"] = cfg

    level = logging.DEBUG if verbose else getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show client configuration."""
    cfg = ctx.obj["cfg"]
    click.echo(f"Network:    {cfg.network} (chain id {cfg.chain_id or '?'})")
    click.echo(f"RPC URL:    {cfg.rpc_url}")
    click.echo(f"UserRank:   {cfg.user_rank_address or '(not set)'}")
    click.echo(f"Factory:    {cfg.airdrop_factory_address or '(not set)'}")
    click.echo(f"Artifacts:  {cfg.artifacts_dir}")
    click.echo(f"Timeout:    {cfg.confirmation_timeout:.0f}s")
    click.echo(f"Key:        {'***configured***' if cfg.private_key else '(not set)'}")


# ── Deployment ─────────────────────────────────────────


@cli.command()
@click.option("--save", is_flag=True, help="Write addresses to deployments.json")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def deploy(ctx: click.Context, save: bool, yes: bool) -> None:
    """Deploy UserRank and AirdropFactory from the Hardhat artifacts."""
    cfg = ctx.obj["cfg"]
    _require_key(cfg)

    paths = {name: artifact_path(cfg.artifacts_dir, name) for name in (USER_RANK, AIRDROP_FACTORY)}
    for name, p in paths.items():
        if not p.exists():
            click.echo(f"Error: {name} artifact not found at {p}", err=True)
            click.echo("Compile the contracts first (npx hardhat compile).", err=True)
            sys.exit(1)

    click.echo(f"Deploying to {cfg.network}")
    click.echo(f"  TagClass:  {cfg.deploy.tag_class_address}")
    click.echo(f"  Tag:       {cfg.deploy.tag_address}")
    click.echo(f"  PLC:       {cfg.deploy.plc_address}")
    click.echo(f"  GDS:       {cfg.deploy.gds_address}")
    if not yes:
        click.confirm("\nProceed with deployment?", abort=True)

    async def _deploy(runner: LifecycleRunner):
        deployer = ContractDeployer(runner.pipeline, cfg.deploy, cfg.user_rank)
        deployed = await deployer.deploy_all(
            load_artifact(paths[USER_RANK]), load_artifact(paths[AIRDROP_FACTORY]),
        )
        for contract in deployed:
            line = f"{contract.name} deployed to: {contract.address}"
            if contract.tag_class_id is not None:
                line += f"  UserRankTagClassId: {contract.tag_class_id}"
            click.echo(line)
        if save:
            p = save_deployments(cfg.deployments_path, cfg.network, deployed)
            click.echo(f"Saved to {p}")

    _run(ctx, _deploy)


# ── Airdrop ────────────────────────────────────────────


@cli.command("create-airdrop")
@click.pass_context
def create_airdrop(ctx: click.Context) -> None:
    """Ask the factory for a new Airdrop contract."""
    cfg = ctx.obj["cfg"]
    _require_key(cfg)
    _require_address(cfg.airdrop_factory_address, "AirdropFactory", "AIRDROP_FACTORY_ADDRESS")

    async def _create(runner: LifecycleRunner):
        instance = await runner.create_airdrop()
        click.echo(f"Airdrop created: {instance.address}")
        click.echo(f"  Tx hash:  {instance.created_at.tx_hash}")
        click.echo(f"  Block:    {instance.created_at.block_number}")

    _run(ctx, _create)


@cli.command("init-users")
@click.argument("instance")
@click.argument("addresses", nargs=-1, required=True)
@click.pass_context
def init_users(ctx: click.Context, instance: str, addresses: tuple[str, ...]) -> None:
    """Add ADDRESSES to the tag class of airdrop INSTANCE."""
    cfg = ctx.obj["cfg"]
    _require_key(cfg)

    async def _init(runner: LifecycleRunner):
        states = await runner.airdrop.init_users(instance, list(addresses))
        for state in states:
            click.echo(f"{state.address}: {state.stage.value}")

    _run(ctx, _init)


@cli.command()
@click.argument("instance")
@click.pass_context
def activate(ctx: click.Context, instance: str) -> None:
    """Activate the signer on airdrop INSTANCE."""
    cfg = ctx.obj["cfg"]
    _require_key(cfg)

    async def _activate(runner: LifecycleRunner):
        state = await runner.airdrop.activate(instance)
        click.echo(f"{state.address}: {state.stage.value}")

    _run(ctx, _activate)


@cli.command("user-status")
@click.argument("instance")
@click.argument("address", required=False)
@click.pass_context
def user_status(ctx: click.Context, instance: str, address: str | None) -> None:
    """Query isInit / isActivate for ADDRESS (default: signer) on INSTANCE."""
    cfg = ctx.obj["cfg"]
    _require_key(cfg)

    async def _status(runner: LifecycleRunner):
        state = await runner.airdrop.refresh(instance, address)
        click.echo(f"Address:      {state.address}")
        click.echo(f"Initialized:  {state.class_membership}")
        click.echo(f"Activated:    {state.activated}")
        click.echo(f"Stage:        {state.stage.value}")

    _run(ctx, _status)


# ── Rank ───────────────────────────────────────────────


@cli.command("upgrade-rank")
@click.pass_context
def upgrade_rank(ctx: click.Context) -> None:
    """Upgrade the signer's rank by one."""
    cfg = ctx.obj["cfg"]
    _require_key(cfg)
    _require_address(cfg.user_rank_address, "UserRank", "USER_RANK_ADDRESS")

    async def _upgrade(runner: LifecycleRunner):
        new_rank = await runner.rank.upgrade()
        click.echo(f"Address: {runner.signer} newRank: {new_rank}")

    _run(ctx, _upgrade)


@cli.command()
@click.argument("address", required=False)
@click.pass_context
def rank(ctx: click.Context, address: str | None) -> None:
    """Query the on-chain rank of ADDRESS (default: signer)."""
    cfg = ctx.obj["cfg"]
    _require_key(cfg)
    _require_address(cfg.user_rank_address, "UserRank", "USER_RANK_ADDRESS")

    async def _rank(runner: LifecycleRunner):
        value = await runner.rank.current_rank(address)
        click.echo(f"Address: {address or runner.signer} Rank: {value}")

    _run(ctx, _rank)


# ── Full lifecycle ─────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Upgrade rank, then create an airdrop, init and activate the signer."""
    cfg = ctx.obj["cfg"]
    _require_key(cfg)
    _require_address(cfg.airdrop_factory_address, "AirdropFactory", "AIRDROP_FACTORY_ADDRESS")

    async def _lifecycle(runner: LifecycleRunner):
        report = await runner.run()
        click.echo(f"Signer:       {report.signer}")
        if report.rank_after_upgrade is not None:
            click.echo(f"Rank:         {report.rank_after_upgrade} (queried {report.rank_queried})")
        click.echo(f"Airdrop:      {report.airdrop_address}")
        for label, state in report.snapshots:
            click.echo(
                f"  {label:<12} initialized={state.class_membership} "
                f"activated={state.activated} rank={state.rank}"
            )

    _run(ctx, _lifecycle)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
