"""miniprobe command line interface.

Examples:
  # Create the database schema
  miniprobe init-db

  # Register a probe client and print its token (shown once)
  miniprobe admin client add web-01

  # Run the HTTP server / the retention reaper worker
  miniprobe serve --port 8000
  miniprobe worker

  # Sample this host into the store every 5 seconds
  miniprobe collect --token <TOKEN>
"""
import argparse
import asyncio
import logging
import sys
import time
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import async_sessionmaker

from miniprobe.config import get_settings
from miniprobe.database import AsyncSessionLocal, create_tables
from miniprobe.exceptions import MiniprobeError, NotFoundError, StorageUnavailableError
from miniprobe.services.identity_service import IdentityService
from miniprobe.services.liveness_service import LivenessService
from miniprobe.services.sample_service import SampleService
from miniprobe.services.session_service import SessionService


logger = logging.getLogger(__name__)


# ============================================================================
# Client administration
# ============================================================================

async def list_clients(session_factory: async_sessionmaker = AsyncSessionLocal):
    async with session_factory() as session:
        clients = await IdentityService(session).list_clients()

    if not clients:
        print("No clients registered.")
    for client in clients:
        created = client.created_at.strftime("%Y-%m-%d %H:%M:%S") if client.created_at else "-"
        print(f"[{client.id}] {client.name} (created at: {created})")


async def add_client(name: str, session_factory: async_sessionmaker = AsyncSessionLocal) -> str:
    settings = get_settings()
    async with session_factory() as session:
        service = IdentityService(session, token_length=settings.CLIENT_TOKEN_LENGTH)
        client, token = await service.create_client(name)

    print(f"✅ Client '{client.name}' [{client.id}] added successfully.")
    print(f"   Token: {token}")
    print("   The token is not stored and cannot be shown again.")
    return token


async def rename_client(client_id: int, name: str, session_factory: async_sessionmaker = AsyncSessionLocal):
    async with session_factory() as session:
        await IdentityService(session).rename_client(client_id, name)
    print(f"✅ Client with ID {client_id} renamed successfully.")


async def remove_client(client_id: int, session_factory: async_sessionmaker = AsyncSessionLocal):
    async with session_factory() as session:
        await IdentityService(session).delete_client(client_id)
    print(f"✅ Client with ID {client_id} removed successfully. Its sessions are kept.")


# ============================================================================
# Session administration
# ============================================================================

def _format_session(probe_session) -> str:
    last_active = datetime.fromtimestamp(probe_session.last_active).strftime("%Y-%m-%d %H:%M:%S")
    client = probe_session.client_id if probe_session.client_id is not None else "-"
    return (
        f"[{probe_session.id}] client={client} host={probe_session.host_name or '-'} "
        f"arch={probe_session.cpu_arch} last_active={last_active}"
    )


async def list_sessions(
    client_id: Optional[int] = None,
    active_only: bool = False,
    session_factory: async_sessionmaker = AsyncSessionLocal,
):
    settings = get_settings()
    async with session_factory() as session:
        if active_only:
            service = LivenessService(session, window_seconds=settings.LIVENESS_WINDOW_SECONDS)
            sessions = await service.list_active_sessions()
            if client_id is not None:
                sessions = [s for s in sessions if s.client_id == client_id]
        else:
            sessions = await SessionService(session).list_sessions(client_id)

    if not sessions:
        print("No sessions found.")
    for probe_session in sessions:
        print(_format_session(probe_session))


async def remove_session(session_id: int, session_factory: async_sessionmaker = AsyncSessionLocal):
    async with session_factory() as session:
        await SessionService(session).delete_session(session_id)
    print(f"✅ Session with ID {session_id} and its samples removed successfully.")


# ============================================================================
# Probe
# ============================================================================

async def collect(
    token: str,
    interval: Optional[int] = None,
    count: Optional[int] = None,
    interfaces: Optional[Sequence[str]] = None,
    collector=None,
    session_factory: async_sessionmaker = AsyncSessionLocal,
) -> int:
    """
    Open a session for this host and write samples until stopped.

    Args:
        token: Client token
        interval: Seconds between samples (defaults to SCRAPE_INTERVAL_SECONDS)
        count: Number of samples to write, or None to run forever
        interfaces: Network interfaces to report
        collector: Object with a collect() method returning a SampleCreate

    Returns:
        Number of samples written
    """
    from miniprobe.collector import HostCollector, collect_host_metadata

    settings = get_settings()
    if interval is None:
        interval = settings.SCRAPE_INTERVAL_SECONDS
    if collector is None:
        collector = HostCollector(interfaces)

    async with session_factory() as session:
        identity = IdentityService(session, token_length=settings.CLIENT_TOKEN_LENGTH)
        client_id = await identity.resolve(token)
        probe_session = await SessionService(session).open_session(client_id, collect_host_metadata())
    session_id = probe_session.id
    logger.info("Opened session %d for client %d, sampling every %ds", session_id, client_id, interval)

    written = 0
    while count is None or written < count:
        started = time.monotonic()
        sample = collector.collect()

        try:
            async with session_factory() as session:
                await SampleService(session).write_sample(
                    session_id,
                    sample.sample_time,
                    cpu=sample.cpu,
                    memory=sample.memory,
                    network=sample.network,
                )
            written += 1
        except StorageUnavailableError as e:
            # Dropped; the next tick tries again
            logger.warning("Sample dropped, storage unavailable: %s", e)
        except NotFoundError:
            logger.warning("Session %d was removed, stopping", session_id)
            break

        if count is not None and written >= count:
            break
        await asyncio.sleep(max(0.0, interval - (time.monotonic() - started)))

    return written


# ============================================================================
# Server and worker
# ============================================================================

def serve(host: str, port: int):
    import uvicorn

    uvicorn.run("miniprobe.main:app", host=host, port=port)


async def run_worker():
    """Start the scheduler and keep the process running."""
    from miniprobe.tasks.scheduler import start_scheduler, stop_scheduler

    logger.info("Starting background worker scheduler...")
    await create_tables()
    await start_scheduler()

    try:
        logger.info("Scheduler is running. Press Ctrl+C to stop.")
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        logger.info("Received shutdown signal")
    finally:
        await stop_scheduler()


async def init_db():
    print("📦 Creating database tables...")
    await create_tables()
    print("✅ Tables created successfully")


# ============================================================================
# Argument parsing
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="miniprobe",
        description="miniprobe session sample store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ else None,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create database tables")

    serve_parser = commands.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument('--host', default=settings.HOST, help=f'Bind address (default: {settings.HOST})')
    serve_parser.add_argument('--port', type=int, default=settings.PORT, help=f'Port (default: {settings.PORT})')

    commands.add_parser("worker", help="Run the retention reaper scheduler")

    collect_parser = commands.add_parser("collect", help="Sample this host into the store")
    collect_parser.add_argument('--token', required=True, help='Client token')
    collect_parser.add_argument('--interval', type=int, default=None, help='Seconds between samples')
    collect_parser.add_argument('--count', type=int, default=None, help='Stop after this many samples')
    collect_parser.add_argument(
        '--interface', action='append', dest='interfaces', default=None,
        help='Network interface to report (repeatable, default: all but loopback)'
    )

    admin_parser = commands.add_parser("admin", help="Administrative commands")
    admin_commands = admin_parser.add_subparsers(dest="admin_command", required=True)

    client_parser = admin_commands.add_parser("client", help="Client related commands")
    client_commands = client_parser.add_subparsers(dest="client_command", required=True)
    client_commands.add_parser("list", aliases=["ls"], help="List all clients")
    add_parser = client_commands.add_parser("add", aliases=["a"], help="Add a new client")
    add_parser.add_argument("name")
    rm_parser = client_commands.add_parser("remove", aliases=["rm"], help="Remove a client")
    rm_parser.add_argument("id", type=int)
    rename_parser = client_commands.add_parser("rename", help="Rename a client")
    rename_parser.add_argument("id", type=int)
    rename_parser.add_argument("name")

    session_parser = admin_commands.add_parser("session", help="Session related commands")
    session_commands = session_parser.add_subparsers(dest="session_command", required=True)
    session_list = session_commands.add_parser("list", aliases=["ls"], help="List sessions")
    session_list.add_argument('--client-id', type=int, default=None)
    session_list.add_argument('--active', action='store_true', help='Only sessions inside the liveness window')
    session_rm = session_commands.add_parser("remove", aliases=["rm"], help="Remove a session and its samples")
    session_rm.add_argument("id", type=int)

    return parser


def _admin(args):
    if args.admin_command == "client":
        if args.client_command in ("list", "ls"):
            return list_clients()
        if args.client_command in ("add", "a"):
            return add_client(args.name)
        if args.client_command in ("remove", "rm"):
            return remove_client(args.id)
        return rename_client(args.id, args.name)

    if args.session_command in ("list", "ls"):
        return list_sessions(args.client_id, args.active)
    return remove_session(args.id)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the miniprobe console script."""
    from miniprobe.main import configure_logging

    args = build_parser().parse_args(argv)
    configure_logging()

    if args.command == "serve":
        serve(args.host, args.port)
        return 0

    try:
        if args.command == "init-db":
            asyncio.run(init_db())
        elif args.command == "worker":
            asyncio.run(run_worker())
        elif args.command == "collect":
            written = asyncio.run(collect(args.token, args.interval, args.count, args.interfaces))
            print(f"✅ {written} samples written")
        else:
            asyncio.run(_admin(args))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except (MiniprobeError, ValueError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
