import argparse
import asyncio
import logging
import sys

from config import settings
from config.logging_config import setup_logging
from database import DatabaseAdapter, Tier
from exceptions import ConfigError, WarTrackerError
from services import WarLogClient, WarTrackerService

logger = logging.getLogger("Main")


def build_parser():
    parser = argparse.ArgumentParser(prog="wartracker", description="Clan war history tracker")
    sub = parser.add_subparsers(dest="command", required=True)

    weekly = sub.add_parser("weekly", help="Run the full weekly update for every tracked clan")
    weekly.add_argument("--window", type=int, default=None, help="Most recent periods to ingest per clan")
    weekly.add_argument("--weeks", type=int, default=None, help="Averaging window in weeks")
    weekly.add_argument("--assign-roster", action="store_true", help="Reassign the working roster afterwards")

    reconcile = sub.add_parser("reconcile", help="Reconcile one clan's history snapshots")
    reconcile.add_argument("tag")

    ingest = sub.add_parser("ingest", help="Ingest player war history for one clan")
    ingest.add_argument("tag")
    ingest.add_argument("--periods", type=int, default=None)

    averages = sub.add_parser("averages", help="Recompute player averages for a tier")
    averages.add_argument("--tier", choices=Tier.ALL, required=True)
    averages.add_argument("--weeks", type=int, default=None)

    roster = sub.add_parser("roster", help="Assign the roster for a season/week")
    roster.add_argument("--season", type=int, required=True)
    roster.add_argument("--week", type=int, required=True)
    roster.add_argument("--capacity", type=int, default=None)

    add_clan = sub.add_parser("add-clan", help="Track a new clan and load its recent history")
    add_clan.add_argument("tag")
    add_clan.add_argument("--periods", type=int, default=None)

    in_clan = sub.add_parser("in-clan", help="Refresh in-clan flags of a roster from the API")
    in_clan.add_argument("--season", type=int, required=True)
    in_clan.add_argument("--week", type=int, required=True)

    return parser


async def run_command(args, service: WarTrackerService):
    if args.command == "weekly":
        return await service.run_weekly_update(args.window, args.weeks, assign_roster=args.assign_roster)
    if args.command == "reconcile":
        return await service.reconcile_clan_history(args.tag)
    if args.command == "ingest":
        return await service.ingest_war_history(args.tag, args.periods)
    if args.command == "averages":
        return await service.recompute_averages(args.tier, args.weeks)
    if args.command == "roster":
        return await service.assign_roster(args.season, args.week, args.capacity)
    if args.command == "add-clan":
        return await service.add_clan_with_history(args.tag, args.periods)
    if args.command == "in-clan":
        return await service.refresh_in_clan_status(args.season, args.week)
    raise ValueError(f"Unknown command: {args.command}")


async def main(args):
    db = DatabaseAdapter(settings.DATABASE_URL)
    db.init_db()
    try:
        async with WarLogClient(token=settings.require_api_token()) as client:
            service = WarTrackerService(db, client)
            result = await run_command(args, service)
    finally:
        db.close()

    if result.success:
        logger.info(result.message)
        return 0
    logger.error(result.message)
    return 1


def cli(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging()
    logger.info(f"--- WAR TRACKER: {args.command} ---")

    try:
        settings.validate_settings()
        settings.require_api_token()
        sys.exit(asyncio.run(main(args)))
    except ConfigError as e:
        logger.critical(f"Configuration error: {e}")
        sys.exit(1)
    except WarTrackerError as e:
        logger.critical(f"CRITICAL ERROR: {e}", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        sys.exit(130)


if __name__ == '__main__':
    cli()
