#!/usr/bin/env python
"""
Command-line maintenance tasks for the Azik API.

Usage:
    python -m azik.utils.admin_cli promote-admin user@example.com
    python -m azik.utils.admin_cli cleanup-notifications [--hours 24]
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import timedelta
from typing import List, Optional

from ..core.config import get_settings
from ..core.database import Database, build_database
from ..core.dependencies import build_services
from ..core.exceptions import AppError
from ..core.mailer import EmailSender
from ..core.push import PushSender
from ..core.scheduler import cleanup_old_notifications


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Azik API maintenance tasks")
    subparsers = parser.add_subparsers(dest="command", required=True)

    promote = subparsers.add_parser("promote-admin", help="Give an existing user the admin role")
    promote.add_argument("email", type=str, help="Email address of the user to promote")

    cleanup = subparsers.add_parser("cleanup-notifications", help="Delete old notifications")
    cleanup.add_argument("--hours", type=int, help="Retention window in hours (default from settings)")
    return parser


async def main(argv: Optional[List[str]] = None, database: Optional[Database] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # Push is never needed here
    services = build_services(
        settings,
        database or build_database(settings),
        EmailSender.from_settings(settings),
        PushSender(None),
    )

    try:
        if args.command == "promote-admin":
            user = await services.users.promote_to_admin(args.email)
            print(f"Promoted {user['email']} to admin")
        else:
            hours = args.hours or settings.notification_retention_hours
            deleted = await cleanup_old_notifications(services.notifications, timedelta(hours=hours))
            print(json.dumps({"deletedCount": deleted, "retentionHours": hours}))
    except AppError as e:
        print(f"Error: {e.detail}")
        return 1

    return 0


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
