"""
mentaro.cli

Operator command for bootstrapping the first admin account.

Responsibilities:
- Parse admin details from the command line.
- Create the admin through `AccountService` against the configured database.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass

from mentaro.auth.passwords import WEAK_PASSWORD, is_strong
from mentaro.db.init_db import init_db
from mentaro.db.session import create_engine, create_sessionmaker
from mentaro.errors import MentaroError
from mentaro.observability.logging import configure_logging, get_logger
from mentaro.services.account_service import AccountService
from mentaro.settings import Settings, get_settings

log = get_logger(__name__)


async def create_admin(
    *, settings: Settings, first_name: str, last_name: str, email: str, password: str
) -> str:
    engine = create_engine(settings)
    try:
        if settings.env in ("dev", "test"):
            await init_db(engine)
        async with create_sessionmaker(engine)() as session:
            admin = await AccountService(session=session, settings=settings).create_admin(
                first_name=first_name, last_name=last_name, email=email, password=password
            )
            await session.commit()
            return str(admin.id)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="mentaro-create-admin", description="Create a Mentaro admin account."
    )
    parser.add_argument("--email", required=True)
    parser.add_argument("--first-name", default="Admin")
    parser.add_argument("--last-name", default="User")
    parser.add_argument("--password", help="prompted for when omitted")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(
        service_name=settings.service_name, level=settings.log_level, json_logs=settings.log_json
    )
    password = args.password or getpass.getpass("Password: ")
    if not is_strong(password):
        log.error("create_admin_failed", email=args.email, error=WEAK_PASSWORD)
        return 1

    try:
        admin_id = asyncio.run(
            create_admin(
                settings=settings,
                first_name=args.first_name,
                last_name=args.last_name,
                email=args.email,
                password=password,
            )
        )
    except MentaroError as e:
        log.error("create_admin_failed", email=args.email, error=e.message)
        return 1
    log.info("admin_created", admin_id=admin_id, email=args.email)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
