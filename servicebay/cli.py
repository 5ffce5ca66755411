"""
Administrative commands.

    python -m servicebay.cli create-operator --email desk@example.com --name "Front Desk" --password secret
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from servicebay.auth import hash_password
from servicebay.config import get_settings
from servicebay.database import init_db, make_engine, make_session_factory
from servicebay.models.user import User

logger = logging.getLogger("servicebay.cli")


async def create_operator(
    session_factory: async_sessionmaker[AsyncSession],
    email: str,
    name: Optional[str] = None,
    password: Optional[str] = None,
) -> User:
    """Create an operator account, or promote the existing user with ``email``."""
    async with session_factory() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            if not (name and password):
                raise ValueError("--name and --password are required for a new account")
            user = User(name=name, email=email, hashed_password=hash_password(password), is_admin=True)
            session.add(user)
            logger.info("Creating operator %s", email)
        else:
            user.is_admin = True
            if password:
                user.hashed_password = hash_password(password)
            logger.info("Promoting %s to operator", email)
        await session.commit()
        await session.refresh(user)
        return user


async def _create_operator_command(args: argparse.Namespace) -> int:
    engine = make_engine(get_settings().database_url)
    try:
        await init_db(engine)
        user = await create_operator(make_session_factory(engine), args.email, args.name, args.password)
    finally:
        await engine.dispose()
    print(f"Operator ready: {user.email} (id {user.id})")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="servicebay")
    commands = parser.add_subparsers(dest="command", required=True)

    operator = commands.add_parser("create-operator", help="create or promote an operator account")
    operator.add_argument("--email", required=True)
    operator.add_argument("--name")
    operator.add_argument("--password")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        return asyncio.run(_create_operator_command(args))
    except ValueError as e:
        parser.error(str(e))


if __name__ == "__main__":
    sys.exit(main())
