"""
ProjectHub - Main entry point.

    python -m projecthub.main serve       # run the API
    python -m projecthub.main demo        # seed an in-memory store and print it
"""

from __future__ import annotations

import asyncio

from projecthub.config import configure_logging, get_settings, validate_environment
from projecthub.seed import DEMO_USERS, seed
from projecthub.storage import create_memory_storage, ensure_indexes


async def demo():
    """Seed a fresh store and show what is in it."""
    storage = create_memory_storage()
    await ensure_indexes(storage)
    data = await seed(storage)

    print("=" * 60)
    print("PROJECTHUB SEED DATA")
    print("=" * 60)
    print()
    print("Users:")
    for name, email, password, role in DEMO_USERS:
        print(f"  • {role.value}: {email} / {password}")
    print()
    print("Projects:")
    for project in data["projects"]:
        print(f"  • {project.name} ({len(project.team_members)} members)")
    print()
    print("Invites:")
    for invite in data["invites"]:
        print(f"  • {invite.email} ({invite.role.value}) token={invite.invite_token}")
    print("=" * 60)


def serve():
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "projecthub.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
    )


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="ProjectHub API")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("serve", help="Run the HTTP API (default)")
    sub.add_parser("demo", help="Seed an in-memory store and print the data")

    args = parser.parse_args()

    configure_logging()
    validate_environment()

    if args.command == "demo":
        asyncio.run(demo())
    else:
        serve()


if __name__ == "__main__":
    main()
