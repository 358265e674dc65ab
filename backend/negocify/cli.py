"""Management CLI for reference data and system administrators.

Usage:
    python -m negocify.cli seed-roles              # Insert "administrador" and "empleado"
    python -m negocify.cli grant-sysadmin EMAIL    # Mark a user as system administrator
    python -m negocify.cli revoke-sysadmin EMAIL   # Remove the marker row

System administrator status is never granted through the API.
"""

import sys

from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session

from negocify.auth.permissions import ROLE_ADMIN, ROLE_EMPLOYEE
from negocify.config import settings
from negocify.models.user import SystemAdministrator, User
from negocify.models.warehouse import Role


def get_session() -> Session:
    engine = create_engine(settings.database_url_sync)
    return Session(engine)


def _find_user(session: Session, email: str) -> User | None:
    return session.execute(
        select(User).where(User.email == email)
    ).scalar_one_or_none()


def seed_roles():
    with get_session() as session:
        existing = set(session.execute(select(Role.name)).scalars())
        for name in (ROLE_ADMIN, ROLE_EMPLOYEE):
            if name in existing:
                print(f"  {name}: already present")
                continue
            session.add(Role(name=name))
            print(f"  {name}: created")
        session.commit()


def grant_sysadmin(email: str) -> int:
    with get_session() as session:
        user = _find_user(session, email)
        if user is None:
            print(f"No user with email {email}")
            return 1

        marker = session.execute(
            select(SystemAdministrator).where(SystemAdministrator.user_id == user.id)
        ).scalar_one_or_none()
        if marker is not None:
            print(f"  {email} is already a system administrator")
            return 0

        session.add(SystemAdministrator(user_id=user.id))
        session.commit()
        print(f"  {email} is now a system administrator")
        return 0


def revoke_sysadmin(email: str) -> int:
    with get_session() as session:
        user = _find_user(session, email)
        if user is None:
            print(f"No user with email {email}")
            return 1

        result = session.execute(
            delete(SystemAdministrator).where(SystemAdministrator.user_id == user.id)
        )
        session.commit()
        if result.rowcount:
            print(f"  {email} is no longer a system administrator")
        else:
            print(f"  {email} was not a system administrator")
        return 0


USAGE = "Usage: python -m negocify.cli [seed-roles|grant-sysadmin EMAIL|revoke-sysadmin EMAIL]"


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "seed-roles":
        seed_roles()
    elif cmd == "grant-sysadmin" and len(sys.argv) == 3:
        sys.exit(grant_sysadmin(sys.argv[2]))
    elif cmd == "revoke-sysadmin" and len(sys.argv) == 3:
        sys.exit(revoke_sysadmin(sys.argv[2]))
    else:
        print(USAGE)
        sys.exit(2)
