from __future__ import annotations

import argparse
import os
import sys

# Force /app into path for Docker compatibility
sys.path.append("/app")
sys.path.append(os.getcwd())

from app.core.security import UserRole, create_access_token


def main() -> None:
    p = argparse.ArgumentParser(description="Issue a development access token")
    p.add_argument("--user-id", required=True)
    p.add_argument("--role", choices=[r.value for r in UserRole], default=UserRole.student.value)
    p.add_argument("--name", default="")
    p.add_argument("--minutes", type=int, default=None)
    args = p.parse_args()

    print(create_access_token(user_id=args.user_id, role=args.role, name=args.name, minutes=args.minutes))


if __name__ == "__main__":
    main()
