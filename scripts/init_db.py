"""Creates the users collection and optionally seeds a user with an empty cart.

    python scripts/init_db.py            # just make sure the store is reachable
    python scripts/init_db.py user_123   # seed user_123 (no-op if it already exists)
"""
import sys

from app.config import settings
from app.database import build_store


def main(argv):
    store = build_store(settings).connect()
    try:
        for user_id in argv:
            if store.find_by_id("users", user_id) is not None:
                print(f"{user_id} already exists")
                continue
            store.insert("users", {"id": user_id, "name": "", "email": "", "imageUrl": "", "cartItem": {}})
            print(f"Created {user_id}")
    finally:
        store.close()


if __name__ == "__main__":
    main(sys.argv[1:])
