import asyncio
import os
from urllib.parse import quote

from sqlalchemy import select

from ladder import db
from ladder.config import DEFAULT_RATING
from ladder.models import Player
from ladder.routers.auth import AVATAR_URL_TEMPLATE
from ladder.services.credentials import hash_credential

# Demo roster; every player shares SEED_PIN so they can log in locally.
DEMO_PLAYERS = [
    ("demo-alex", "Alex Ruiz"),
    ("demo-bella", "Bella Fernandez"),
    ("demo-carlos", "Carlos Mendez"),
    ("demo-diana", "Diana Soto"),
]


async def main():
    pin = os.getenv("SEED_PIN", "1234")
    await db.create_all()
    assert db.AsyncSessionLocal is not None
    async with db.AsyncSessionLocal() as s:
        existing = {x.id for x in (await s.execute(select(Player))).scalars().all()}
        for pid, name in DEMO_PLAYERS:
            if pid in existing:
                continue
            hashed = hash_credential(pin)
            s.add(
                Player(
                    id=pid,
                    name=name,
                    rating=DEFAULT_RATING,
                    wins=0,
                    losses=0,
                    avatar_url=AVATAR_URL_TEMPLATE.format(seed=quote(name)),
                    pin_hash=hashed.hash,
                    pin_salt=hashed.salt,
                )
            )
        await s.commit()

if __name__ == "__main__":
    asyncio.run(main())
