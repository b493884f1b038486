"""Create the calls schema and optionally seed a sample record for development."""
from __future__ import annotations

import argparse
import asyncio

from sqlalchemy import select

from app.db.session import SessionLocal, create_schema, engine
from app.models.call import Call, SyncState

SAMPLE_CALL = {
	"call_id": "sample-call-0001",
	"customer_name": "Ada Lovelace",
	"company_name": "Analytical Engines Ltd",
	"phone_number": "+15555550100",
	"transcript": "assistant: Hello Ada, is this a good time to talk?\nuser: Yes, go ahead.",
	"recording_url": None,
	"call_status": "completed",
	"duration": 42.0,
	"sync_state": SyncState.COMPLETED,
}


async def seed_sample_call() -> None:
	"""Insert the sample call unless it already exists."""

	async with SessionLocal() as session:
		async with session.begin():
			result = await session.execute(select(Call).where(Call.call_id == SAMPLE_CALL["call_id"]))
			if result.scalar_one_or_none() is None:
				session.add(Call(**SAMPLE_CALL))


async def main(seed: bool) -> None:
	await create_schema()
	if seed:
		await seed_sample_call()
	await engine.dispose()
	print("Database schema ensured" + (" and sample call seeded." if seed else "."))


if __name__ == "__main__":
	parser = argparse.ArgumentParser(description=__doc__)
	parser.add_argument("--seed", action="store_true", help="insert a sample completed call")
	args = parser.parse_args()
	asyncio.run(main(args.seed))
