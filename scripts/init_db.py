"""Script to initialize the database.

Creates every table directly from app.models (handy for SQLite and local
development; production databases go through scripts/migrate.py). With
``--seed`` a demo clinic is added, with one account per role.
"""

import asyncio
import sys
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import insert

from app.core.security import get_password_hash
from app.database import AsyncSessionLocal, engine
from app.models import appointments, clinics, doctors, metadata, patients, services, users

DEMO_PASSWORD = "demo1234"


async def create_tables() -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    print("✓ Database initialized successfully!")


async def seed_demo_clinic() -> None:
    """Insert a demo clinic with an admin, receptionist, doctor and patient."""
    password_hash = get_password_hash(DEMO_PASSWORD)

    async with AsyncSessionLocal() as session:
        clinic_id = (
            await session.execute(
                insert(clinics)
                .values(name="Demo Clinic", address="1 Main Street", phone="555-0100")
                .returning(clinics.c.id)
            )
        ).scalar_one()

        user_ids = {}
        for role in ("ADMIN", "RECEPTIONIST", "DOCTOR", "PATIENT"):
            user_ids[role] = (
                await session.execute(
                    insert(users)
                    .values(
                        email=f"{role.lower()}@demo-clinic.com",
                        password_hash=password_hash,
                        role=role,
                        clinic_id=clinic_id,
                    )
                    .returning(users.c.id)
                )
            ).scalar_one()

        doctor_id = (
            await session.execute(
                insert(doctors)
                .values(user_id=user_ids["DOCTOR"], specialization="General Practice")
                .returning(doctors.c.id)
            )
        ).scalar_one()
        patient_id = (
            await session.execute(
                insert(patients)
                .values(
                    user_id=user_ids["PATIENT"],
                    first_name="Demo",
                    last_name="Patient",
                    date_of_birth=date(1990, 1, 1),
                )
                .returning(patients.c.id)
            )
        ).scalar_one()

        await session.execute(
            insert(services).values(
                clinic_id=clinic_id, name="General consultation", price=Decimal("50.00")
            )
        )
        await session.execute(
            insert(appointments).values(
                patient_id=patient_id,
                doctor_id=doctor_id,
                clinic_id=clinic_id,
                scheduled_at=datetime.now(UTC) + timedelta(days=1),
                status="SCHEDULED",
            )
        )
        await session.commit()

    print(f"✓ Demo clinic seeded (accounts <role>@demo-clinic.com / {DEMO_PASSWORD})")


async def main(seed: bool) -> None:
    await create_tables()
    if seed:
        await seed_demo_clinic()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main(seed="--seed" in sys.argv[1:]))
