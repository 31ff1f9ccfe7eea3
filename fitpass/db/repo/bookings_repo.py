from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.db.models.bookings import Booking
from fitpass.db.models.fitness_classes import FitnessClass
from fitpass.db.models.gyms import Gym


class BookingsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, booking_id: UUID) -> Booking | None:
        return await session.get(Booking, booking_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, booking_id: UUID) -> Booking | None:
        stmt = select(Booking).where(Booking.id == booking_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def has_confirmed(session: AsyncSession, *, user_id: UUID, class_id: UUID) -> bool:
        stmt = (
            select(Booking.id)
            .where(
                Booking.user_id == user_id,
                Booking.class_id == class_id,
                Booking.status == "confirmed",
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def count_confirmed(session: AsyncSession, *, class_id: UUID) -> int:
        stmt = select(func.count(Booking.id)).where(
            Booking.class_id == class_id,
            Booking.status == "confirmed",
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def create(session: AsyncSession, *, booking: Booking) -> Booking:
        session.add(booking)
        await session.flush()
        return booking

    @staticmethod
    async def list_attended_in_window(
        session: AsyncSession,
        *,
        start_utc: datetime,
        end_utc: datetime,
    ) -> list[tuple[Booking, FitnessClass, Gym]]:
        stmt = (
            select(Booking, FitnessClass, Gym)
            .join(FitnessClass, FitnessClass.id == Booking.class_id)
            .join(Gym, Gym.id == FitnessClass.gym_id)
            .where(
                Booking.attended.is_(True),
                Booking.status.in_(("confirmed", "completed")),
                FitnessClass.start_time >= start_utc,
                FitnessClass.start_time < end_utc,
            )
            .order_by(FitnessClass.start_time.asc(), Booking.id.asc())
        )
        result = await session.execute(stmt)
        return [(row[0], row[1], row[2]) for row in result.all()]
