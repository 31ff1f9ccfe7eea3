from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitpass.db.models.fitness_classes import FitnessClass


class ClassesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, class_id: UUID) -> FitnessClass | None:
        return await session.get(FitnessClass, class_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, class_id: UUID) -> FitnessClass | None:
        stmt = select(FitnessClass).where(FitnessClass.id == class_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, fitness_class: FitnessClass) -> FitnessClass:
        session.add(fitness_class)
        await session.flush()
        return fitness_class
