import logging
from typing import Optional
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from udsp.exceptions import BusinessRuleViolation, NotFoundError
from udsp.models.lab_test import LabTest
from udsp.models.test_data import TestData
from udsp.validators import check, normalize_lab_test_name, parse_id

logger = logging.getLogger(__name__)

DUPLICATE_NAME = "Lab test with this name already exists"


class LabTestService:
    async def list_lab_tests(self, db: AsyncSession) -> list[LabTest]:
        result = await db.execute(select(LabTest).order_by(LabTest.name))
        return list(result.scalars().all())

    async def get_lab_test(self, raw_id, db: AsyncSession) -> LabTest:
        lab_test = await db.get(LabTest, parse_id(raw_id, "Lab test"))
        if not lab_test:
            raise NotFoundError("Lab test not found")
        return lab_test

    async def create_lab_test(self, name: str, db: AsyncSession) -> LabTest:
        name = check("name", normalize_lab_test_name, name)
        await self._ensure_unique_name(name, None, db)
        lab_test = LabTest(name=name)
        await self._save(lab_test, db)
        logger.info("Created lab test %r (id=%s)", lab_test.name, lab_test.id)
        return lab_test

    async def update_lab_test(self, raw_id, name: str, db: AsyncSession) -> LabTest:
        lab_test = await self.get_lab_test(raw_id, db)
        name = check("name", normalize_lab_test_name, name)
        await self._ensure_unique_name(name, lab_test.id, db)
        lab_test.name = name
        await self._save(lab_test, db)
        logger.info("Renamed lab test id=%s to %r", lab_test.id, lab_test.name)
        return lab_test

    async def delete_lab_test(self, raw_id, db: AsyncSession) -> int:
        lab_test = await self.get_lab_test(raw_id, db)
        in_use = await db.scalar(
            select(func.count(TestData.id)).where(TestData.lab_test_id == lab_test.id)
        ) or 0
        if in_use:
            logger.warning("Refused to delete lab test id=%s: %s dependent entries", lab_test.id, in_use)
            raise BusinessRuleViolation(
                f"Cannot delete lab test. It is being used in {in_use} test data entries."
            )
        lab_test_id = lab_test.id
        await db.delete(lab_test)
        await db.flush()
        logger.info("Deleted lab test id=%s", lab_test_id)
        return lab_test_id

    async def _ensure_unique_name(self, name: str, own_id: Optional[int], db: AsyncSession) -> None:
        query = select(LabTest.id).where(func.lower(LabTest.name) == name.lower())
        if own_id is not None:
            query = query.where(LabTest.id != own_id)
        if await db.scalar(query) is not None:
            raise BusinessRuleViolation(DUPLICATE_NAME)

    async def _save(self, lab_test: LabTest, db: AsyncSession) -> None:
        try:
            async with db.begin_nested():
                db.add(lab_test)
        except IntegrityError:
            raise BusinessRuleViolation(DUPLICATE_NAME)
        await db.refresh(lab_test)


lab_test_service = LabTestService()
