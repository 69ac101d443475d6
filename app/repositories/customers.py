"""Customer directory queries"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.customer import Customer


class CustomerRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, customer_id: int) -> Optional[Customer]:
        result = await self.db.execute(select(Customer).where(Customer.id == customer_id))
        return result.scalar_one_or_none()

    async def get_by_phone(self, phone: str) -> Optional[Customer]:
        result = await self.db.execute(select(Customer).where(Customer.phone == phone))
        return result.scalar_one_or_none()

    async def find_or_create(
        self,
        full_name: str,
        phone: str,
        email: Optional[str],
        now: datetime,
    ) -> Customer:
        """Return the customer registered under `phone`, creating one if needed"""
        customer = await self.get_by_phone(phone)
        if customer:
            if email and not customer.email:
                customer.email = email
                customer.updated_at = now
            return customer

        customer = Customer(
            full_name=full_name,
            phone=phone,
            email=email,
            created_at=now,
            updated_at=now,
        )
        self.db.add(customer)
        await self.db.flush()
        return customer
