"""
Customer Directory Lookup
Read-only access to customer and supplier master records
"""
from typing import Dict, Optional
from sqlalchemy.orm import Session

from shopledger.core.exceptions import NotFoundError
from shopledger.models.customer import Customer, Supplier


class CustomerLookupService:
    """Resolves party ids to the summaries embedded in ledger responses"""

    def __init__(self, db: Session):
        self.db = db

    def get_customer(self, customer_id: int) -> Customer:
        customer = self.db.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        return customer

    def get_supplier(self, supplier_id: int) -> Supplier:
        supplier = self.db.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFoundError("Supplier", supplier_id)
        return supplier

    def get_customer_summary(self, customer_id: int) -> Dict:
        """Return {id, name, phone, email} for a customer"""
        return customer_summary(self.get_customer(customer_id))


def customer_summary(customer: Optional[Customer]) -> Optional[Dict]:
    if customer is None:
        return None
    return {
        "id": customer.id,
        "name": customer.name,
        "phone": customer.phone or "",
        "email": customer.email or "",
    }
