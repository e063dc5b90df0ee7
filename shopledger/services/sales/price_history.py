"""
Customer Price History
Best-effort record of what each customer paid per product
"""
from typing import List
import warnings

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopledger.core.exceptions import IntegrityWarning
from shopledger.core.logging import get_logger
from shopledger.models.price_history import CustomerPriceHistoryRec
from shopledger.models.sales import SaleRecord

logger = get_logger("business")


class PriceHistorySink:
    """
    Writes one price-history row per sale line

    Runs in its own transaction after the sale has committed. A failure here
    never undoes the sale: it is rolled back, logged and reported to the
    caller as a warning message.
    """

    def __init__(self, db: Session):
        self.db = db

    def record_price_history(self, sale: SaleRecord) -> List[str]:
        """
        Record price history for every line of a committed sale

        Returns:
            Warning messages; empty when every line was recorded
        """
        try:
            for item in sale.items:
                self.db.add(CustomerPriceHistoryRec(
                    customer_id=sale.customer_id,
                    product_id=item.product_id,
                    price=item.unit_price,
                    quantity=item.quantity,
                    total_amount=item.total,
                    sale_id=sale.id,
                    sale_date=sale.sale_date
                ))
            self.db.commit()
            return []
        except SQLAlchemyError as e:
            self.db.rollback()
            message = f"Price history not recorded for sale {sale.sale_number}: {e}"
            logger.warning(message)
            warnings.warn(message, IntegrityWarning, stacklevel=2)
            return [message]

    def get_customer_price_history(self, customer_id: int, product_id: int, limit: int = 10) -> List[CustomerPriceHistoryRec]:
        """Most recent prices first"""
        return (
            self.db.query(CustomerPriceHistoryRec)
            .filter(
                CustomerPriceHistoryRec.customer_id == customer_id,
                CustomerPriceHistoryRec.product_id == product_id
            )
            .order_by(CustomerPriceHistoryRec.sale_date.desc(), CustomerPriceHistoryRec.id.desc())
            .limit(limit)
            .all()
        )
